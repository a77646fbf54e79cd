"""
Unit tests for configuration parser.

Tests the YAML configuration parsing, validation, and error handling
functionality of the ConfigParser class.
"""

import pytest
import tempfile
import os
import shutil
import yaml
from pathlib import Path

from codequery.config.parser import (
    ConfigParser,
    ConfigParseResult,
    ConfigurationError,
    load_config,
    validate_config_file,
    create_config_template
)
from codequery.models.config import QueryConfig


class TestConfigParser:
    """Test cases for ConfigParser class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_root = Path(self.temp_dir)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name, content):
        path = self.test_root / name
        path.write_text(content)
        return path

    def test_init_default(self):
        """Test default initialization."""
        parser = ConfigParser()
        assert parser.strict_mode is False
        assert parser.DEFAULT_CONFIG_NAMES == [
            '.codequery.yaml',
            '.codequery.yml',
            'codequery.yaml',
            'codequery.yml'
        ]

    def test_init_strict_mode(self):
        """Test initialization with strict mode."""
        parser = ConfigParser(strict_mode=True)
        assert parser.strict_mode is True

    def test_load_config_with_valid_file(self):
        """Test loading configuration from valid YAML file."""
        config_path = self._write("config.yaml", yaml.dump({
            'dependency_dir': 'vendor',
            'script_extensions': ['ts', 'mts'],
            'logging': {'level': 'debug'}
        }))

        result = ConfigParser().load_config(config_path)

        assert isinstance(result, ConfigParseResult)
        assert isinstance(result.config, QueryConfig)
        assert result.config_path == config_path
        assert result.is_default is False
        assert result.warnings == []
        assert result.config.dependency_dir == 'vendor'
        assert result.config.script_extensions == ['ts', 'mts']
        assert result.config.logging.level == 'DEBUG'

    def test_load_config_file_not_found(self):
        """Test loading configuration from non-existent file."""
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            ConfigParser().load_config(self.test_root / "missing.yaml")

    def test_load_config_invalid_yaml(self):
        """Test loading configuration with invalid YAML syntax."""
        config_path = self._write("bad.yaml", "dependency_dir: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML syntax"):
            ConfigParser().load_config(config_path)

    def test_load_config_not_a_mapping(self):
        """Test a top-level list is rejected."""
        config_path = self._write("list.yaml", "- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must contain a YAML object"):
            ConfigParser().load_config(config_path)

    def test_load_config_empty_file(self):
        """Test an empty file gives the default settings."""
        config_path = self._write("empty.yaml", "   \n")

        result = ConfigParser().load_config(config_path)

        assert result.config.dependency_dir == "node_modules"
        assert result.is_default is False

    def test_load_config_validation_error(self):
        """Test invalid values are reported as configuration errors."""
        config_path = self._write("invalid.yaml", yaml.dump({'dependency_dir': 'a/b'}))

        with pytest.raises(ConfigurationError, match="Configuration validation failed"):
            ConfigParser().load_config(config_path)

    def test_unknown_keys_warn(self):
        """Test unknown keys are ignored with a warning."""
        config_path = self._write("extra.yaml", yaml.dump({'roots': ['.'], 'test_suffix': '.spec'}))

        result = ConfigParser().load_config(config_path)

        assert result.config.test_suffix == '.spec'
        assert result.warnings == ["Unknown configuration key ignored: roots"]

    def test_unknown_keys_strict_mode(self):
        """Test strict mode turns warnings into errors."""
        config_path = self._write("extra.yaml", yaml.dump({'roots': ['.']}))

        with pytest.raises(ConfigurationError, match="Configuration warnings in strict mode"):
            ConfigParser(strict_mode=True).load_config(config_path)

    def test_search_dirs_discovery(self):
        """Test default file names are discovered in the given directories."""
        self._write(".codequery.yml", yaml.dump({'test_suffix': '.spec'}))

        result = ConfigParser().load_config(search_dirs=[self.test_root])

        assert result.config_path == self.test_root / ".codequery.yml"
        assert result.config.test_suffix == '.spec'
        assert result.is_default is False

    def test_defaults_when_nothing_found(self):
        """Test default configuration when no file exists."""
        result = ConfigParser().load_config(search_dirs=[self.test_root])

        assert result.is_default is True
        assert result.config_path is None
        assert result.config == QueryConfig()
        assert result.warnings == ["No configuration file found, using default settings"]

    def test_save_and_reload(self):
        """Test a saved configuration loads back unchanged."""
        config = QueryConfig(dependency_dir="vendor", style_extensions=["less"])
        output_path = self.test_root / "nested" / "codequery.yaml"

        parser = ConfigParser()
        parser.save_config(config, output_path)
        content = output_path.read_text()
        result = parser.load_config(output_path)

        assert content.startswith("# codequery configuration")
        assert result.config == config

    def test_template_loads(self):
        """Test the template is a valid configuration."""
        template = ConfigParser().get_config_template()
        data = yaml.safe_load(template)

        assert QueryConfig.from_dict(data) == QueryConfig()
        assert "# Directory of installed third-party packages" in template

    def test_validate_config_file(self):
        """Test file validation reports problems without raising."""
        good = self._write("good.yaml", yaml.dump({'encoding': 'latin-1'}))
        bad = self._write("bad.yaml", yaml.dump({'encoding': 'not-a-codec'}))

        parser = ConfigParser()

        assert parser.validate_config_file(good) == []
        errors = parser.validate_config_file(bad)
        assert len(errors) == 1
        assert "Unknown encoding" in errors[0]
        assert parser.validate_config_file(self.test_root / "missing.yaml") == [
            f"Configuration file not found: {self.test_root / 'missing.yaml'}"
        ]


class TestConvenienceFunctions:
    """Test cases for module-level convenience functions."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_root = Path(self.temp_dir)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_create_and_load_template(self):
        """Test creating a template and loading it."""
        template_path = self.test_root / "codequery.yaml"

        create_config_template(template_path)
        result = load_config(template_path)

        assert template_path.exists()
        assert result.config == QueryConfig()

    def test_validate_config_file(self):
        """Test the validation convenience function."""
        config_path = self.test_root / "codequery.yaml"
        config_path.write_text("external_candidates: ['index.js']\n")

        errors = validate_config_file(config_path)

        assert len(errors) == 1
        assert "placeholder" in errors[0]

    def test_load_config_strict_mode(self):
        """Test strict mode via the convenience function."""
        config_path = self.test_root / "codequery.yaml"
        config_path.write_text("unknown_key: 1\n")

        with pytest.raises(ConfigurationError):
            load_config(config_path, strict_mode=True)
