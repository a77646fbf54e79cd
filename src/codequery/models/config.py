"""
Configuration data models for codequery.

This module defines the settings that shape every query: the dependency
directory excluded from scans, the extension families used to build glob
patterns, the candidate locations probed for external modules, and logging.
"""

import codecs
import logging
from typing import Dict, List, Any
from pydantic import BaseModel, Field, field_validator


class LoggingConfig(BaseModel):
    """
    Configuration for the diagnostics loggers.

    Attributes:
        level: Logging level name applied to the ``codequery`` logger hierarchy
        format: Format string for the handler installed by ``configure_logging``
    """

    level: str = Field("INFO", description="Logging level name")
    format: str = Field(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        description="Log record format"
    )

    @field_validator('level', mode='before')
    @classmethod
    def validate_level(cls, v) -> str:
        """Normalize the level name and reject unknown levels."""
        if isinstance(v, int):
            v = logging.getLevelName(v)
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid logging level: {v}")
        return level

    def get_level_number(self) -> int:
        """Get the numeric logging level."""
        return logging.getLevelName(self.level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class QueryConfig(BaseModel):
    """
    Main configuration class for codequery.

    Attributes:
        dependency_dir: Directory segment holding installed third-party packages
        script_extensions: Extensions of source files that may hold components and tests
        style_extensions: Extensions of style sheets tracked by style dependency lookups
        test_suffix: Marker placed between a base name and its extension in test files
        default_import_extension: Extension appended to extension-less import paths
        encoding: Text encoding used to read source files
        external_candidates: Path templates probed when locating an external module
        logging: Diagnostics logging configuration
    """

    dependency_dir: str = Field("node_modules", description="Dependency directory segment")
    script_extensions: List[str] = Field(
        default_factory=lambda: ["ts", "tsx", "js", "jsx"],
        description="Source file extensions"
    )
    style_extensions: List[str] = Field(
        default_factory=lambda: ["css", "scss"],
        description="Style sheet extensions"
    )
    test_suffix: str = Field(".test", description="Test file marker")
    default_import_extension: str = Field(".ts", description="Extension for extension-less imports")
    encoding: str = Field("utf-8", description="Source file encoding")
    external_candidates: List[str] = Field(
        default_factory=lambda: [
            "{dependency_dir}/{module}/index.d.ts",
            "{dependency_dir}/{module}/index.js",
            "{dependency_dir}/@types/{module}/index.d.ts",
        ],
        description="Candidate locations for external modules"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @field_validator('dependency_dir')
    @classmethod
    def validate_dependency_dir(cls, v: str) -> str:
        """The dependency directory must be a single path segment."""
        v = v.strip()
        if not v:
            raise ValueError("Dependency directory cannot be empty")
        if '/' in v or '\\' in v:
            raise ValueError(f"Dependency directory must be a single path segment: {v}")
        return v

    @field_validator('script_extensions', 'style_extensions')
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """Normalize extensions to lower case without a leading dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lstrip('.').lower()
            if not ext:
                continue
            if any(ch in ext for ch in '{},/'):
                raise ValueError(f"Invalid extension: {ext}")
            if ext not in normalized:
                normalized.append(ext)
        if not normalized:
            raise ValueError("At least one extension must be specified")
        return normalized

    @field_validator('default_import_extension')
    @classmethod
    def validate_default_extension(cls, v: str) -> str:
        """Ensure the default extension starts with a dot."""
        v = v.strip()
        if not v:
            raise ValueError("Default import extension cannot be empty")
        if not v.startswith('.'):
            v = '.' + v
        return v

    @field_validator('encoding')
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Reject encodings the codecs registry does not know."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
        return v

    @field_validator('external_candidates')
    @classmethod
    def validate_external_candidates(cls, v: List[str]) -> List[str]:
        """Every candidate template must name the module."""
        if not v:
            raise ValueError("At least one external candidate must be specified")
        for template in v:
            if '{module}' not in template:
                raise ValueError(f"External candidate is missing the {{module}} placeholder: {template}")
            try:
                template.format(dependency_dir="node_modules", module="module")
            except (KeyError, IndexError, ValueError) as e:
                raise ValueError(f"Invalid external candidate template {template!r}: {e}")
        return v

    def brace_extensions(self, kind: str = "script") -> str:
        """
        Get an extension family as a glob brace alternation.

        Args:
            kind: Either ``"script"`` or ``"style"``

        Returns:
            Brace expression such as ``{ts,tsx,js,jsx}``
        """
        if kind == "script":
            extensions = self.script_extensions
        elif kind == "style":
            extensions = self.style_extensions
        else:
            raise ValueError(f"Unknown extension family: {kind}")
        return "{" + ",".join(extensions) + "}"

    def external_candidate_paths(self, module_name: str) -> List[str]:
        """Expand the external candidate templates for one module."""
        return [
            template.format(dependency_dir=self.dependency_dir, module=module_name)
            for template in self.external_candidates
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary representation."""
        data = self.model_dump()
        data['logging'] = self.logging.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QueryConfig':
        """Create configuration from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the configuration."""
        parts = [f"Dependency dir: {self.dependency_dir}"]
        parts.append(f"Scripts: {self.brace_extensions('script')}")
        parts.append(f"Styles: {self.brace_extensions('style')}")
        parts.append(f"Log level: {self.logging.level}")

        return " | ".join(parts)
