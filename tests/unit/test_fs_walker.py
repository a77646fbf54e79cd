"""
Unit tests for the filesystem walker module.

Tests brace expansion, glob translation, and the directory traversal of the
FileEnumerator class, including dependency-directory pruning and failures.
"""

import os
import re
import tempfile
import shutil
from pathlib import Path
from unittest.mock import MagicMock
import pytest

from codequery.tools.fs_walker import (
    FileEnumerator,
    GlobPatternError,
    escape_glob,
    expand_braces,
    glob_to_regex
)
from codequery.models.config import QueryConfig


def _matches(pattern: str, path: str) -> bool:
    return any(re.fullmatch(glob_to_regex(alt), path) for alt in expand_braces(pattern))


class TestExpandBraces:
    """Test cases for brace alternation expansion."""

    def test_simple_alternation(self):
        """Test a single brace group."""
        assert expand_braces("*.{ts,tsx,js,jsx}") == ["*.ts", "*.tsx", "*.js", "*.jsx"]

    def test_no_braces(self):
        """Test patterns without braces are returned unchanged."""
        assert expand_braces("src/**/*.ts") == ["src/**/*.ts"]

    def test_nested_groups(self):
        """Test nested brace groups expand recursively."""
        assert expand_braces("a{b,c{d,e}}f") == ["abf", "acdf", "acef"]

    def test_multiple_groups(self):
        """Test several groups produce the cross product."""
        assert expand_braces("{src,lib}/*.{ts,js}") == [
            "src/*.ts", "src/*.js", "lib/*.ts", "lib/*.js"
        ]

    def test_group_without_comma_is_literal(self):
        """Test a group with a single item is kept as literal text."""
        assert expand_braces("{a}.ts") == ["{a}.ts"]

    def test_duplicates_removed(self):
        """Test repeated alternatives only appear once."""
        assert expand_braces("{a,a,b}") == ["a", "b"]

    def test_escaped_braces_are_literal(self):
        """Test escaped braces do not start a group."""
        assert expand_braces(r"\{a,b\}") == [r"\{a,b\}"]


class TestGlobToRegex:
    """Test cases for glob to regex translation."""

    def test_double_star_prefix(self):
        """Test **/ matches zero or more directories."""
        assert _matches("**/*.ts", "a.ts")
        assert _matches("**/*.ts", "src/a.ts")
        assert _matches("**/*.ts", "src/deep/a.ts")
        assert not _matches("**/*.ts", "src/a.tsx")

    def test_single_star_stays_in_segment(self):
        """Test * never crosses a separator."""
        assert _matches("*.ts", "a.ts")
        assert not _matches("*.ts", "src/a.ts")
        assert _matches("src/*.ts", "src/a.ts")
        assert not _matches("src/*.ts", "src/x/a.ts")

    def test_middle_double_star(self):
        """Test a directory prefix followed by **."""
        assert _matches("src/**/*.test.ts", "src/a.test.ts")
        assert _matches("src/**/*.test.ts", "src/x/y/a.test.ts")
        assert not _matches("src/**/*.test.ts", "lib/a.test.ts")

    def test_trailing_double_star(self):
        """Test a trailing ** matches everything below."""
        assert _matches("src/**", "src/a.ts")
        assert _matches("src/**", "src/x/y/z.js")
        assert not _matches("src/**", "lib/a.ts")

    def test_question_mark(self):
        """Test ? matches exactly one non-separator character."""
        assert _matches("test?.ts", "test1.ts")
        assert not _matches("test?.ts", "test12.ts")
        assert not _matches("a?b", "a/b")

    def test_character_classes(self):
        """Test [abc] and [!abc] character classes."""
        assert _matches("[ab].ts", "a.ts")
        assert not _matches("[ab].ts", "c.ts")
        assert _matches("[!a].ts", "c.ts")
        assert not _matches("[!a].ts", "a.ts")

    def test_negated_class_stays_in_segment(self):
        """Test a negated class never matches the separator."""
        assert not _matches("src[!a]x.ts", "src/x.ts")
        assert _matches("src[!a]x.ts", "srcbx.ts")

    def test_dots_are_literal(self):
        """Test regex metacharacters in names are escaped."""
        assert not _matches("a.ts", "abts")
        assert _matches("a+b.ts", "a+b.ts")

    def test_hidden_files_match(self):
        """Test wildcards match names starting with a dot."""
        assert _matches("**/*", ".env")
        assert _matches("**/*", ".config/settings.json")

    def test_unterminated_class_raises(self):
        """Test malformed character classes are rejected."""
        with pytest.raises(GlobPatternError):
            glob_to_regex("[abc.ts")

    def test_escape_glob(self):
        """Test escaped paths match literally."""
        pattern = escape_glob("app/[id]") + "/*.tsx"
        assert _matches(pattern, "app/[id]/page.tsx")
        assert not _matches(pattern, "app/i/page.tsx")


class TestFileEnumerator:
    """Test cases for the FileEnumerator class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_root = Path(self.temp_dir)
        self._create_test_structure()

        self.diagnostics = MagicMock()
        self.enumerator = FileEnumerator(QueryConfig(), self.diagnostics)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _create_test_structure(self):
        """Create a small project with a dependency directory."""
        test_files = {
            "src/a.ts": "import { b } from './b';\n",
            "src/b.ts": "export const b = 1;\n",
            "src/components/Button.tsx": "export const Button = () => null;\n",
            "docs/readme.md": "# Readme\n",
            ".env": "TOKEN=1\n",
            "node_modules/x/index.js": "module.exports = {};\n",
            "packages/app/node_modules/y/index.ts": "export {};\n",
        }
        for file_path, content in test_files.items():
            full_path = self.test_root / file_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content)

    def _listing(self):
        """Recursive listing minus directories and the dependency directory."""
        listing = []
        for current_dir, _, files in os.walk(self.test_root):
            for filename in files:
                rel_path = Path(current_dir, filename).relative_to(self.test_root).as_posix()
                if "node_modules" not in rel_path:
                    listing.append(rel_path)
        return sorted(listing)

    @pytest.mark.asyncio
    async def test_find_by_extension(self):
        """Test the basic name search scenario."""
        result = await self.enumerator.find_files_by_name("**/*.ts", str(self.test_root))

        assert result.paths == ["src/a.ts", "src/b.ts"]
        assert not result.degraded

    @pytest.mark.asyncio
    async def test_catch_all_equals_filtered_listing(self):
        """Test **/* lists every file outside the dependency directory."""
        result = await self.enumerator.find_files_by_name("**/*", str(self.test_root))

        assert result.paths == self._listing()
        assert ".env" in result.paths
        assert not any("node_modules" in path for path in result.paths)

    @pytest.mark.asyncio
    async def test_results_are_never_directories(self):
        """Test directories never appear, even when the pattern names them."""
        result = await self.enumerator.find_files_by_name("src/*", str(self.test_root))

        assert result.paths == ["src/a.ts", "src/b.ts"]
        for path in result.paths:
            assert (self.test_root / path).is_file()

    @pytest.mark.asyncio
    async def test_brace_alternation(self):
        """Test brace alternatives are combined without duplicates."""
        result = await self.enumerator.find_files_by_name("**/*.{ts,tsx,md}", str(self.test_root))

        assert result.paths == [
            "docs/readme.md",
            "src/a.ts",
            "src/b.ts",
            "src/components/Button.tsx",
        ]

    @pytest.mark.asyncio
    async def test_relative_and_absolute_prefixes(self):
        """Test ./ prefixes and absolute patterns under the root."""
        relative = await self.enumerator.find_files_by_name("./src/*.ts", str(self.test_root))
        absolute = await self.enumerator.find_files_by_name(
            str(self.test_root / "src" / "*.ts"), str(self.test_root)
        )

        assert relative.paths == ["src/a.ts", "src/b.ts"]
        assert absolute.paths == ["src/a.ts", "src/b.ts"]

    @pytest.mark.asyncio
    async def test_dependency_directory_pattern_yields_nothing(self):
        """Test explicit patterns into the dependency directory are still excluded."""
        result = await self.enumerator.find_files_by_name("node_modules/**/*", str(self.test_root))

        assert result.paths == []

    @pytest.mark.asyncio
    async def test_symlinked_directory_is_excluded(self):
        """Test a symlink to a directory is not reported as a file."""
        os.symlink(self.test_root / "src", self.test_root / "linked")

        result = await self.enumerator.find_files_by_name("*", str(self.test_root))

        assert "linked" not in result.paths
        assert result.paths == [".env"]

    @pytest.mark.asyncio
    async def test_missing_root(self):
        """Test a missing working directory gives an empty degraded result."""
        missing = str(self.test_root / "missing")
        result = await self.enumerator.find_files_by_name("**/*", missing)

        assert result.paths == []
        assert result.degraded
        self.diagnostics.log_tool_stderr.assert_called_once()
        message = self.diagnostics.log_tool_stderr.call_args[0][0]
        assert message.startswith("Error in find_files_by_name:")

    @pytest.mark.asyncio
    async def test_invalid_pattern(self):
        """Test a malformed pattern is logged instead of raised."""
        result = await self.enumerator.find_files_by_name("src/[a.ts", str(self.test_root))

        assert result.paths == []
        assert result.degraded
        assert "Unterminated character class" in result.errors[0]

    @pytest.mark.asyncio
    async def test_pattern_outside_root(self):
        """Test absolute patterns outside the root are rejected."""
        result = await self.enumerator.find_files_by_name("/elsewhere/*.ts", str(self.test_root))

        assert result.paths == []
        assert result.degraded

    @pytest.mark.asyncio
    async def test_custom_dependency_dir(self):
        """Test the excluded segment follows configuration."""
        enumerator = FileEnumerator(QueryConfig(dependency_dir="docs"), self.diagnostics)
        result = await enumerator.find_files_by_name("**/*.md", str(self.test_root))

        assert result.paths == []
