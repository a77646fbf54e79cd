"""
Import and class-relation extraction for codequery.

Structural lookups here are regular-expression scans over source text, not
parses. An import statement is anything shaped like ``import ... from 'x'``
on one line; the quoted specifier is relative when it starts with ``.`` and
bare otherwise.
"""

import asyncio
import logging
import os
import re
from typing import List, Optional

from ..diagnostics import Diagnostics
from ..models.config import QueryConfig
from ..models.search_results import ImportKind, ImportReference, SearchResult, to_reference
from .content_scanner import ContentScanner
from .fs_walker import escape_glob


IMPORT_FROM_RE = re.compile(r"import.*from\s+['\"]([^'\"]+)['\"]")
NAMED_IMPORT_RE = re.compile(r"import\s+{?\s*(\w+)\s*}?\s+from\s+['\"]([^'\"]+)['\"]")
CLASS_EXTENDS_RE = re.compile(r"class\s+(\w+)\s+extends\s+(\w+)")


def style_import_regex(extensions: List[str]) -> re.Pattern:
    """Build the import pattern restricted to style sheet specifiers."""
    alternatives = '|'.join(re.escape(ext) for ext in extensions)
    return re.compile(rf"import.*from\s+['\"]([^'\"]+\.(?:{alternatives}))['\"]")


class ImportExtractor:
    """
    Extracts import references and class relations from source files.

    Every public operation reads the file once, never raises, and reports a
    missing or unreadable file as a diagnostic plus an empty, degraded result.
    """

    def __init__(self, scanner: Optional[ContentScanner] = None,
                 config: Optional[QueryConfig] = None,
                 diagnostics: Optional[Diagnostics] = None):
        if scanner is None:
            scanner = ContentScanner(config=config, diagnostics=diagnostics)
        self.scanner = scanner
        self.enumerator = scanner.enumerator
        self.config = config or scanner.config
        self.diagnostics = diagnostics or scanner.diagnostics
        self.style_import_re = style_import_regex(self.config.style_extensions)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def resolve_specifier(self, file: str, specifier: str, working_dir: str) -> str:
        """
        Resolve a relative specifier against the directory of the importing file.

        Args:
            file: Importing file, relative to ``working_dir``
            specifier: Relative import specifier such as ``./b`` or ``../lib/x``
            working_dir: Root the result is relative to

        Returns:
            Forward-slash path relative to ``working_dir``
        """
        root = os.path.abspath(working_dir)
        base_dir = os.path.dirname(os.path.join(root, file))
        resolved = os.path.normpath(os.path.join(base_dir, specifier))
        return to_reference(os.path.relpath(resolved, root))

    def is_reportable(self, reference: str, file: str) -> bool:
        """
        Check whether a resolved import path may appear in a result.

        Paths into the dependency directory and paths climbing above the
        working directory are left out.
        """
        if reference == '..' or reference.startswith('../'):
            self.logger.debug(f"Skipping import {reference!r} outside the working directory in {file}")
            return False
        return not self.enumerator.path_filter.is_excluded_directory_name(reference)

    def with_default_extension(self, reference: str) -> str:
        """Append the default import extension to an extension-less reference."""
        if os.path.splitext(reference)[1]:
            return reference
        return reference + self.config.default_import_extension

    def probe_module_file(self, reference: str, working_dir: str) -> str:
        """
        Map a resolved import path to the file a bundler would load.

        Tries the path itself, then each script extension, then an ``index``
        file inside it. Falls back to the default extension when nothing exists.
        """
        candidates = [reference]
        candidates.extend(f"{reference}.{ext}" for ext in self.config.script_extensions)
        candidates.extend(f"{reference}/index.{ext}" for ext in self.config.script_extensions)
        for candidate in candidates:
            if os.path.isfile(os.path.join(working_dir, candidate)):
                return candidate
        return self.with_default_extension(reference)

    def parse_imports(self, content: str, file: str, working_dir: str) -> List[ImportReference]:
        """
        Extract every import statement of a source text in source order.

        Relative specifiers are resolved and probed on disk; bare specifiers
        are kept verbatim.
        """
        references = []
        for match in IMPORT_FROM_RE.finditer(content):
            specifier = match.group(1)
            kind = ImportReference.classify(specifier)
            resolved = None
            if kind == ImportKind.RELATIVE:
                resolved = self.probe_module_file(
                    self.resolve_specifier(file, specifier, working_dir), working_dir
                )
            references.append(ImportReference(specifier=specifier, kind=kind, resolved=resolved))
        return references

    async def find_import_references(self, file: str, working_dir: str) -> List[ImportReference]:
        """Get the tagged import references of a file; empty if it cannot be read."""
        result = SearchResult(operation='find_import_references')
        content = await self._read_source(file, working_dir, result)
        if content is None:
            return []
        return await asyncio.to_thread(self.parse_imports, content, file, working_dir)

    async def find_imported_files(self, file: str, working_dir: str) -> SearchResult:
        """
        List what a file imports.

        Relative imports appear as resolved file references, bare imports as
        their specifier text. Relative imports resolving into the dependency
        directory or above the working directory are dropped.

        Args:
            file: Source file relative to ``working_dir``
            working_dir: Root of the scan

        Returns:
            SearchResult in source order
        """
        result = SearchResult(operation='find_imported_files')
        content = await self._read_source(file, working_dir, result)
        if content is None:
            return result

        references = await asyncio.to_thread(self.parse_imports, content, file, working_dir)
        for reference in references:
            entry = reference.as_result_entry()
            if reference.is_relative() and not self.is_reportable(entry, file):
                continue
            result.add_path(entry)
        return result

    async def find_dependencies(self, file: str, working_dir: str) -> SearchResult:
        """List the literal import specifiers of a file, skipping dependency-directory paths."""
        result = SearchResult(operation='find_dependencies')
        content = await self._read_source(file, working_dir, result)
        if content is None:
            return result

        for match in IMPORT_FROM_RE.finditer(content):
            specifier = match.group(1)
            if not self.enumerator.path_filter.is_excluded_directory_name(specifier):
                result.add_path(specifier)
        return result

    async def find_related_classes(self, file: str, working_dir: str) -> SearchResult:
        """
        Find files related to a file through imports or class inheritance.

        Two passes run over the text. Named and default imports with relative
        specifiers contribute their resolved path, with the default extension
        appended when it has none; paths into the dependency directory or above the
        working directory are skipped. Each ``class A extends B`` contributes every
        file in the tree containing ``class B``.

        Args:
            file: Source file relative to ``working_dir``
            working_dir: Root of the scan

        Returns:
            Deduplicated SearchResult in first-seen order
        """
        result = SearchResult(operation='find_related_classes')
        content = await self._read_source(file, working_dir, result)
        if content is None:
            return result

        for match in NAMED_IMPORT_RE.finditer(content):
            specifier = match.group(2)
            if ImportReference.classify(specifier) != ImportKind.RELATIVE:
                continue
            resolved = self.resolve_specifier(file, specifier, working_dir)
            if not self.is_reportable(resolved, file):
                continue
            result.add_path(self.with_default_extension(resolved))

        for match in CLASS_EXTENDS_RE.finditer(content):
            base_class = match.group(2)
            base_class_files = await self.scanner.find_files_by_content(f"class {base_class}", working_dir)
            result.merge(base_class_files)

        result.deduplicate()
        return result

    async def find_style_dependencies(self, component: str, working_dir: str) -> SearchResult:
        """
        Find the style sheets imported by a component's source files.

        Args:
            component: Component name, matched as ``**/<component>.<script ext>``
            working_dir: Root of the scan

        Returns:
            SearchResult of resolved style sheet references in discovery order
        """
        result = SearchResult(operation='find_style_dependencies')
        pattern = f"**/{escape_glob(component)}.{self.config.brace_extensions('script')}"
        component_files = await self.enumerator.find_files_by_name(pattern, working_dir)
        if component_files.degraded:
            result.mark_degraded(component_files.errors[-1])
            return result
        result.errors.extend(component_files.errors)

        for file in component_files.paths:
            content = await self._read_source(file, working_dir, result, per_file=True)
            if content is None:
                continue
            for match in self.style_import_re.finditer(content):
                specifier = match.group(1)
                if ImportReference.classify(specifier) != ImportKind.RELATIVE:
                    # bare style specifiers are served from the dependency directory
                    self.logger.debug(f"Skipping bare style import {specifier!r} in {file}")
                    continue
                style_path = self.resolve_specifier(file, specifier, working_dir)
                if self.is_reportable(style_path, file):
                    result.add_path(style_path)

        return result

    async def _read_source(self, file: str, working_dir: str, result: SearchResult,
                           per_file: bool = False) -> Optional[str]:
        """Read a source file, recording a failure on ``result`` instead of raising."""
        try:
            return await self.scanner.read_text(working_dir, file)
        except Exception as e:
            message = f"Error reading file {file}: {e}"
            self.diagnostics.log_tool_stderr(message)
            if per_file:
                result.add_error(message)
            else:
                result.mark_degraded(message)
            return None
