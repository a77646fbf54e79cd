"""
Query library for codequery.

This module composes the file enumerator, content scanner and import
extractor into the queries an agent issues: related tests, component and API
usages, function definitions, recently modified files and external module
locations. Every query is a coroutine returning a ``SearchResult``; none of
them raises past its own boundary.
"""

import asyncio
import logging
import math
import os
import re
import stat
import time
from pathlib import Path
from typing import List, Optional, Union

from ..config.parser import load_config
from ..diagnostics import Diagnostics, LoggingDiagnostics, configure_logging
from ..models.config import QueryConfig
from ..models.search_results import ImportReference, SearchResult, to_reference
from .content_scanner import ContentScanner
from .fs_walker import FileEnumerator, escape_glob
from .import_extractor import ImportExtractor


SECONDS_PER_DAY = 24 * 60 * 60


class QueryLibrary:
    """
    Entry point for all read-only code queries.

    The library holds configuration and the diagnostics sink only; each call
    re-scans the working directory it is given.
    """

    def __init__(self, config: Optional[QueryConfig] = None,
                 diagnostics: Optional[Diagnostics] = None):
        """
        Initialize the query library.

        Args:
            config: Query configuration; defaults are used when omitted
            diagnostics: Sink for progress and failure messages; logs through
                the ``logging`` module when omitted
        """
        self.config = config or QueryConfig()
        self.diagnostics = diagnostics or LoggingDiagnostics()
        self.enumerator = FileEnumerator(self.config, self.diagnostics)
        self.scanner = ContentScanner(self.enumerator, self.config, self.diagnostics)
        self.extractor = ImportExtractor(self.scanner, self.config, self.diagnostics)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    def from_config_file(cls, config_path: Optional[Union[str, Path]] = None,
                         diagnostics: Optional[Diagnostics] = None) -> 'QueryLibrary':
        """
        Build a library from a YAML configuration file and apply its logging settings.

        Raises:
            ConfigurationError: If the configuration cannot be loaded
        """
        parse_result = load_config(config_path)
        configure_logging(parse_result.config.logging)
        return cls(parse_result.config, diagnostics)

    # Name, content and import lookups

    async def find_files_by_name(self, pattern: str, working_dir: str) -> SearchResult:
        return await self.enumerator.find_files_by_name(pattern, working_dir)

    async def find_files_by_content(self, pattern: str, working_dir: str) -> SearchResult:
        return await self.scanner.find_files_by_content(pattern, working_dir)

    async def find_imported_files(self, file: str, working_dir: str) -> SearchResult:
        return await self.extractor.find_imported_files(file, working_dir)

    async def find_dependencies(self, file: str, working_dir: str) -> SearchResult:
        return await self.extractor.find_dependencies(file, working_dir)

    async def find_import_references(self, file: str, working_dir: str) -> List[ImportReference]:
        return await self.extractor.find_import_references(file, working_dir)

    async def find_related_classes(self, file: str, working_dir: str) -> SearchResult:
        return await self.extractor.find_related_classes(file, working_dir)

    async def find_style_dependencies(self, component: str, working_dir: str) -> SearchResult:
        return await self.extractor.find_style_dependencies(component, working_dir)

    # Composed queries

    async def find_related_tests(self, file_or_dir: str, working_dir: str) -> SearchResult:
        """
        Find the test files belonging to a source file or directory.

        For a directory every test file below it matches. For a file, test
        files anywhere in the tree sharing its base name match.

        Args:
            file_or_dir: Target relative to ``working_dir``
            working_dir: Root of the scan

        Returns:
            SearchResult of test files; empty when the target does not exist
        """
        result = SearchResult(operation='find_related_tests')
        root = os.path.abspath(working_dir)
        full_path = os.path.join(root, file_or_dir)

        try:
            stats = await asyncio.to_thread(os.stat, full_path)
        except FileNotFoundError:
            message = f"File or directory not found: {file_or_dir}"
            self.diagnostics.log_tool_stderr(message)
            result.mark_degraded(message)
            return result
        except Exception as e:
            message = f"Error in find_related_tests: {e}"
            self.diagnostics.log_tool_stderr(message)
            result.mark_degraded(message)
            return result

        test_glob = f"{escape_glob(self.config.test_suffix)}.{self.config.brace_extensions('script')}"
        if stat.S_ISDIR(stats.st_mode):
            rel_dir = to_reference(os.path.relpath(full_path, root))
            if rel_dir == '.':
                pattern = f"**/*{test_glob}"
            else:
                pattern = f"{escape_glob(rel_dir)}/**/*{test_glob}"
        else:
            base_name = os.path.splitext(os.path.basename(file_or_dir))[0]
            pattern = f"**/{escape_glob(base_name)}{test_glob}"

        self.logger.debug(f"Looking for tests of {file_or_dir} with {pattern}")
        result.merge(await self.enumerator.find_files_by_name(pattern, root))
        return result

    async def find_component_usage(self, component: str, working_dir: str) -> SearchResult:
        """Find files opening a ``<Component`` tag; string literals match too."""
        result = await self.scanner.find_files_by_content(f"<{component}", working_dir)
        result.operation = 'find_component_usage'
        return result

    async def find_api_usage(self, endpoint: str, working_dir: str) -> SearchResult:
        """Find ``fetch(...)`` call sites mentioning the endpoint on the same line."""
        pattern = rf"fetch\(.*{re.escape(endpoint)}.*\)"
        result = await self.scanner.find_files_by_regex(pattern, working_dir)
        result.operation = 'find_api_usage'
        return result

    async def find_function_definition(self, function_name: str, working_dir: str) -> SearchResult:
        """
        Find files declaring a function by name.

        Matches ``function name(`` and arrow or function expressions assigned
        with ``const``, ``let`` or ``var``.
        """
        name = re.escape(function_name)
        pattern = '|'.join([
            rf"function\s+{name}\s*\(",
            rf"const\s+{name}\s*=\s*\(",
            rf"let\s+{name}\s*=\s*\(",
            rf"var\s+{name}\s*=\s*\(",
        ])
        result = await self.scanner.find_files_by_regex(pattern, working_dir)
        result.operation = 'find_function_definition'
        return result

    async def find_recently_modified_files(self, days: int, working_dir: str) -> SearchResult:
        """
        Find files modified within the last ``days`` days.

        The age of a file is the elapsed time since its modification rounded
        up to whole days, so a file touched an hour ago is one day old.

        Args:
            days: Inclusive age threshold in days
            working_dir: Root of the scan

        Returns:
            SearchResult in enumeration order
        """
        result = SearchResult(operation='find_recently_modified_files')
        all_files = await self.enumerator.list_all_files(working_dir)
        if all_files.degraded:
            result.mark_degraded(all_files.errors[-1])
            return result
        result.errors.extend(all_files.errors)

        now = time.time()
        path_filter = self.enumerator.path_filter
        for file in all_files.paths:
            if path_filter.is_excluded_directory_name(file):
                continue
            try:
                stats = await asyncio.to_thread(os.stat, os.path.join(working_dir, file))
            except Exception as e:
                message = f"Error reading file stats {file}: {e}"
                self.diagnostics.log_tool_stderr(message)
                result.add_error(message)
                continue

            age_days = math.ceil(abs(now - stats.st_mtime) / SECONDS_PER_DAY)
            if age_days <= days:
                result.add_path(file)

        self.diagnostics.log_main_flow(f"Found {len(result)} files modified in the last {days} days")
        return result

    async def find_external_dependency(self, module_name: str, working_dir: str) -> SearchResult:
        """
        Locate an installed module's entry or type declaration files.

        All candidate locations are probed concurrently. A missing candidate
        is expected and silently omitted; any other stat failure is reported
        on the tool-stderr channel.

        Args:
            module_name: Package name as used in a bare import, scopes included
            working_dir: Root containing the dependency directory

        Returns:
            SearchResult of existing candidates in candidate order
        """
        result = SearchResult(operation='find_external_dependency')
        if not module_name or not module_name.strip():
            message = "Error in find_external_dependency: module name cannot be empty"
            self.diagnostics.log_tool_stderr(message)
            result.mark_degraded(message)
            return result

        root = os.path.abspath(working_dir)

        async def probe(candidate: str) -> Optional[str]:
            full_path = os.path.join(root, candidate)
            try:
                await asyncio.to_thread(os.stat, full_path)
                return candidate
            except (FileNotFoundError, NotADirectoryError):
                return None
            except Exception as e:
                message = f"Unexpected error checking path {full_path} for {module_name}: {e}"
                self.diagnostics.log_tool_stderr(message)
                result.add_error(message)
                return None

        candidates = self.config.external_candidate_paths(module_name.strip())
        found = await asyncio.gather(*(probe(candidate) for candidate in candidates))
        result.extend(path for path in found if path is not None)
        return result


_default_library: Optional[QueryLibrary] = None


def get_default_library() -> QueryLibrary:
    """Get the shared library used by the module-level query functions."""
    global _default_library
    if _default_library is None:
        _default_library = QueryLibrary()
    return _default_library


async def find_files_by_name(pattern: str, working_dir: str) -> List[str]:
    """Convenience function returning the paths matching a glob pattern."""
    return (await get_default_library().find_files_by_name(pattern, working_dir)).to_list()


async def find_files_by_content(pattern: str, working_dir: str) -> List[str]:
    """Convenience function returning the files containing a substring."""
    return (await get_default_library().find_files_by_content(pattern, working_dir)).to_list()


async def find_imported_files(file: str, working_dir: str) -> List[str]:
    """Convenience function returning what a file imports."""
    return (await get_default_library().find_imported_files(file, working_dir)).to_list()


async def find_dependencies(file: str, working_dir: str) -> List[str]:
    """Convenience function returning the import specifiers of a file."""
    return (await get_default_library().find_dependencies(file, working_dir)).to_list()


async def find_related_classes(file: str, working_dir: str) -> List[str]:
    """Convenience function returning files related through imports or inheritance."""
    return (await get_default_library().find_related_classes(file, working_dir)).to_list()


async def find_style_dependencies(component: str, working_dir: str) -> List[str]:
    """Convenience function returning the style sheets a component imports."""
    return (await get_default_library().find_style_dependencies(component, working_dir)).to_list()


async def find_related_tests(file_or_dir: str, working_dir: str) -> List[str]:
    """Convenience function returning the tests of a file or directory."""
    return (await get_default_library().find_related_tests(file_or_dir, working_dir)).to_list()


async def find_component_usage(component: str, working_dir: str) -> List[str]:
    """Convenience function returning the files using a component."""
    return (await get_default_library().find_component_usage(component, working_dir)).to_list()


async def find_api_usage(endpoint: str, working_dir: str) -> List[str]:
    """Convenience function returning the files fetching an endpoint."""
    return (await get_default_library().find_api_usage(endpoint, working_dir)).to_list()


async def find_function_definition(function_name: str, working_dir: str) -> List[str]:
    """Convenience function returning the files defining a function."""
    return (await get_default_library().find_function_definition(function_name, working_dir)).to_list()


async def find_recently_modified_files(days: int, working_dir: str) -> List[str]:
    """Convenience function returning recently modified files."""
    return (await get_default_library().find_recently_modified_files(days, working_dir)).to_list()


async def find_external_dependency(module_name: str, working_dir: str) -> List[str]:
    """Convenience function returning the on-disk files of an external module."""
    return (await get_default_library().find_external_dependency(module_name, working_dir)).to_list()
