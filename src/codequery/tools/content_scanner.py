"""
Content scanner for codequery.

Enumerates every file under the working directory and keeps those whose text
contains a literal substring or matches a regular expression. Files are read
one at a time, so result order follows enumeration order and one unreadable
file never aborts the scan.
"""

import asyncio
import logging
import os
import re
from typing import Callable, Optional, Union

from ..diagnostics import Diagnostics, LoggingDiagnostics
from ..models.config import QueryConfig
from ..models.search_results import SearchResult
from .fs_walker import FileEnumerator


class ContentScanner:
    """Finds files by what they contain."""

    def __init__(self, enumerator: Optional[FileEnumerator] = None,
                 config: Optional[QueryConfig] = None,
                 diagnostics: Optional[Diagnostics] = None):
        """
        Initialize the content scanner.

        Args:
            enumerator: File enumerator to list candidates with; one sharing this
                scanner's config and diagnostics is created when omitted
            config: Query configuration; taken from the enumerator when omitted
            diagnostics: Sink for progress and failure messages
        """
        if enumerator is None:
            enumerator = FileEnumerator(config, diagnostics)
        self.enumerator = enumerator
        self.config = config or enumerator.config
        self.diagnostics = diagnostics or enumerator.diagnostics
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def find_files_by_content(self, pattern: str, working_dir: str) -> SearchResult:
        """
        Find files whose text contains ``pattern`` as a literal substring.

        Args:
            pattern: Substring to look for
            working_dir: Root of the scan

        Returns:
            SearchResult in enumeration order
        """
        result = SearchResult(operation='find_files_by_content')
        await self._scan(working_dir, pattern, lambda text: pattern in text, result)
        return result

    async def find_files_by_regex(self, regex: Union[str, re.Pattern], working_dir: str,
                                  flags: int = 0) -> SearchResult:
        """
        Find files whose text matches a regular expression anywhere.

        Args:
            regex: Pattern string or compiled pattern
            working_dir: Root of the scan
            flags: ``re`` flags applied when ``regex`` is a string

        Returns:
            SearchResult in enumeration order; empty and degraded when the
            expression does not compile
        """
        result = SearchResult(operation='find_files_by_regex')
        try:
            compiled = regex if isinstance(regex, re.Pattern) else re.compile(regex, flags)
        except re.error as e:
            message = f"Invalid regex pattern '{regex}': {e}"
            self.diagnostics.log_tool_stderr(message)
            result.mark_degraded(message)
            return result

        await self._scan(working_dir, compiled.pattern,
                         lambda text: compiled.search(text) is not None, result)
        return result

    async def read_text(self, working_dir: str, file: str) -> str:
        """Read one working-directory relative file as text."""
        full_path = os.path.join(working_dir, file)
        return await asyncio.to_thread(self._read, full_path)

    def _read(self, full_path: str) -> str:
        with open(full_path, 'r', encoding=self.config.encoding, errors='replace') as f:
            return f.read()

    async def _scan(self, working_dir: str, description: str,
                    predicate: Callable[[str], bool], result: SearchResult) -> None:
        all_files = await self.enumerator.list_all_files(working_dir)
        if all_files.degraded:
            result.mark_degraded(all_files.errors[-1])
            return
        result.errors.extend(all_files.errors)

        self.diagnostics.log_main_flow(f"Searching {len(all_files)} files for pattern: {description}")

        for file in all_files.paths:
            try:
                if self.enumerator.path_filter.is_excluded_candidate(file, working_dir):
                    continue
                content = await self.read_text(working_dir, file)
                if predicate(content):
                    result.add_path(file)
                    self.diagnostics.log_main_flow(f"Found match in file: {file}")
            except Exception as e:
                message = f"Error reading file {file}: {e}"
                self.diagnostics.log_tool_stderr(message)
                result.add_error(message)

        self.diagnostics.log_main_flow(f"Found {len(result)} files containing the pattern")
