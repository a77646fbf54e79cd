"""
Filesystem walker for codequery.

This module expands glob patterns against a working directory. Brace
alternation is expanded first, every alternative is translated to a regular
expression, and the tree is walked once with the dependency directory pruned
before descent. Results are working-directory relative, forward-slash paths
in sorted order.
"""

import asyncio
import errno
import logging
import os
import re
from typing import List, Optional, Tuple

from ..diagnostics import Diagnostics, LoggingDiagnostics
from ..models.config import QueryConfig
from ..models.search_results import SearchResult, to_reference
from .path_filter import PathFilter


GLOB_SPECIAL_CHARS = '*?[]{}\\'


class GlobPatternError(ValueError):
    """Raised when a glob pattern cannot be translated."""
    pass


def escape_glob(text: str) -> str:
    """Escape glob metacharacters so the text matches literally."""
    return ''.join('\\' + ch if ch in GLOB_SPECIAL_CHARS else ch for ch in text)


def _find_brace_group(pattern: str) -> Optional[Tuple[int, int, List[str]]]:
    """
    Locate the first brace group that holds an alternation.

    Returns:
        (open index, close index, alternatives) or None. Groups without a
        top-level comma, like ``{a}``, are literal text.
    """
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '{':
            depth = 0
            commas = []
            j = i
            while j < len(pattern):
                cj = pattern[j]
                if cj == '\\':
                    j += 2
                    continue
                if cj == '{':
                    depth += 1
                elif cj == '}':
                    depth -= 1
                    if depth == 0:
                        break
                elif cj == ',' and depth == 1:
                    commas.append(j)
                j += 1
            if j < len(pattern) and commas:
                bounds = [i] + commas + [j]
                options = [pattern[bounds[k] + 1:bounds[k + 1]] for k in range(len(bounds) - 1)]
                return i, j, options
        i += 1
    return None


def expand_braces(pattern: str) -> List[str]:
    """
    Expand brace alternation into the list of plain glob patterns.

    ``src/*.{ts,js}`` becomes ``['src/*.ts', 'src/*.js']``. Nested groups are
    expanded recursively and repeated alternatives are dropped.
    """
    group = _find_brace_group(pattern)
    if group is None:
        return [pattern]

    open_idx, close_idx, options = group
    prefix = pattern[:open_idx]
    suffix = pattern[close_idx + 1:]

    expanded = []
    for option in options:
        for item in expand_braces(prefix + option + suffix):
            if item not in expanded:
                expanded.append(item)
    return expanded


def _translate_segment(segment: str) -> str:
    """Translate one path segment; wildcards never cross a separator."""
    parts = []
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == '\\' and i + 1 < len(segment):
            parts.append(re.escape(segment[i + 1]))
            i += 2
            continue
        if ch == '*':
            parts.append('[^/]*')
        elif ch == '?':
            parts.append('[^/]')
        elif ch == '[':
            j = i + 1
            if j < len(segment) and segment[j] in '!^':
                j += 1
            if j < len(segment) and segment[j] == ']':
                j += 1
            while j < len(segment) and segment[j] != ']':
                j += 1
            if j >= len(segment):
                raise GlobPatternError(f"Unterminated character class in '{segment}'")
            body = segment[i + 1:j].replace('\\', '\\\\')
            if body[:1] in ('!', '^'):
                # negated classes never match the separator
                body = '^' + body[1:] + '/'
            parts.append(f'[{body}]')
            i = j
        else:
            parts.append(re.escape(ch))
        i += 1
    return ''.join(parts)


def glob_to_regex(pattern: str) -> str:
    """
    Convert a brace-free glob pattern to a regular expression.

    Supports:
    - ``*`` and ``?`` within one path segment
    - ``**`` as a whole segment, matching zero or more directories
    - a trailing ``**`` matching everything below its directory
    - character classes ``[abc]`` and ``[!abc]``

    Args:
        pattern: Glob pattern relative to the working directory

    Returns:
        Regex string intended for ``re.fullmatch`` against relative paths
    """
    segments = pattern.split('/')
    regex_parts = []

    for i, segment in enumerate(segments):
        is_last = i == len(segments) - 1
        if segment == '**':
            regex_parts.append('.*' if is_last else '(?:[^/]+/)*')
            continue
        regex_parts.append(_translate_segment(segment))
        if not is_last:
            regex_parts.append('/')

    return ''.join(regex_parts)


class FileEnumerator:
    """
    Expands glob patterns into working-directory relative file references.

    Directories never appear in results, and the dependency directory is
    pruned during the walk and re-checked for every candidate.
    """

    CATCH_ALL = '**/*'

    def __init__(self, config: Optional[QueryConfig] = None,
                 diagnostics: Optional[Diagnostics] = None):
        """
        Initialize the file enumerator.

        Args:
            config: Query configuration; defaults are used when omitted
            diagnostics: Sink for progress and failure messages
        """
        self.config = config or QueryConfig()
        self.diagnostics = diagnostics or LoggingDiagnostics()
        self.path_filter = PathFilter(self.config.dependency_dir)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def find_files_by_name(self, pattern: str, working_dir: str) -> SearchResult:
        """
        Find files whose relative path matches a glob pattern.

        Args:
            pattern: Glob pattern, brace alternation allowed
            working_dir: Root of the scan

        Returns:
            SearchResult with sorted relative paths; empty and degraded when
            the root is unreadable or the pattern is invalid
        """
        result = SearchResult(operation='find_files_by_name')
        try:
            root = os.path.abspath(working_dir)
            matchers = self.compile_pattern(pattern, root)
            paths, errors = await asyncio.to_thread(self._walk, root, matchers)
            result.extend(paths)
            for error in errors:
                self.diagnostics.log_tool_stderr(error)
                result.add_error(error)
            self.logger.debug(f"Pattern {pattern!r} matched {len(paths)} files under {root}")
        except Exception as e:
            message = f"Error in find_files_by_name: {e}"
            self.diagnostics.log_tool_stderr(message)
            result.mark_degraded(message)
        return result

    async def list_all_files(self, working_dir: str) -> SearchResult:
        """Enumerate every file under the working directory."""
        return await self.find_files_by_name(self.CATCH_ALL, working_dir)

    def compile_pattern(self, pattern: str, root: str) -> List[re.Pattern]:
        """
        Compile a glob pattern into one regex per brace alternative.

        Args:
            pattern: Glob pattern, relative or absolute
            root: Absolute working directory

        Returns:
            List of compiled regular expressions

        Raises:
            GlobPatternError: If the pattern is empty, escapes the root, or is malformed
        """
        if not pattern or not pattern.strip():
            raise GlobPatternError("Pattern cannot be empty")

        normalized = pattern.strip()
        if os.path.isabs(normalized):
            normalized = os.path.relpath(normalized, root)
            if normalized == '..' or normalized.startswith('../'):
                raise GlobPatternError(f"Pattern is outside the working directory: {pattern}")
        while normalized.startswith('./'):
            normalized = normalized[2:]

        compiled = []
        for alternative in expand_braces(normalized):
            try:
                compiled.append(re.compile(glob_to_regex(alternative)))
            except re.error as e:
                raise GlobPatternError(f"Invalid pattern '{pattern}': {e}") from e
        return compiled

    def _walk(self, root: str, matchers: List[re.Pattern]) -> Tuple[List[str], List[str]]:
        """
        Walk the tree once and collect matching files.

        Returns:
            Tuple of (sorted relative paths, per-directory error messages)
        """
        if not os.path.exists(root):
            raise FileNotFoundError(errno.ENOENT, "Working directory not found", root)
        if not os.path.isdir(root):
            raise NotADirectoryError(errno.ENOTDIR, "Working directory is not a directory", root)

        errors = []

        def on_error(error: OSError) -> None:
            if error.filename is not None and os.path.abspath(error.filename) == root:
                raise error
            errors.append(f"Error reading directory {error.filename}: {error}")

        matches = []
        for current_dir, subdirs, files in os.walk(root, onerror=on_error):
            subdirs[:] = sorted(d for d in subdirs if d != self.config.dependency_dir)

            rel_dir = to_reference(os.path.relpath(current_dir, root))
            for filename in files:
                rel_path = filename if rel_dir == '.' else f"{rel_dir}/{filename}"
                if not any(matcher.fullmatch(rel_path) for matcher in matchers):
                    continue
                if self.path_filter.is_excluded_candidate(rel_path, root):
                    continue
                matches.append(rel_path)

        return sorted(matches), errors
