"""
Query tools for codequery.

This module contains the components behind every query: path exclusion,
glob enumeration, content scanning, import extraction and the composed
query library.
"""

from .path_filter import PathFilter
from .fs_walker import FileEnumerator, GlobPatternError, escape_glob, expand_braces, glob_to_regex
from .content_scanner import ContentScanner
from .import_extractor import ImportExtractor
from .query_library import QueryLibrary, get_default_library

__all__ = [
    'PathFilter',
    'FileEnumerator',
    'GlobPatternError',
    'escape_glob',
    'expand_braces',
    'glob_to_regex',
    'ContentScanner',
    'ImportExtractor',
    'QueryLibrary',
    'get_default_library'
]
