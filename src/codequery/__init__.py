"""
codequery - Core Package

Read-only code-intelligence queries over a source tree: find files by name,
by content, or by structural relationship (imports, tests, class hierarchy,
style sheets, external modules).
"""

from .diagnostics import Diagnostics, LoggingDiagnostics, configure_logging
from .models import QueryConfig, SearchResult, ImportReference, ImportKind
from .tools import QueryLibrary
from .tools.query_library import (
    find_files_by_name,
    find_files_by_content,
    find_imported_files,
    find_dependencies,
    find_related_classes,
    find_style_dependencies,
    find_related_tests,
    find_component_usage,
    find_api_usage,
    find_function_definition,
    find_recently_modified_files,
    find_external_dependency
)

__version__ = "0.1.0"

__all__ = [
    'Diagnostics',
    'LoggingDiagnostics',
    'configure_logging',
    'QueryConfig',
    'SearchResult',
    'ImportReference',
    'ImportKind',
    'QueryLibrary',
    'find_files_by_name',
    'find_files_by_content',
    'find_imported_files',
    'find_dependencies',
    'find_related_classes',
    'find_style_dependencies',
    'find_related_tests',
    'find_component_usage',
    'find_api_usage',
    'find_function_definition',
    'find_recently_modified_files',
    'find_external_dependency'
]
