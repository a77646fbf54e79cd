"""
Data models for codequery.

This module contains the configuration and result structures shared by all queries.
"""

from .config import QueryConfig, LoggingConfig
from .search_results import SearchResult, ImportReference, ImportKind, to_reference

__all__ = [
    'QueryConfig',
    'LoggingConfig',
    'SearchResult',
    'ImportReference',
    'ImportKind',
    'to_reference'
]
