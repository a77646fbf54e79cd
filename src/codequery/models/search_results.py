"""
Search result data models for codequery.

This module defines the values queries hand back to the caller: the ordered
``SearchResult`` of relative paths together with the diagnostics collected
while producing it, and the tagged ``ImportReference`` extracted from an
import statement.
"""

from typing import Dict, List, Optional, Any, Iterable
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator


def to_reference(path: str) -> str:
    """Normalize a relative path to the forward-slash form used in results."""
    reference = path.replace('\\', '/')
    while reference.startswith('./'):
        reference = reference[2:]
    return reference


class ImportKind(Enum):
    """How an import specifier is resolved."""
    RELATIVE = "relative"
    BARE = "bare"


class ImportReference(BaseModel):
    """
    An import specifier extracted from a source file.

    Attributes:
        specifier: Literal specifier text between the quotes
        kind: RELATIVE when the specifier starts with ``.``, otherwise BARE
        resolved: Working-directory relative path for relative specifiers
    """

    specifier: str = Field(..., min_length=1, description="Literal specifier text")
    kind: ImportKind = Field(..., description="Relative or bare specifier")
    resolved: Optional[str] = Field(None, description="Resolved file reference")

    @field_validator('kind', mode='before')
    @classmethod
    def validate_kind(cls, v) -> ImportKind:
        """Ensure kind is an ImportKind enum."""
        if isinstance(v, str):
            try:
                return ImportKind(v)
            except ValueError:
                raise ValueError(f"Invalid import kind: {v}")
        return v

    @field_validator('resolved')
    @classmethod
    def validate_resolved(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return to_reference(v)

    @model_validator(mode='after')
    def validate_reference(self):
        """Bare specifiers never carry a resolved path."""
        if self.kind == ImportKind.BARE and self.resolved is not None:
            raise ValueError("Bare import specifiers cannot be resolved to a file")
        return self

    @classmethod
    def classify(cls, specifier: str) -> ImportKind:
        """Classify a specifier as relative or bare."""
        return ImportKind.RELATIVE if specifier.startswith('.') else ImportKind.BARE

    def is_relative(self) -> bool:
        return self.kind == ImportKind.RELATIVE

    def as_result_entry(self) -> str:
        """The value reported for this import in a path listing."""
        if self.is_relative() and self.resolved is not None:
            return self.resolved
        return self.specifier

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['kind'] = self.kind.value
        return data


class SearchResult(BaseModel):
    """
    Ordered outcome of a single query.

    Queries never raise past their own boundary. Failures are recorded in
    ``errors``, and a failure that prevented the whole query from running
    marks the result as ``degraded`` and leaves it empty.

    Attributes:
        operation: Name of the query that produced this result
        paths: Relative file references (or specifier text) in discovery order
        errors: Diagnostics emitted while running the query
        degraded: Whether a top-level failure emptied the result
    """

    operation: str = Field(..., min_length=1, description="Query that produced this result")
    paths: List[str] = Field(default_factory=list, description="Ordered result entries")
    errors: List[str] = Field(default_factory=list, description="Diagnostics collected during the query")
    degraded: bool = Field(False, description="Whether a top-level failure emptied the result")

    @field_validator('paths')
    @classmethod
    def validate_paths(cls, v: List[str]) -> List[str]:
        """Normalize every entry to forward-slash form."""
        return [to_reference(path) for path in v]

    def add_path(self, path: str) -> None:
        """Append one entry, keeping discovery order."""
        self.paths.append(to_reference(path))

    def extend(self, paths: Iterable[str]) -> None:
        """Append several entries, keeping discovery order."""
        for path in paths:
            self.add_path(path)

    def merge(self, other: 'SearchResult') -> None:
        """Append the entries and errors of a nested query."""
        self.extend(other.paths)
        self.errors.extend(other.errors)

    def add_error(self, error: str) -> None:
        """Add an error message to the result."""
        self.errors.append(error)

    def mark_degraded(self, error: str) -> None:
        """Record a top-level failure and drop any partial entries."""
        self.paths = []
        self.degraded = True
        self.add_error(error)

    def deduplicate(self) -> None:
        """Remove repeated entries, keeping the first occurrence."""
        self.paths = list(dict.fromkeys(self.paths))

    def get_match_count(self) -> int:
        """Get the number of entries."""
        return len(self.paths)

    def has_errors(self) -> bool:
        """Check if any errors occurred during the query."""
        return len(self.errors) > 0

    def to_list(self) -> List[str]:
        """Get a copy of the ordered entries."""
        return list(self.paths)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to dictionary representation."""
        data = self.model_dump()
        data['match_count'] = self.get_match_count()
        data['has_errors'] = self.has_errors()
        return data

    def __len__(self) -> int:
        return len(self.paths)

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __str__(self) -> str:
        """String representation of the result."""
        parts = [f"{self.operation}: {self.get_match_count()} matches"]

        if self.has_errors():
            parts.append(f"Errors: {len(self.errors)}")

        if self.degraded:
            parts.append("Degraded")

        return " | ".join(parts)
