"""
Exclusion predicate shared by every scan.
"""

import os
from typing import Iterable, List, Optional


class PathFilter:
    """
    Decides whether a candidate path is excluded from results.

    A path is excluded when it mentions the dependency directory, and a
    candidate is additionally excluded when it currently resolves to a
    directory on disk.
    """

    def __init__(self, dependency_dir: str = "node_modules"):
        self.dependency_dir = dependency_dir

    def is_excluded_directory_name(self, path: str) -> bool:
        """Check whether the path string contains the dependency directory segment."""
        return self.dependency_dir in str(path)

    def is_excluded_candidate(self, path: str, working_dir: Optional[str] = None) -> bool:
        """
        Check whether a candidate should be pruned from a result.

        Args:
            path: Candidate path, relative to ``working_dir`` when one is given
            working_dir: Root the candidate is relative to

        Returns:
            True if excluded by name or the path is a directory
        """
        full_path = os.path.join(working_dir, path) if working_dir else path
        return self.is_excluded_directory_name(path) or os.path.isdir(full_path)

    def filter(self, paths: Iterable[str], working_dir: Optional[str] = None) -> List[str]:
        """Keep the paths that are not excluded candidates."""
        return [path for path in paths if not self.is_excluded_candidate(path, working_dir)]
