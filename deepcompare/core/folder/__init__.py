"""
Folder comparison module.

Provides functionality for:
- Recursive directory scanning with exclusion patterns
- Content hashing of whole trees
- Bidirectional tree-to-tree comparison and classification
"""

from deepcompare.core.folder.scanner import (
    CASE_INSENSITIVE,
    ExclusionMatcher,
    glob_to_regex,
)
from deepcompare.core.folder.tree import (
    DirectoryEntry,
    FileEntry,
)
from deepcompare.core.folder.comparer import (
    ComparisonEngine,
    validate_comparison_paths,
)

__all__ = [
    # Scanner
    'CASE_INSENSITIVE',
    'ExclusionMatcher',
    'glob_to_regex',
    # Tree
    'DirectoryEntry',
    'FileEntry',
    # Engine
    'ComparisonEngine',
    'validate_comparison_paths',
]
