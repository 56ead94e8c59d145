"""
Core data models for the comparison engine.

This module defines the values produced by a comparison run:
- Engine states
- Result tree nodes for hierarchical display
- The final comparison result

All models are UI-agnostic. The directory and file entries that make up
the compared trees live in deepcompare.core.folder.tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from deepcompare.core.folder.tree import DirectoryEntry, FileEntry
    from deepcompare.services.settings import ComparisonOptions


# =============================================================================
# Enumerations
# =============================================================================

class EngineState(Enum):
    """Phase of a comparison run."""
    IDLE = auto()
    SCANNING_SOURCE = auto()
    SCANNING_TARGET = auto()
    HASHING_SOURCE = auto()
    HASHING_TARGET = auto()
    COMPARING = auto()
    CLASSIFYING = auto()
    DONE = auto()
    FAILED = auto()
    CANCELLED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (EngineState.DONE, EngineState.FAILED, EngineState.CANCELLED)


class FileStatus(Enum):
    """Classification of a file after comparison."""
    MATCHING = auto()   # Present on both sides with equal digests
    MISSING = auto()    # No same-named companion on the other side
    CHANGED = auto()    # Present on both sides, digests differ or unknown


# =============================================================================
# Size Formatting
# =============================================================================

_SIZE_UNITS = (
    (1 << 40, "TiB"),
    (1 << 30, "GiB"),
    (1 << 20, "MiB"),
    (1 << 10, "kiB"),
)


def format_size(num_bytes: int) -> str:
    """
    Format a byte count with binary units.

    Values are truncated to whole units, and a unit is only used once the
    count strictly exceeds it (1024 bytes is "1024 B").
    """
    for threshold, unit in _SIZE_UNITS:
        if num_bytes > threshold:
            return f"{num_bytes // threshold} {unit}"
    return f"{num_bytes} B"


# =============================================================================
# Result Tree
# =============================================================================

@dataclass
class ResultNode:
    """
    A node in a classified result tree.

    Directory nodes only exist when they contain at least one relevant file
    somewhere below them.
    """
    name: str
    is_directory: bool = True
    entry: Optional['FileEntry'] = None
    children: list['ResultNode'] = field(default_factory=list)

    @property
    def child_count(self) -> int:
        return len(self.children)

    def iter_all(self) -> Iterator['ResultNode']:
        """Iterate over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.iter_all()

    def iter_files(self) -> Iterator['ResultNode']:
        """Iterate over file leaves below this node."""
        for node in self.iter_all():
            if not node.is_directory:
                yield node


# =============================================================================
# Comparison Result
# =============================================================================

@dataclass(frozen=True)
class ComparisonResult:
    """
    Complete result of a comparison run.

    The file lists are filled by one classification pass after both trees
    have been compared, and are stored as tuples so they cannot change
    afterwards.
    """
    source_directory: 'DirectoryEntry'
    target_directory: 'DirectoryEntry'
    options: 'ComparisonOptions'
    total_files: int = 0
    total_bytes: int = 0
    matching_files: tuple['FileEntry', ...] = ()
    source_missing_files: tuple['FileEntry', ...] = ()
    target_missing_files: tuple['FileEntry', ...] = ()
    changed_files: tuple['FileEntry', ...] = ()

    @property
    def source_path(self) -> Path:
        return self.source_directory.path

    @property
    def target_path(self) -> Path:
        return self.target_directory.path

    @property
    def discrepancy_count(self) -> int:
        """Number of files that are not a clean match."""
        return (len(self.source_missing_files) +
                len(self.target_missing_files) +
                len(self.changed_files))

    @property
    def is_match(self) -> bool:
        """True if both trees matched each other completely."""
        return self.source_directory.match and self.target_directory.match

    @property
    def total_size_formatted(self) -> str:
        return format_size(self.total_bytes)

    def source_relative_paths(self, files: tuple['FileEntry', ...]) -> list[str]:
        """Paths of source-side files relative to the source root."""
        return [f.relative_path(self.source_path) for f in files]

    def target_relative_paths(self, files: tuple['FileEntry', ...]) -> list[str]:
        """Paths of target-side files relative to the target root."""
        return [f.relative_path(self.target_path) for f in files]
