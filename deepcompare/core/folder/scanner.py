"""
Directory listing helpers for the comparison tree.

Provides:
- Exclusion pattern matching (DOS/UNIX globs or regular expressions)
- Hidden entry detection
- Sorted, error-checked directory listing
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Iterable, Optional, TYPE_CHECKING

from deepcompare.core.errors import ScanError

if TYPE_CHECKING:
    from deepcompare.services.settings import ComparisonOptions


# Windows and macOS file systems are case-insensitive by default; everything
# else is treated as case-sensitive.
CASE_INSENSITIVE = sys.platform == 'win32' or sys.platform == 'darwin'


def glob_to_regex(pattern: str) -> str:
    """
    Convert a simple DOS/UNIX wildcard to an anchored regular expression.

    '?' matches exactly one character and '*' matches any run of
    characters. Everything else is matched literally.
    """
    result = []
    for c in pattern:
        if c == '?':
            result.append('.')
        elif c == '*':
            result.append('.*')
        else:
            result.append(re.escape(c))
    return '^' + ''.join(result) + '$'


class ExclusionMatcher:
    """
    Tests simple file names against a list of exclusion patterns.

    Patterns are compiled once. A pattern that fails to compile is skipped
    and never matches, so one bad entry cannot abort a scan.
    """

    def __init__(self, patterns: Iterable[str], regex: bool = True):
        flags = re.IGNORECASE if CASE_INSENSITIVE else 0
        self._patterns: list[re.Pattern] = []

        for pattern in patterns:
            if not regex:
                pattern = glob_to_regex(pattern)
            try:
                self._patterns.append(re.compile(pattern, flags))
            except re.error as e:
                logging.debug(f"ExclusionMatcher - Ignoring invalid pattern {pattern!r}: {e}")

    @classmethod
    def from_options(cls, options: 'ComparisonOptions') -> 'ExclusionMatcher':
        """Create a matcher for the exclusions of a set of options."""
        return cls(options.exclusions, options.exclusions_regex)

    def __len__(self) -> int:
        return len(self._patterns)

    def should_exclude(self, name: str) -> bool:
        """Return True if the simple name matches any exclusion pattern."""
        for pattern in self._patterns:
            if pattern.fullmatch(name):
                return True
        return False


def is_hidden(entry: os.DirEntry) -> bool:
    """Check whether a directory entry is hidden on this platform."""
    if entry.name.startswith('.'):
        return True

    # On Windows, check hidden attribute
    if os.name == 'nt':
        try:
            import ctypes
            attrs = ctypes.windll.kernel32.GetFileAttributesW(entry.path)
            if attrs != -1:
                return bool(attrs & 0x2)  # FILE_ATTRIBUTE_HIDDEN
        except Exception as e:
            logging.debug(f"Scanner - Failed to get Windows file attributes for {entry.path}: {e}")

    return False


def list_entries(path: Path) -> list[os.DirEntry]:
    """
    List the immediate children of a directory, sorted by name.

    Raises:
        ScanError: if the path does not exist, is not a directory, or
            cannot be listed
    """
    if not path.exists():
        raise ScanError(path, "Directory not found")
    if not path.is_dir():
        raise ScanError(path, "Not a directory")

    try:
        with os.scandir(path) as it:
            entries = list(it)
    except OSError as e:
        raise ScanError(path, f"Cannot list directory ({e.strerror or e})") from e

    entries.sort(key=lambda entry: entry.name)
    return entries


def directory_identity(path: Path) -> Optional[tuple[int, int]]:
    """Return (device, inode) for a directory, used to detect symlink loops."""
    try:
        st = path.stat()
    except OSError:
        return None
    if st.st_ino == 0:
        return None
    return (st.st_dev, st.st_ino)
