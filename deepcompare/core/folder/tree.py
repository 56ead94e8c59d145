"""
Directory and file entries making up a comparison tree.

A tree is built by scanning a root directory, then hashed, then compared
against the tree of the opposite side. Each step mutates the entries in
place; there are no parent pointers since comparison always receives the
companion subtree explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

from deepcompare.core.errors import ComparisonCancelled, ScanError
from deepcompare.core.folder.scanner import (
    ExclusionMatcher,
    directory_identity,
    is_hidden,
    list_entries,
)
from deepcompare.core.models import FileStatus, ResultNode, format_size

if TYPE_CHECKING:
    from deepcompare.core.listeners import HashProgressListener
    from deepcompare.services.comparison_log import ComparisonLog
    from deepcompare.services.hashing import HashingService
    from deepcompare.services.settings import ComparisonOptions


CancelCheck = Callable[[], bool]


def _raise_if_cancelled(cancel_check: Optional[CancelCheck]) -> None:
    if cancel_check and cancel_check():
        raise ComparisonCancelled("Comparison cancelled")


@dataclass
class FileEntry:
    """A regular file in a comparison tree."""
    path: Path
    size: int = 0
    hash: Optional[str] = None
    path_match: bool = False
    hash_match: bool = False

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size_formatted(self) -> str:
        return format_size(self.size)

    @property
    def status(self) -> FileStatus:
        """Classification derived from the comparison flags."""
        if not self.path_match:
            return FileStatus.MISSING
        if not self.hash_match:
            return FileStatus.CHANGED
        return FileStatus.MATCHING

    def relative_path(self, root: Path | str) -> str:
        """
        Path of this file relative to a tree root.

        Falls back to the absolute path if the file is not under root.
        """
        try:
            return str(self.path.relative_to(root))
        except ValueError:
            return str(self.path)

    def scan(self) -> None:
        """Record the current size of the file."""
        self.size = self.path.stat().st_size

    def hash_content(
        self,
        hashing: 'HashingService',
        listener: Optional['HashProgressListener'] = None,
        log: Optional['ComparisonLog'] = None,
        cancel_check: Optional[CancelCheck] = None
    ) -> None:
        """
        Compute the content digest of this file.

        Every chunk's byte count is reported to the listener. If the file
        cannot be read, the hash is left as None so the file can never be
        reported as matching.
        """
        if listener:
            listener.new_file()

        try:
            result = hashing.hash_file(
                self.path,
                progress_callback=listener.update_progress if listener else None,
                cancel_check=cancel_check
            )
        except OSError as e:
            self.hash = None
            logging.warning(f"FileEntry - Could not hash {self.path}: {e}")
            if log:
                log.hash_error(self.path, e)
            return

        self.hash = result.hash_base64

    def compare(self, companion: Optional['FileEntry']) -> None:
        """Set hash_match against the same-named file on the other side."""
        if self.hash is None or companion is None:
            self.hash_match = False
        else:
            self.hash_match = self.hash == companion.hash

    def compile_results(
        self,
        missing_files: list['FileEntry'],
        changed_files: Optional[list['FileEntry']] = None,
        matching_files: Optional[list['FileEntry']] = None
    ) -> None:
        """Append this file to the list matching its classification."""
        if not self.path_match:
            missing_files.append(self)
        elif not self.hash_match:
            if changed_files is not None:
                changed_files.append(self)
        else:
            if matching_files is not None:
                matching_files.append(self)


@dataclass
class DirectoryEntry:
    """
    A directory in a comparison tree.

    Children are kept sorted by name. size and count are totals over the
    whole subtree, computed during scan.
    """
    path: Path
    match: bool = False
    subdirectories: list['DirectoryEntry'] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)
    size: int = 0
    count: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size_formatted(self) -> str:
        return format_size(self.size)

    def scan(
        self,
        options: 'ComparisonOptions',
        matcher: Optional[ExclusionMatcher] = None,
        log: Optional['ComparisonLog'] = None,
        cancel_check: Optional[CancelCheck] = None,
        _ancestors: frozenset = frozenset()
    ) -> None:
        """
        Recursively map the file system below this directory.

        Any previous children are discarded first. Entries that fail are
        logged and skipped.

        Raises:
            ScanError: if this directory itself cannot be listed
            ComparisonCancelled: if cancel_check asked to stop
        """
        self.subdirectories.clear()
        self.files.clear()
        self.size = 0
        self.count = 0

        if matcher is None:
            matcher = ExclusionMatcher.from_options(options)

        identity = directory_identity(self.path)
        if identity is not None:
            _ancestors = _ancestors | {identity}

        for entry in list_entries(self.path):
            _raise_if_cancelled(cancel_check)

            entry_path = Path(entry.path)
            try:
                if not options.check_hidden_files and is_hidden(entry):
                    continue
                if matcher.should_exclude(entry.name):
                    continue

                if entry.is_dir():
                    if directory_identity(entry_path) in _ancestors:
                        logging.warning(f"DirectoryEntry - Skipping directory loop at {entry_path}")
                        continue

                    subdirectory = DirectoryEntry(entry_path)
                    subdirectory.scan(options, matcher, log, cancel_check, _ancestors)
                    self.subdirectories.append(subdirectory)
                    self.size += subdirectory.size
                    self.count += subdirectory.count

                elif entry.is_file():
                    file_entry = FileEntry(entry_path)
                    file_entry.scan()
                    self.files.append(file_entry)
                    self.size += file_entry.size
                    self.count += 1

            except (OSError, ScanError) as e:
                logging.warning(f"DirectoryEntry - Error scanning {entry_path}: {e}")
                if log:
                    log.scan_error(entry_path, e)

        if options.debug_mode:
            logging.debug(
                f"DirectoryEntry - Scanned {self.path}: {self.count} files, {self.size_formatted}"
            )

    def hash_content(
        self,
        hashing: 'HashingService',
        listener: Optional['HashProgressListener'] = None,
        log: Optional['ComparisonLog'] = None,
        cancel_check: Optional[CancelCheck] = None
    ) -> None:
        """Hash every file in this subtree, files before subdirectories."""
        for file_entry in self.files:
            _raise_if_cancelled(cancel_check)
            file_entry.hash_content(hashing, listener, log, cancel_check)
        for subdirectory in self.subdirectories:
            subdirectory.hash_content(hashing, listener, log, cancel_check)

    def compare(self, companion: 'DirectoryEntry') -> None:
        """
        Compare this subtree against the same place in the other tree.

        Only detects what is missing from the companion, so a full
        comparison calls this once from each side.
        """
        self.match = True

        companion_files = {f.name: f for f in companion.files}
        for file_entry in self.files:
            companion_file = companion_files.get(file_entry.name)
            if companion_file is not None:
                file_entry.path_match = True
                companion_file.path_match = True
                file_entry.compare(companion_file)
                if not file_entry.hash_match:
                    self.match = False
            else:
                file_entry.path_match = False
                self.match = False

        companion_dirs = {d.name: d for d in companion.subdirectories}
        for subdirectory in self.subdirectories:
            companion_dir = companion_dirs.get(subdirectory.name)
            if companion_dir is not None:
                subdirectory.compare(companion_dir)
                if not subdirectory.match:
                    self.match = False
            else:
                subdirectory.match = False
                self.match = False

    def compile_results(
        self,
        missing_files: list[FileEntry],
        changed_files: Optional[list[FileEntry]] = None,
        matching_files: Optional[list[FileEntry]] = None
    ) -> None:
        """Sort every file in this subtree into the supplied lists."""
        for file_entry in self.files:
            file_entry.compile_results(missing_files, changed_files, matching_files)
        for subdirectory in self.subdirectories:
            subdirectory.compile_results(missing_files, changed_files, matching_files)

    def build_tree(
        self,
        missing_node: ResultNode,
        changed_node: ResultNode,
        matching_node: ResultNode
    ) -> None:
        """
        Add this subtree's files under three classification roots.

        Directory nodes are only attached where they end up with children.
        """
        for file_entry in self.files:
            node = ResultNode(file_entry.name, is_directory=False, entry=file_entry)
            status = file_entry.status
            if status is FileStatus.MISSING:
                missing_node.children.append(node)
            elif status is FileStatus.CHANGED:
                changed_node.children.append(node)
            else:
                matching_node.children.append(node)

        for subdirectory in self.subdirectories:
            my_missing = ResultNode(subdirectory.name)
            my_changed = ResultNode(subdirectory.name)
            my_matching = ResultNode(subdirectory.name)
            subdirectory.build_tree(my_missing, my_changed, my_matching)

            if my_missing.child_count:
                missing_node.children.append(my_missing)
            if my_changed.child_count:
                changed_node.children.append(my_changed)
            if my_matching.child_count:
                matching_node.children.append(my_matching)

    def iter_files(self):
        """Iterate over every file in this subtree, in scan order."""
        yield from self.files
        for subdirectory in self.subdirectories:
            yield from subdirectory.iter_files()
