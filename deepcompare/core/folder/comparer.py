"""
Comparison engine.

Maps a source and a target directory tree, hashes every file in both,
compares the trees from both sides and classifies each file as:
- Matching
- Missing from the target (source-only)
- Missing from the source (target-only)
- Changed
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from deepcompare.core.errors import ComparisonCancelled, ComparisonError
from deepcompare.core.folder.scanner import ExclusionMatcher
from deepcompare.core.folder.tree import DirectoryEntry, FileEntry
from deepcompare.core.models import ComparisonResult, EngineState
from deepcompare.services.comparison_log import ComparisonLog
from deepcompare.services.hashing import HashingService

if TYPE_CHECKING:
    from deepcompare.core.listeners import HashProgressListener, StatusListener
    from deepcompare.services.settings import ComparisonOptions


STATUS_MESSAGES = {
    EngineState.IDLE: "Starting comparison...",
    EngineState.SCANNING_SOURCE: "Building source directory map...",
    EngineState.SCANNING_TARGET: "Building target directory map...",
    EngineState.HASHING_SOURCE: "Hashing source files...",
    EngineState.HASHING_TARGET: "Hashing target files...",
    EngineState.COMPARING: "Comparing directory trees...",
    EngineState.CLASSIFYING: "Generating report...",
    EngineState.DONE: "Comparison complete.",
    EngineState.CANCELLED: "Comparison cancelled.",
}

ERROR_GENERIC = "An error occurred during the comparison. See the log for details."
ERROR_LOG_WRITE = "The log file could not be written completely."
ERROR_LOG_CLOSE = "The log file could not be closed."


def _contains(parent: Path, child: Path) -> bool:
    """True if child is parent or lies below it."""
    return child == parent or parent in child.parents


def validate_comparison_paths(
    source_path: Path | str,
    target_path: Path | str,
    log_directory: Optional[Path | str] = None
) -> list[str]:
    """
    Check the preconditions for a comparison.

    Returns:
        A list of error messages; empty if the paths are usable
    """
    errors = []

    source = Path(source_path).resolve()
    target = Path(target_path).resolve()

    if not source.is_dir():
        errors.append(f"Source path is not a valid directory: {source_path}")
    if not target.is_dir():
        errors.append(f"Target path is not a valid directory: {target_path}")

    if _contains(source, target) or _contains(target, source):
        errors.append("Source and target paths must not be the same or contain one another.")

    if log_directory is not None:
        log_dir = Path(log_directory).resolve()
        if not log_dir.is_dir():
            errors.append(f"Log path is not a valid directory: {log_directory}")
        elif _contains(source, log_dir) or _contains(target, log_dir):
            errors.append("The log file must not be written inside the source or target path.")

    return errors


class ComparisonEngine:
    """
    Runs one comparison of two directory trees.

    Phases run strictly in sequence on the calling thread:
    scan source, scan target, hash source, hash target, compare, classify.
    Run it on a worker thread to keep a front end responsive; cancel()
    may be called from any thread.
    """

    def __init__(
        self,
        source_path: Path | str,
        target_path: Path | str,
        options: 'ComparisonOptions',
        hash_listener: Optional['HashProgressListener'] = None,
        status_listener: Optional['StatusListener'] = None
    ):
        self.source_path = Path(source_path).absolute()
        self.target_path = Path(target_path).absolute()
        self.options = options.with_regex_exclusions()
        self.hash_listener = hash_listener
        self.status_listener = status_listener

        # Raises UnsupportedHashError before anything starts
        self._hashing = HashingService(self.options.hash_algorithm, self.options.chunk_size)

        self._state = EngineState.IDLE
        self._lock = threading.Lock()
        self._cancel_event = threading.Event()

    @property
    def state(self) -> EngineState:
        """Current engine state."""
        with self._lock:
            return self._state

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Ask a running comparison to stop at the next file or chunk."""
        self._cancel_event.set()

    def run(self) -> Optional[ComparisonResult]:
        """
        Perform the comparison.

        Returns:
            The ComparisonResult, or None if the run was cancelled

        Raises:
            ComparisonError: if the run failed; no partial result is kept
        """
        with self._lock:
            if self._state is not EngineState.IDLE:
                raise ComparisonError("A comparison engine can only be run once")

        log: Optional[ComparisonLog] = None

        try:
            self._notify_status(STATUS_MESSAGES[EngineState.IDLE])

            if self.options.log_file_path is not None:
                log = ComparisonLog.open(self.options.log_file_path, self.options.debug_mode)
                log.write_preamble(self.source_path, self.target_path, self.options)

            result = self._compare(log)

        except ComparisonCancelled:
            self._enter(EngineState.CANCELLED, log)
            logging.info("ComparisonEngine - Comparison cancelled")
            return None

        except Exception as e:
            with self._lock:
                self._state = EngineState.FAILED
            if self.options.debug_mode:
                logging.exception("ComparisonEngine - Comparison failed")
            else:
                logging.error(f"ComparisonEngine - Comparison failed: {e}")
            self._notify_error(ERROR_GENERIC)
            if log is not None:
                log.write_failure(e)
            raise ComparisonError(f"Comparison failed: {e}") from e

        finally:
            if log is not None:
                self._close_log(log)

        return result

    def _compare(self, log: Optional[ComparisonLog]) -> ComparisonResult:
        """Run every phase and build the result."""
        source = DirectoryEntry(self.source_path)
        target = DirectoryEntry(self.target_path)
        matcher = ExclusionMatcher.from_options(self.options)
        cancel_check = self._cancel_event.is_set

        self._enter(EngineState.SCANNING_SOURCE, log)
        source.scan(self.options, matcher, log, cancel_check)
        if log is not None:
            log.debug_line(f"Source file count: {source.count}")

        self._enter(EngineState.SCANNING_TARGET, log)
        target.scan(self.options, matcher, log, cancel_check)
        if log is not None:
            log.debug_line(f"Target file count: {target.count}")

        # Totals go out before any hashing starts
        total_files = source.count + target.count
        total_bytes = source.size + target.size
        if self.status_listener:
            self.status_listener.update_total_files(total_files)
            self.status_listener.update_total_bytes(total_bytes)
        if log is not None:
            log.totals(total_files, total_bytes)

        self._enter(EngineState.HASHING_SOURCE, log)
        source.hash_content(self._hashing, self.hash_listener, log, cancel_check)

        self._enter(EngineState.HASHING_TARGET, log)
        target.hash_content(self._hashing, self.hash_listener, log, cancel_check)

        # Each side can only see what is missing from the other
        self._enter(EngineState.COMPARING, log)
        source.compare(target)
        target.compare(source)

        self._enter(EngineState.CLASSIFYING, log)
        matching: list[FileEntry] = []
        source_missing: list[FileEntry] = []
        target_missing: list[FileEntry] = []
        changed: list[FileEntry] = []
        source.compile_results(source_missing, changed, matching)
        target.compile_results(target_missing)

        result = ComparisonResult(
            source_directory=source,
            target_directory=target,
            options=self.options,
            total_files=total_files,
            total_bytes=total_bytes,
            matching_files=tuple(matching),
            source_missing_files=tuple(source_missing),
            target_missing_files=tuple(target_missing),
            changed_files=tuple(changed),
        )

        if log is not None:
            log.write_results(result)

        self._enter(EngineState.DONE, log)
        logging.info(
            f"ComparisonEngine - Done: {len(matching)} matching, {len(source_missing)} source-only, "
            f"{len(target_missing)} target-only, {len(changed)} changed"
        )
        return result

    def _enter(self, state: EngineState, log: Optional[ComparisonLog]) -> None:
        """Move to a new phase and announce it."""
        if not state.is_terminal and self._cancel_event.is_set():
            raise ComparisonCancelled("Comparison cancelled")

        with self._lock:
            self._state = state

        message = STATUS_MESSAGES[state]
        logging.debug(f"ComparisonEngine - {state.name}: {message}")
        self._notify_status(message)
        if log is not None:
            log.phase(message)

    def _close_log(self, log: ComparisonLog) -> None:
        """Close the run log, reporting but not raising I/O failures."""
        try:
            log.close()
        except OSError as e:
            logging.error(f"ComparisonEngine - Could not close log {log.path}: {e}")
            self._notify_error(ERROR_LOG_CLOSE)
            return

        if log.write_error is not None:
            logging.error(f"ComparisonEngine - Could not write log {log.path}: {log.write_error}")
            self._notify_error(ERROR_LOG_WRITE)

    def _notify_status(self, message: str) -> None:
        if self.status_listener:
            self.status_listener.update_status_message(message)

    def _notify_error(self, message: str) -> None:
        if self.status_listener:
            self.status_listener.error_message(message)
