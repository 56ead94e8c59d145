"""
Plain-text run log written next to a comparison.

The log is owned by a single engine run: it is truncated when opened,
appended to only by that run, and closed exactly once.
"""

from __future__ import annotations

import logging
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, TYPE_CHECKING

from deepcompare import APP_DISPLAY_NAME, APP_VERSION
from deepcompare.core.models import format_size

if TYPE_CHECKING:
    from deepcompare.core.models import ComparisonResult
    from deepcompare.services.settings import ComparisonOptions


LOG_FILE_NAME = "deep-compare.log"


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


class ComparisonLog:
    """Writer for deep-compare.log."""

    def __init__(self, stream: TextIO, path: Optional[Path] = None, debug: bool = False):
        self._stream = stream
        self.path = path
        self.debug = debug
        self.write_error: Optional[Exception] = None

    @classmethod
    def open(cls, directory: Path | str, debug: bool = False) -> 'ComparisonLog':
        """
        Create (or overwrite) the log file inside a directory.

        Raises:
            OSError: if the file cannot be created
        """
        path = Path(directory).absolute() / LOG_FILE_NAME
        stream = open(path, 'w', encoding='utf-8', errors='backslashreplace')
        return cls(stream, path, debug)

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def write_line(self, text: str = "") -> None:
        """
        Append one line.

        The first write failure is kept in write_error and later writes
        are dropped, so a full disk does not abort the comparison.
        """
        if self.write_error is not None:
            return
        try:
            self._stream.write(text + "\n")
        except (OSError, UnicodeError) as e:
            logging.error(f"ComparisonLog - Write to {self.path} failed: {e}")
            self.write_error = e

    def write_preamble(
        self,
        source_path: Path,
        target_path: Path,
        options: 'ComparisonOptions'
    ) -> None:
        """Header describing what is being compared and how."""
        self.write_line(f"{APP_DISPLAY_NAME} v{APP_VERSION}")
        self.write_line(f"Beginning comparison at {datetime.now():%Y-%m-%d %H:%M:%S}")
        self.write_line(f"Source directory: {source_path}")
        self.write_line(f"Target directory: {target_path}")
        self.write_line(f"Hash algorithm: {options.hash_algorithm.value}")

        if options.exclusions:
            self.write_line(f"Exclusions use regular expressions: {_yes_no(options.exclusions_regex)}")
            self.write_line("Exclusions:")
            for exclusion in options.exclusions:
                self.write_line(f"\t{exclusion}")

        self.write_line(f"Check hidden files: {_yes_no(options.check_hidden_files)}")

    def phase(self, message: str) -> None:
        self.write_line(message)

    def debug_line(self, message: str) -> None:
        """Written only when debug output is enabled."""
        if self.debug:
            self.write_line(f"DEBUG: {message}")

    def scan_error(self, path: Path, error: BaseException) -> None:
        self.write_line(f"Error scanning {path}")
        if self.debug:
            self.write_line(str(error))

    def hash_error(self, path: Path, error: BaseException) -> None:
        self.write_line(f"Error hashing {path}")
        self.write_line(str(error))

    def totals(self, total_files: int, total_bytes: int) -> None:
        self.write_line(f"Files discovered: {total_files}")
        self.write_line(f"Bytes discovered: {format_size(total_bytes)}")

    def write_results(self, result: 'ComparisonResult') -> None:
        """
        Record the outcome.

        Only discrepancies are listed; a full match gets a single line.
        """
        if result.is_match:
            self.write_line("All files match.")
            return

        self.write_line("Discrepancies found.")

        if result.source_missing_files:
            self.write_line("Files in source missing from target:")
            for path in result.source_relative_paths(result.source_missing_files):
                self.write_line(f"\t{path}")

        if result.target_missing_files:
            self.write_line("Files in target missing from source:")
            for path in result.target_relative_paths(result.target_missing_files):
                self.write_line(f"\t{path}")

        if result.changed_files:
            self.write_line("Files changed between source and target:")
            for path in result.source_relative_paths(result.changed_files):
                self.write_line(f"\t{path}")

    def write_failure(self, error: BaseException) -> None:
        """Record an exception that ended the run. Always written in full."""
        self.write_line("An error occurred during the comparison.")
        self.write_line(''.join(traceback.format_exception(error)).rstrip())

    def close(self) -> None:
        """Write the end timestamp, flush and close. Safe to call twice."""
        if self._stream.closed:
            return
        try:
            self.write_line(f"Comparison ended at {datetime.now():%Y-%m-%d %H:%M:%S}")
            self._stream.flush()
        finally:
            self._stream.close()
