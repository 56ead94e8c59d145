"""
Observer interfaces consumed by the comparison engine.

Front ends (console, GUI) implement these to receive feedback. All
methods are called synchronously from the engine's own thread.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StatusListener(Protocol):
    """Receives phase changes, discovered totals and errors."""

    def update_status_message(self, message: str) -> None:
        """A new phase has started."""
        ...

    def update_total_files(self, file_count: int) -> None:
        """Number of files found in both trees. Sent once, after scanning."""
        ...

    def update_total_bytes(self, total_bytes: int) -> None:
        """Number of bytes to hash in both trees. Sent once, after scanning."""
        ...

    def error_message(self, message: str) -> None:
        ...


@runtime_checkable
class HashProgressListener(Protocol):
    """Receives byte-level progress while files are hashed."""

    def new_file(self) -> None:
        """A new file is about to be hashed."""
        ...

    def update_progress(self, bytes_read: int) -> None:
        """Another chunk of the current file has been consumed."""
        ...
