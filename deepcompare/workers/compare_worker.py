"""
Worker running a directory comparison in the background.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QObject

from deepcompare.workers.base_worker import BaseWorker, ProgressInfo
from deepcompare.core.folder.comparer import ComparisonEngine
from deepcompare.core.models import ComparisonResult
from deepcompare.services.settings import ComparisonOptions


class ComparisonWorker(BaseWorker):
    """
    Worker for comparing two directory trees.

    Acts as both status and hash-progress listener for the engine and
    forwards everything through its signals. Byte progress is turned into
    cumulative ProgressInfo values so receivers can show a percentage
    directly.
    """

    def __init__(
        self,
        source_path: str | Path,
        target_path: str | Path,
        options: Optional[ComparisonOptions] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.source_path = Path(source_path)
        self.target_path = Path(target_path)
        self.options = options or ComparisonOptions()
        self._engine: Optional[ComparisonEngine] = None
        self._total_bytes = 0
        self._processed_bytes = 0
        self._files_started = 0

    @property
    def processed_bytes(self) -> int:
        """Bytes hashed so far across both trees."""
        return self._processed_bytes

    def do_work(self) -> Optional[ComparisonResult]:
        self._engine = ComparisonEngine(
            self.source_path,
            self.target_path,
            self.options,
            hash_listener=self,
            status_listener=self
        )

        # cancel() may have been called before the engine existed
        if self.is_cancelled:
            self._engine.cancel()

        return self._engine.run()

    def cancel(self) -> None:
        super().cancel()
        if self._engine:
            self._engine.cancel()

    # StatusListener

    def update_status_message(self, message: str) -> None:
        self.signals.status.emit(message)

    def update_total_files(self, file_count: int) -> None:
        self.signals.total_files.emit(file_count)

    def update_total_bytes(self, total_bytes: int) -> None:
        self._total_bytes = total_bytes
        self.signals.total_bytes.emit(total_bytes)

    def error_message(self, message: str) -> None:
        self.signals.error_message.emit(message)

    # HashProgressListener

    def new_file(self) -> None:
        self._files_started += 1

    def update_progress(self, bytes_read: int) -> None:
        self._processed_bytes += bytes_read
        self.signals.progress.emit(ProgressInfo(
            processed_bytes=self._processed_bytes,
            total_bytes=self._total_bytes,
            files_started=self._files_started,
            message="Hashing files..."
        ))
