"""
Worker plumbing for running a comparison off the calling thread.

A worker is moved into its own QThread and talks to the thread that
started it only through the signals on its `signals` object:
- Engine feedback (phase messages, totals, byte progress, errors)
- Lifecycle (started, finished, failed, cancelled)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot, QMutex, QMutexLocker


class WorkerState(Enum):
    """Lifecycle of a worker."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()

    @property
    def is_finished(self) -> bool:
        return self in (WorkerState.CANCELLED, WorkerState.COMPLETED, WorkerState.FAILED)


@dataclass(frozen=True)
class ProgressInfo:
    """Cumulative hashing progress over both trees."""
    processed_bytes: int
    total_bytes: int
    files_started: int = 0
    message: str = ""

    @property
    def percent(self) -> float:
        if self.total_bytes == 0:
            return 0.0
        return (self.processed_bytes / self.total_bytes) * 100

    @property
    def is_indeterminate(self) -> bool:
        return self.total_bytes == 0


class WorkerSignals(QObject):
    """
    Signals emitted by a comparison worker.

    Receivers in another thread get queued connections, so they see the
    notifications in the order the engine produced them.
    """
    # Engine feedback
    status = pyqtSignal(str)
    total_files = pyqtSignal(object)   # int, sent once after scanning
    total_bytes = pyqtSignal(object)   # int, sent once after scanning
    progress = pyqtSignal(object)      # ProgressInfo
    error_message = pyqtSignal(str)    # user-facing engine error

    # Lifecycle
    started = pyqtSignal()
    finished = pyqtSignal(object)      # ComparisonResult
    failed = pyqtSignal(str, str)      # (error_type, message)
    cancelled = pyqtSignal()
    state_changed = pyqtSignal(object)  # WorkerState


class WorkerMeta(type(QObject), type(ABC)):
    pass


class BaseWorker(QObject, ABC, metaclass=WorkerMeta):
    """
    Base class for workers that run in a WorkerThread.

    Subclasses implement `do_work`, returning the result or None when
    the run was cancelled.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.signals = WorkerSignals()
        self._state = WorkerState.PENDING
        self._cancelled = False
        self._mutex = QMutex()
        self._result: Any = None
        self._failure: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        with QMutexLocker(self._mutex):
            return self._state

    @state.setter
    def state(self, value: WorkerState) -> None:
        with QMutexLocker(self._mutex):
            self._state = value
        self.signals.state_changed.emit(value)

    @property
    def is_cancelled(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._cancelled

    @property
    def result(self) -> Any:
        """The value do_work returned, once completed."""
        return self._result

    @property
    def failure(self) -> Optional[tuple[str, str]]:
        """(error_type, message) of a failed run."""
        return self._failure

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        with QMutexLocker(self._mutex):
            self._cancelled = True
            if self._state is not WorkerState.RUNNING:
                return
            self._state = WorkerState.CANCELLING
        self.signals.state_changed.emit(WorkerState.CANCELLING)

    @pyqtSlot()
    def run(self) -> None:
        """Entry point for the thread; wraps do_work with state handling."""
        self.state = WorkerState.RUNNING
        self.signals.started.emit()

        try:
            result = self.do_work()
        except Exception as e:
            logging.error(f"{type(self).__name__} - Run failed: {e}")
            self._failure = (type(e).__name__, str(e))
            self.state = WorkerState.FAILED
            self.signals.failed.emit(type(e).__name__, str(e))
            return

        if result is None:
            self.state = WorkerState.CANCELLED
            self.signals.cancelled.emit()
        else:
            self._result = result
            self.state = WorkerState.COMPLETED
            self.signals.finished.emit(result)

    @abstractmethod
    def do_work(self) -> Any:
        """Perform the run. Return None if it was cancelled."""
        pass


class WorkerThread(QThread):
    """
    Thread owning one worker.

    The worker starts when the thread starts, and the thread's event loop
    quits as soon as the worker reaches a final state.
    """

    def __init__(self, worker: BaseWorker, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.worker = worker
        self.worker.moveToThread(self)

        self.started.connect(self.worker.run)
        self.worker.signals.finished.connect(self.quit)
        self.worker.signals.failed.connect(self.quit)
        self.worker.signals.cancelled.connect(self.quit)

    def cancel(self) -> None:
        self.worker.cancel()

    @property
    def result(self) -> Any:
        return self.worker.result

    @property
    def failure(self) -> Optional[tuple[str, str]]:
        return self.worker.failure
