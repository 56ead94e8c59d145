"""
Background workers for non-blocking operations.

Provides QThread-based workers that run the comparison engine off the
thread that started it. All workers use Qt signals for thread-safe
communication with that thread.
"""

from deepcompare.workers.base_worker import (
    BaseWorker,
    ProgressInfo,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from deepcompare.workers.compare_worker import (
    ComparisonWorker,
)

__all__ = [
    # Base
    'BaseWorker',
    'ProgressInfo',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    # Compare
    'ComparisonWorker',
]
