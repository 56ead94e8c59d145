"""
Exception types raised by the comparison engine.

Only root-level and configuration-level failures escape the engine;
failures local to one file or directory are logged and skipped.
"""

from __future__ import annotations


class DeepCompareError(Exception):
    """Base class for all errors raised by this package."""
    pass


class ComparisonError(DeepCompareError):
    """Raised when a comparison run fails. No partial result is produced."""
    pass


class ScanError(DeepCompareError):
    """Raised when the root of a directory scan cannot be listed."""

    def __init__(self, path, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class UnsupportedHashError(DeepCompareError, ValueError):
    """Raised when a hash algorithm is unknown or not available on this host."""
    pass


class ComparisonCancelled(DeepCompareError):
    """Raised inside the engine to unwind a run after cancellation."""
    pass
