"""
Hashing service for file content verification.

The set of usable algorithms depends on the hashlib/OpenSSL build of the
running interpreter, so it is probed once and cached.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

from deepcompare.core.errors import ComparisonCancelled, UnsupportedHashError


DEFAULT_CHUNK_SIZE = 65536


class HashAlgorithm(Enum):
    """Cryptographic digests a comparison may use."""
    MD5 = "MD5"
    SHA1 = "SHA-1"
    SHA256 = "SHA-256"
    SHA384 = "SHA-384"
    SHA512 = "SHA-512"
    SHA512_224 = "SHA-512/224"
    SHA512_256 = "SHA-512/256"
    SHA3_224 = "SHA3-224"
    SHA3_256 = "SHA3-256"
    SHA3_384 = "SHA3-384"
    SHA3_512 = "SHA3-512"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def hashlib_name(self) -> str:
        """Name understood by hashlib.new()."""
        return self.name.lower()

    @property
    def is_available(self) -> bool:
        return self in probe_available_algorithms()

    @classmethod
    def from_string(cls, value: str) -> 'HashAlgorithm':
        """
        Look up an algorithm by display name ("SHA-256"), enum name
        ("SHA256") or hashlib name ("sha256"), ignoring case.

        Raises:
            UnsupportedHashError: if the name is not recognized or the
                algorithm is not available on this host
        """
        wanted = value.strip().upper()
        for algorithm in cls:
            if wanted in (algorithm.value, algorithm.name):
                break
        else:
            raise UnsupportedHashError(f"Hash algorithm not recognized: {value}")

        if not algorithm.is_available:
            raise UnsupportedHashError(f"Hash algorithm not available: {algorithm.value}")
        return algorithm


@lru_cache(maxsize=None)
def probe_available_algorithms() -> tuple[HashAlgorithm, ...]:
    """
    Return the algorithms this interpreter can instantiate.

    Evaluated once per process; later calls return the cached tuple.
    """
    available = []
    for algorithm in HashAlgorithm:
        try:
            hashlib.new(algorithm.hashlib_name)
        except ValueError as e:
            logging.debug(f"HashAlgorithm - {algorithm.value} unavailable: {e}")
            continue
        available.append(algorithm)
    return tuple(available)


def default_algorithm() -> HashAlgorithm:
    """SHA-256 where available, otherwise SHA-1."""
    if HashAlgorithm.SHA256 in probe_available_algorithms():
        return HashAlgorithm.SHA256
    return HashAlgorithm.SHA1


@dataclass(frozen=True)
class HashResult:
    """Result of a hash operation."""
    algorithm: HashAlgorithm
    digest: bytes
    file_size: int

    @property
    def hash_base64(self) -> str:
        return base64.b64encode(self.digest).decode('ascii')


class HashingService:
    """
    Streaming file hasher.

    A fresh digest object is created for every file, so one service can be
    shared by a whole comparison run.
    """

    def __init__(
        self,
        algorithm: Optional[HashAlgorithm] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.algorithm = algorithm or default_algorithm()
        self.chunk_size = chunk_size

        # Fail at construction rather than on the first file
        self._create_hasher(self.algorithm)

    def hash_file(
        self,
        path: Path | str,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None
    ) -> HashResult:
        """
        Compute the digest of a file.

        Args:
            path: Path to the file
            progress_callback: Called with the byte count of every chunk read
            cancel_check: Polled after every chunk; a true return aborts

        Returns:
            HashResult with the computed digest

        Raises:
            OSError: if the file cannot be opened or read
            ComparisonCancelled: if cancel_check asked to stop
        """
        hasher = self._create_hasher(self.algorithm)
        bytes_processed = 0

        with open(path, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)
                bytes_processed += len(chunk)

                if progress_callback:
                    progress_callback(len(chunk))
                if cancel_check and cancel_check():
                    raise ComparisonCancelled(f"Cancelled while hashing {path}")

        return HashResult(
            algorithm=self.algorithm,
            digest=hasher.digest(),
            file_size=bytes_processed
        )

    def _create_hasher(self, algorithm: HashAlgorithm):
        """Create a hasher for the given algorithm."""
        try:
            return hashlib.new(algorithm.hashlib_name)
        except ValueError as e:
            raise UnsupportedHashError(
                f"Hash algorithm not available: {algorithm.value}"
            ) from e
