"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from PyQt6.QtCore import QCoreApplication

from deepcompare.services.hashing import HashAlgorithm
from deepcompare.services.settings import ComparisonOptions


class RecordingListener:
    """Status and hash-progress listener that records every call in order."""

    def __init__(self, on_progress=None):
        self.events: list[tuple[str, object]] = []
        self._on_progress = on_progress

    # StatusListener

    def update_status_message(self, message: str) -> None:
        self.events.append(("status", message))

    def update_total_files(self, file_count: int) -> None:
        self.events.append(("total_files", file_count))

    def update_total_bytes(self, total_bytes: int) -> None:
        self.events.append(("total_bytes", total_bytes))

    def error_message(self, message: str) -> None:
        self.events.append(("error", message))

    # HashProgressListener

    def new_file(self) -> None:
        self.events.append(("new_file", None))

    def update_progress(self, bytes_read: int) -> None:
        self.events.append(("progress", bytes_read))
        if self._on_progress:
            self._on_progress(bytes_read)

    def of_kind(self, kind: str) -> list:
        return [value for event, value in self.events if event == kind]


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create files (and their parent directories) below root."""
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
    return root


@pytest.fixture(scope="session")
def qapp():
    """The process-wide Qt application object."""
    return QCoreApplication.instance() or QCoreApplication(["deepcompare-tests"])


@pytest.fixture
def make_tree(tmp_path):
    """Build a named directory tree inside tmp_path."""
    def _make(name: str, files: dict[str, str | bytes]) -> Path:
        return write_tree(tmp_path / name, files)
    return _make


@pytest.fixture
def log_dir(tmp_path):
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory


@pytest.fixture
def options(log_dir):
    """Default options writing the run log to log_dir."""
    return ComparisonOptions(hash_algorithm=HashAlgorithm.SHA256, log_file_path=log_dir)


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def isolate_settings(tmp_path, monkeypatch):
    """Point the default settings location at a temp directory."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("APPDATA", str(config_home))
    return config_home
