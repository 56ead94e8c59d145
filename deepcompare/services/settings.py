"""
Comparison options and persisted default settings.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from deepcompare.core.folder.scanner import glob_to_regex
from deepcompare.services.hashing import (
    DEFAULT_CHUNK_SIZE,
    HashAlgorithm,
    default_algorithm,
)


@dataclass(frozen=True)
class ComparisonOptions:
    """
    Settings for one comparison run.

    Frozen so that a run cannot observe changes made after it started.
    Use the with_* methods to derive modified copies.
    """
    exclusions: tuple[str, ...] = ()
    exclusions_regex: bool = False
    hash_algorithm: HashAlgorithm = field(default_factory=default_algorithm)
    check_hidden_files: bool = False
    log_file_path: Optional[Path] = None
    debug_mode: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        object.__setattr__(self, 'exclusions', tuple(self.exclusions))

        algorithm = self.hash_algorithm
        if isinstance(algorithm, str):
            algorithm = HashAlgorithm.from_string(algorithm)
        elif not algorithm.is_available:
            # Same error from_string() raises for unavailable algorithms
            algorithm = HashAlgorithm.from_string(algorithm.value)
        object.__setattr__(self, 'hash_algorithm', algorithm)

        if self.log_file_path is not None:
            object.__setattr__(self, 'log_file_path', Path(self.log_file_path))

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    def with_regex_exclusions(self) -> 'ComparisonOptions':
        """
        Return options whose exclusions are regular expressions.

        Simple wildcards are converted to anchored regexes. If the
        exclusions already are regexes, self is returned unchanged.
        """
        if self.exclusions_regex:
            return self
        return replace(
            self,
            exclusions=tuple(glob_to_regex(p) for p in self.exclusions),
            exclusions_regex=True
        )

    def with_hash_algorithm(self, algorithm: HashAlgorithm | str) -> 'ComparisonOptions':
        """Return options using a different hash algorithm."""
        return replace(self, hash_algorithm=algorithm)

    def with_exclusions(
        self,
        exclusions: Iterable[str],
        regex: Optional[bool] = None
    ) -> 'ComparisonOptions':
        """Return options with a different exclusion list."""
        return replace(
            self,
            exclusions=tuple(exclusions),
            exclusions_regex=self.exclusions_regex if regex is None else regex
        )


def load_exclusions_file(path: Path | str) -> list[str]:
    """
    Read exclusion patterns from a text file.

    One pattern per line. Blank lines and lines starting with '#' are
    ignored. Patterns are not validated here; invalid ones are skipped
    when the scan compiles them.
    """
    patterns = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            if line.startswith('#') or not line.strip():
                continue
            patterns.append(line.strip())
    return patterns


class SettingsManager:
    """Manager for loading/saving default comparison options."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self._get_default_path()
        self._settings: Optional[ComparisonOptions] = None
        self._observers: list[Callable[[ComparisonOptions], None]] = []

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'DeepCompare' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'deepcompare' / 'settings.json'

    @property
    def settings(self) -> ComparisonOptions:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ComparisonOptions:
        """Load settings from disk, falling back to defaults."""
        if not self.settings_path.exists():
            return ComparisonOptions()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"SettingsManager - Could not load {self.settings_path}: {e}")
            return ComparisonOptions()

    def save(self, settings: Optional[ComparisonOptions] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)

        except OSError as e:
            logging.error(f"SettingsManager - Could not save {self.settings_path}: {e}")
            return False

        self._settings = settings
        self._notify_observers()
        return True

    def reset(self) -> ComparisonOptions:
        """Reset to default settings."""
        self._settings = ComparisonOptions()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[ComparisonOptions], None]) -> None:
        """Add a callback to be notified of settings changes."""
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ComparisonOptions], None]) -> None:
        """Remove a settings change observer."""
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        """Notify all observers of settings change."""
        for callback in self._observers:
            callback(self._settings)

    def _to_dict(self, settings: ComparisonOptions) -> dict[str, Any]:
        """Convert settings to a JSON-friendly dictionary."""
        return {
            'exclusions': list(settings.exclusions),
            'exclusions_regex': settings.exclusions_regex,
            'hash_algorithm': settings.hash_algorithm.value,
            'check_hidden_files': settings.check_hidden_files,
            'log_file_path': str(settings.log_file_path) if settings.log_file_path else None,
            'debug_mode': settings.debug_mode,
            'chunk_size': settings.chunk_size,
        }

    def _from_dict(self, data: dict) -> ComparisonOptions:
        """Convert a dictionary back to options, ignoring unusable values."""
        name = data.get('hash_algorithm')
        try:
            if not isinstance(name, str):
                raise ValueError(f"Hash algorithm is not a name: {name!r}")
            algorithm = HashAlgorithm.from_string(name)
        except ValueError as e:
            logging.warning(f"SettingsManager - {e}; using the default")
            algorithm = default_algorithm()

        defaults = ComparisonOptions()
        return ComparisonOptions(
            exclusions=tuple(data.get('exclusions', defaults.exclusions)),
            exclusions_regex=bool(data.get('exclusions_regex', defaults.exclusions_regex)),
            hash_algorithm=algorithm,
            check_hidden_files=bool(data.get('check_hidden_files', defaults.check_hidden_files)),
            log_file_path=data.get('log_file_path') or None,
            debug_mode=bool(data.get('debug_mode', defaults.debug_mode)),
            chunk_size=int(data.get('chunk_size', defaults.chunk_size)),
        )
