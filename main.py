"""
Command line entry point for Deep Compare.

This module handles:
- Command line argument parsing
- Logging configuration
- Loading persisted default options
- Running the comparison on a worker thread
- Console progress output
- Exit codes
"""

from __future__ import annotations

import argparse
import logging
import math
import signal
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, TextIO

from PyQt6.QtCore import QCoreApplication, QTimer

from deepcompare import APP_NAME, APP_DISPLAY_NAME, APP_VERSION
from deepcompare.core.folder.comparer import validate_comparison_paths
from deepcompare.core.models import ComparisonResult, format_size
from deepcompare.services.comparison_log import LOG_FILE_NAME
from deepcompare.services.hashing import probe_available_algorithms
from deepcompare.services.settings import (
    ComparisonOptions,
    SettingsManager,
    load_exclusions_file,
)
from deepcompare.workers import ComparisonWorker, ProgressInfo, WorkerThread


# =============================================================================
# Constants
# =============================================================================

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

ERROR_PREFIX = "ERROR:"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    source_path: Optional[str] = None
    target_path: Optional[str] = None
    log_path: Optional[str] = None
    exclusions_file: Optional[str] = None
    use_regex: bool = False
    hash_name: Optional[str] = None
    hidden: bool = False
    config_file: Optional[str] = None
    save_settings: bool = False
    show_hashes: bool = False
    log_level: str = "WARNING"
    trace_file: Optional[str] = None
    debug: bool = False


@dataclass
class RunOutcome:
    """What the worker reported back to the main thread."""
    result: Optional[ComparisonResult] = None
    failure: Optional[tuple[str, str]] = None
    cancelled: bool = False
    engine_errors: list[str] = field(default_factory=list)


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """
    Diagnostic formatter.

    Messages already carry the emitting class as a prefix, so the logger
    name is left out. Colours are only used on a terminal.
    """

    COLORS = {
        logging.DEBUG: '\033[2m',      # Dim
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__(
            fmt='%(asctime)s %(levelname)-8s %(message)s',
            datefmt='%H:%M:%S'
        )
        self.use_colors = stream is not None and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{formatted}{self.RESET}" if color else formatted


def setup_logging(level: str = "WARNING", trace_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure diagnostic logging.

    Diagnostics go to stderr so they never mix with the comparison
    output on stdout. They are separate from deep-compare.log, which the
    engine writes itself.

    Args:
        level: Log level name
        trace_file: Optional file receiving the same diagnostics

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(LogFormatter(sys.stderr))
    root_logger.addHandler(console_handler)

    if trace_file:
        trace_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(trace_file, mode='w', encoding='utf-8')
        file_handler.setFormatter(LogFormatter())
        root_logger.addHandler(file_handler)

    return root_logger


# =============================================================================
# Console Output
# =============================================================================

class ConsoleReporter:
    """
    Prints engine feedback to the console.

    Hash progress is printed in steps of ten percent, each step once.
    """

    def __init__(self, stream: Optional[TextIO] = None, error_stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr
        self.outcome = RunOutcome()
        self._percents_shown: set[int] = set()

    def _print(self, message: str = "") -> None:
        print(message, file=self.stream, flush=True)

    def on_status(self, message: str) -> None:
        self._print(message)

    def on_total_files(self, file_count: int) -> None:
        self._print(f"Files discovered: {file_count}")

    def on_total_bytes(self, total_bytes: int) -> None:
        self._print(f"Bytes discovered: {format_size(total_bytes)}")

    def on_progress(self, info: ProgressInfo) -> None:
        if info.is_indeterminate:
            return
        percent = math.floor(info.percent)
        if percent % 10 == 0 and percent not in self._percents_shown:
            self._percents_shown.add(percent)
            self._print(f"Hashing progress: {percent}%")

    def on_engine_error(self, message: str) -> None:
        self.outcome.engine_errors.append(message)
        print(message, file=self.error_stream, flush=True)

    def on_finished(self, result: ComparisonResult) -> None:
        self.outcome.result = result

    def on_failed(self, error_type: str, message: str) -> None:
        self.outcome.failure = (error_type, message)

    def on_cancelled(self) -> None:
        self.outcome.cancelled = True

    def print_summary(self, log_directory: Optional[Path]) -> None:
        result = self.outcome.result
        if result is None:
            return

        self._print()
        if result.is_match:
            self._print("The source and target directories match.")
        else:
            self._print(
                f"Discrepancies found: {len(result.source_missing_files)} missing from target, "
                f"{len(result.target_missing_files)} missing from source, "
                f"{len(result.changed_files)} changed."
            )
        if log_directory is not None:
            self._print(f"See {Path(log_directory) / LOG_FILE_NAME} for details.")


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME.lower(),
        description="Compare two directory trees by the cryptographic hash of every file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /data /backup/data --log ~/logs
  %(prog)s /data /mirror --log ~/logs --exclusions skip.txt --hash SHA-512
  %(prog)s --show-hashes
        """
    )

    # Positional arguments
    parser.add_argument(
        'source',
        nargs='?',
        help='Source directory'
    )
    parser.add_argument(
        'target',
        nargs='?',
        help='Target directory'
    )

    # Comparison options
    parser.add_argument(
        '--log',
        metavar='DIR',
        help=f'Directory to write {LOG_FILE_NAME} to (required)'
    )
    parser.add_argument(
        '--exclusions',
        metavar='FILE',
        help='Text file with one exclusion pattern per line'
    )
    parser.add_argument(
        '--use-regex',
        action='store_true',
        help='Treat exclusions as regular expressions instead of wildcards'
    )
    parser.add_argument(
        '--hash',
        metavar='NAME',
        help='Hash algorithm (see --show-hashes)'
    )
    parser.add_argument(
        '--hidden',
        action='store_true',
        help='Include hidden files and directories'
    )
    parser.add_argument(
        '--show-hashes',
        action='store_true',
        help='List the available hash algorithms and exit'
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Settings file with default options'
    )
    parser.add_argument(
        '--save-settings',
        action='store_true',
        help='Store the effective options as the new defaults'
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show informational diagnostics'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Add debug details to the run log and diagnostics'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Diagnostic log level'
    )
    parser.add_argument(
        '--trace-file',
        metavar='FILE',
        help='Also write diagnostic messages to FILE'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_DISPLAY_NAME} {APP_VERSION}'
    )

    # Parse
    parsed = parser.parse_args(args)

    # Build result
    result = CommandLineArgs()
    result.source_path = parsed.source
    result.target_path = parsed.target
    result.log_path = parsed.log
    result.exclusions_file = parsed.exclusions
    result.use_regex = parsed.use_regex
    result.hash_name = parsed.hash
    result.hidden = parsed.hidden
    result.config_file = parsed.config
    result.save_settings = parsed.save_settings
    result.show_hashes = parsed.show_hashes
    result.debug = parsed.debug
    result.trace_file = parsed.trace_file

    # Log level
    if parsed.debug:
        result.log_level = 'DEBUG'
    elif parsed.verbose:
        result.log_level = 'INFO'
    else:
        result.log_level = parsed.log_level

    return result


def build_options(
    args: CommandLineArgs,
    defaults: ComparisonOptions
) -> tuple[Optional[ComparisonOptions], list[str]]:
    """
    Combine persisted defaults with command line overrides.

    Returns:
        (options, errors); options is None when errors is non-empty
    """
    errors = []
    log_path = args.log_path or defaults.log_file_path

    if not args.source_path:
        errors.append("No source path was specified.")
    if not args.target_path:
        errors.append("No target path was specified.")
    if not log_path:
        errors.append("No log directory was specified.")

    if args.source_path and args.target_path:
        errors.extend(validate_comparison_paths(args.source_path, args.target_path, log_path))

    options = defaults

    if args.exclusions_file:
        try:
            exclusions = load_exclusions_file(args.exclusions_file)
        except (OSError, UnicodeDecodeError) as e:
            errors.append(f"Could not read exclusions file {args.exclusions_file}: {e}")
        else:
            options = options.with_exclusions(exclusions, regex=args.use_regex)
    elif args.use_regex:
        options = options.with_exclusions(options.exclusions, regex=True)

    if args.hash_name:
        try:
            options = options.with_hash_algorithm(args.hash_name)
        except ValueError as e:
            errors.append(f"{e}. Use --show-hashes to list the supported algorithms.")

    if errors:
        return None, errors

    return ComparisonOptions(
        exclusions=options.exclusions,
        exclusions_regex=options.exclusions_regex,
        hash_algorithm=options.hash_algorithm,
        check_hidden_files=args.hidden or options.check_hidden_files,
        log_file_path=Path(log_path).resolve(),
        debug_mode=args.debug or options.debug_mode,
        chunk_size=options.chunk_size,
    ), errors


def print_available_hashes(stream: Optional[TextIO] = None) -> None:
    """Print the hash algorithms usable on this system."""
    stream = stream or sys.stdout
    print("Available hash algorithms:", file=stream)
    for algorithm in probe_available_algorithms():
        print(f"\t{algorithm.value}", file=stream)


# =============================================================================
# Running
# =============================================================================

def setup_signal_handlers(thread: WorkerThread) -> Optional[QTimer]:
    """
    Cancel the comparison on SIGINT.

    Returns the timer that lets the Python interpreter run signal handlers
    while the Qt event loop is blocking, or None if handlers cannot be
    installed from the current thread.
    """
    try:
        signal.signal(signal.SIGINT, lambda signum, frame: _cancel_on_signal(thread, signum))
    except ValueError:
        # Not the main thread
        return None

    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)
    return timer


def _cancel_on_signal(thread: WorkerThread, signum: int) -> None:
    """Handle Unix signals."""
    logging.info(f"Received signal {signum}, cancelling comparison...")
    thread.cancel()


def run_comparison(
    source_path: str | Path,
    target_path: str | Path,
    options: ComparisonOptions,
    reporter: ConsoleReporter
) -> RunOutcome:
    """
    Run one comparison on a worker thread and wait for it.

    The calling thread spins a Qt event loop so the worker's signals are
    delivered to the reporter in order.
    """
    app = QCoreApplication.instance() or QCoreApplication([APP_NAME])

    worker = ComparisonWorker(source_path, target_path, options)
    signals = worker.signals
    signals.status.connect(reporter.on_status)
    signals.total_files.connect(reporter.on_total_files)
    signals.total_bytes.connect(reporter.on_total_bytes)
    signals.progress.connect(reporter.on_progress)
    signals.error_message.connect(reporter.on_engine_error)
    signals.finished.connect(reporter.on_finished)
    signals.failed.connect(reporter.on_failed)
    signals.cancelled.connect(reporter.on_cancelled)

    thread = WorkerThread(worker)
    thread.finished.connect(app.quit)

    previous_handler = signal.getsignal(signal.SIGINT)
    timer = setup_signal_handlers(thread)

    try:
        QTimer.singleShot(0, thread.start)
        app.exec()
        thread.wait()
    finally:
        if timer is not None:
            timer.stop()
            signal.signal(signal.SIGINT, previous_handler)

    return reporter.outcome


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 for a completed comparison, with or without discrepancies)
    """
    args = parse_arguments(argv)

    setup_logging(args.log_level, Path(args.trace_file) if args.trace_file else None)
    logging.info(f"Starting {APP_DISPLAY_NAME} v{APP_VERSION}")

    print(f"{APP_DISPLAY_NAME} v{APP_VERSION}")
    print()

    if args.show_hashes:
        print_available_hashes()
        return EXIT_OK

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    options, errors = build_options(args, settings_manager.settings)

    if errors:
        for error in errors:
            print(f"{ERROR_PREFIX} {error}", file=sys.stderr)
        return EXIT_FAILURE

    if args.save_settings and not settings_manager.save(options):
        print(f"{ERROR_PREFIX} Could not save settings to {settings_manager.settings_path}", file=sys.stderr)

    reporter = ConsoleReporter()
    outcome = run_comparison(args.source_path, args.target_path, options, reporter)

    if outcome.result is not None:
        reporter.print_summary(options.log_file_path)
        return EXIT_OK

    if outcome.cancelled:
        print("Comparison cancelled.", file=sys.stderr)
        return EXIT_CANCELLED

    error_type, message = outcome.failure or ("Error", "unknown error")
    print(f"{ERROR_PREFIX} {message}", file=sys.stderr)
    logging.error(f"Comparison failed ({error_type}): {message}")
    return EXIT_FAILURE


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
