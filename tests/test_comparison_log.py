"""Tests for the plain-text run log."""

from __future__ import annotations

import io

from deepcompare.services.comparison_log import LOG_FILE_NAME, ComparisonLog
from deepcompare.services.hashing import HashAlgorithm
from deepcompare.services.settings import ComparisonOptions


def lines_of(stream: io.StringIO) -> list[str]:
    return stream.getvalue().splitlines()


class TestComparisonLog:
    def test_open_truncates_existing_file(self, tmp_path):
        (tmp_path / LOG_FILE_NAME).write_text("stale contents\n", encoding="utf-8")

        log = ComparisonLog.open(tmp_path)
        log.write_line("fresh")
        log.close()

        text = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")
        assert "stale" not in text
        assert text.startswith("fresh\n")

    def test_preamble_lists_exclusions(self, tmp_path):
        stream = io.StringIO()
        options = ComparisonOptions(
            exclusions=("*.tmp", "cache"),
            hash_algorithm=HashAlgorithm.SHA1,
            check_hidden_files=True,
        )

        ComparisonLog(stream).write_preamble(tmp_path / "a", tmp_path / "b", options)
        lines = lines_of(stream)

        assert f"Source directory: {tmp_path / 'a'}" in lines
        assert f"Target directory: {tmp_path / 'b'}" in lines
        assert "Hash algorithm: SHA-1" in lines
        assert "Exclusions use regular expressions: No" in lines
        assert lines[lines.index("Exclusions:") + 1:lines.index("Exclusions:") + 3] == ["\t*.tmp", "\tcache"]
        assert "Check hidden files: Yes" in lines

    def test_preamble_without_exclusions(self, tmp_path):
        stream = io.StringIO()
        ComparisonLog(stream).write_preamble(tmp_path, tmp_path, ComparisonOptions())
        assert "Exclusions:" not in lines_of(stream)

    def test_debug_lines_need_debug(self):
        quiet, loud = io.StringIO(), io.StringIO()
        ComparisonLog(quiet).debug_line("detail")
        ComparisonLog(loud, debug=True).debug_line("detail")

        assert quiet.getvalue() == ""
        assert lines_of(loud) == ["DEBUG: detail"]

    def test_scan_error_detail_only_in_debug(self, tmp_path):
        quiet, loud = io.StringIO(), io.StringIO()
        error = PermissionError("denied")
        ComparisonLog(quiet).scan_error(tmp_path, error)
        ComparisonLog(loud, debug=True).scan_error(tmp_path, error)

        assert lines_of(quiet) == [f"Error scanning {tmp_path}"]
        assert lines_of(loud) == [f"Error scanning {tmp_path}", "denied"]

    def test_totals(self):
        stream = io.StringIO()
        ComparisonLog(stream).totals(12, 3 * 1024 * 1024)
        assert lines_of(stream) == ["Files discovered: 12", "Bytes discovered: 3 MiB"]

    def test_failure_includes_traceback(self):
        stream = io.StringIO()
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            ComparisonLog(stream).write_failure(e)

        text = stream.getvalue()
        assert text.startswith("An error occurred during the comparison.\n")
        assert "Traceback" in text
        assert "RuntimeError: boom" in text

    def test_write_failure_is_recorded_once(self):
        class Broken(io.StringIO):
            writes = 0

            def write(self, text):
                Broken.writes += 1
                raise OSError("disk full")

        log = ComparisonLog(Broken())
        log.write_line("one")
        log.write_line("two")

        assert isinstance(log.write_error, OSError)
        assert Broken.writes == 1

    def test_unencodable_text_is_recorded(self):
        stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        log = ComparisonLog(stream)

        log.write_line("caf\udce9.txt")
        log.write_line("later")

        assert isinstance(log.write_error, UnicodeEncodeError)

    def test_opened_log_escapes_undecodable_names(self, tmp_path):
        log = ComparisonLog.open(tmp_path)
        log.write_line("caf\udce9.txt")
        log.close()

        assert log.write_error is None
        assert (tmp_path / LOG_FILE_NAME).read_bytes().startswith(b"caf\\udce9.txt\n")

    def test_close_is_idempotent(self):
        stream = io.StringIO()
        log = ComparisonLog(stream)
        log.close()
        log.close()
        assert log.closed
