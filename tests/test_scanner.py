"""Tests for exclusion matching and directory listing."""

from __future__ import annotations

import os

import pytest

from deepcompare.core.errors import ScanError
from deepcompare.core.folder import scanner
from deepcompare.core.folder.scanner import (
    ExclusionMatcher,
    directory_identity,
    glob_to_regex,
    is_hidden,
    list_entries,
)
from deepcompare.services.settings import ComparisonOptions


class TestGlobToRegex:
    def test_wildcards(self):
        assert glob_to_regex("*.tmp") == r"^.*\.tmp$"
        assert glob_to_regex("file?.log") == r"^file.\.log$"

    def test_literal_metacharacters_are_escaped(self):
        matcher = ExclusionMatcher(["a+b(1).txt"], regex=False)
        assert matcher.should_exclude("a+b(1).txt")
        assert not matcher.should_exclude("aab1.txt")


class TestExclusionMatcher:
    def test_glob_matches_whole_name(self):
        matcher = ExclusionMatcher(["*.tmp"], regex=False)
        assert matcher.should_exclude("build.tmp")
        assert not matcher.should_exclude("build.tmp.bak")
        assert not matcher.should_exclude("buildxtmp")

    def test_question_mark_matches_one_character(self):
        matcher = ExclusionMatcher(["?.txt"], regex=False)
        assert matcher.should_exclude("a.txt")
        assert not matcher.should_exclude("ab.txt")
        assert not matcher.should_exclude(".txt")

    def test_regex_patterns(self):
        matcher = ExclusionMatcher([r"cache\d+"], regex=True)
        assert matcher.should_exclude("cache42")
        assert not matcher.should_exclude("mycache42")

    def test_invalid_pattern_is_skipped(self):
        matcher = ExclusionMatcher(["[unclosed", r".*\.bak"], regex=True)
        assert len(matcher) == 1
        assert matcher.should_exclude("old.bak")
        assert not matcher.should_exclude("[unclosed")

    def test_empty_matcher_excludes_nothing(self):
        assert not ExclusionMatcher([]).should_exclude("anything")

    @pytest.mark.parametrize("case_insensitive, excluded", [(True, True), (False, False)])
    def test_case_folding_follows_platform_flag(self, monkeypatch, case_insensitive, excluded):
        monkeypatch.setattr(scanner, "CASE_INSENSITIVE", case_insensitive)

        matcher = ExclusionMatcher(["*.TMP"], regex=False)

        assert matcher.should_exclude("a.tmp") is excluded
        assert matcher.should_exclude("a.TMP")

    def test_converted_globs_decide_the_same(self):
        globs = ExclusionMatcher(["*.tmp", "cache?"], regex=False)
        converted = ExclusionMatcher(
            ComparisonOptions(exclusions=("*.tmp", "cache?")).with_regex_exclusions().exclusions,
            regex=True
        )

        for name in ["a.tmp", "a.tmp.txt", "cache1", "cache12", "tmp", ".tmp"]:
            assert globs.should_exclude(name) == converted.should_exclude(name)


class TestListEntries:
    def test_sorted_by_name(self, tmp_path):
        for name in ["b", "c", "a"]:
            (tmp_path / name).write_text(name)

        assert [e.name for e in list_entries(tmp_path)] == ["a", "b", "c"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ScanError, match="Directory not found"):
            list_entries(tmp_path / "absent")

    def test_file_is_not_a_directory(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(ScanError, match="Not a directory") as info:
            list_entries(path)
        assert info.value.path == path

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0,
                        reason="permission bits are not enforced")
    def test_unreadable_directory(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            with pytest.raises(ScanError, match="Cannot list directory"):
                list_entries(locked)
        finally:
            locked.chmod(0o755)


class TestHidden:
    def test_dot_files_are_hidden(self, tmp_path):
        (tmp_path / ".secret").write_text("x")
        (tmp_path / "visible").write_text("x")

        hidden = {e.name: is_hidden(e) for e in list_entries(tmp_path)}

        assert hidden == {".secret": True, "visible": False}


def test_directory_identity_is_stable(tmp_path):
    assert directory_identity(tmp_path) == directory_identity(tmp_path)
    assert directory_identity(tmp_path / "absent") is None
