"""本地路径解析测试"""

from pathlib import Path

import pytest

from pipelogs.core.exceptions import ValidationError
from pipelogs.core.models import CacheKey
from pipelogs.core.paths import (
    discover_log_ids,
    export_directory,
    log_file_name,
    parse_log_id,
    resolve_within,
    run_directory,
    safe_segment,
)


class TestRunDirectory:
    def test_layout(self, tmp_path: Path) -> None:
        key = CacheKey("demo", 83, 12345)
        assert run_directory(tmp_path, key) == tmp_path / "demo" / "pipeline-83-run-12345"

    def test_deterministic(self, tmp_path: Path) -> None:
        a = run_directory(tmp_path, CacheKey("demo", 1, 2))
        b = run_directory(tmp_path, CacheKey("demo", 1, 2))
        assert a == b

    def test_different_projects_do_not_collide(self, tmp_path: Path) -> None:
        a = run_directory(tmp_path, CacheKey("alpha", 1, 2))
        b = run_directory(tmp_path, CacheKey("beta", 1, 2))
        assert a != b

    def test_project_cannot_escape_base(self, tmp_path: Path) -> None:
        d = run_directory(tmp_path, CacheKey("../../etc", 1, 2))
        assert d.parent.parent == tmp_path
        assert ".." not in d.parts

    def test_export_directory(self, tmp_path: Path) -> None:
        assert export_directory(tmp_path, 7, 9) == tmp_path / "pipeline-7-run-9-logs"


class TestSafeSegment:
    def test_plain_name_unchanged(self) -> None:
        assert safe_segment("my-project") == "my-project"

    def test_separators_replaced(self) -> None:
        assert "/" not in safe_segment("a/b")
        assert "\\" not in safe_segment("a\\b")

    def test_blank_becomes_placeholder(self) -> None:
        assert safe_segment("   ") == "_"


class TestLogFileName:
    def test_zero_padded(self) -> None:
        assert log_file_name(7) == "log-007.txt"
        assert log_file_name(1234) == "log-1234.txt"

    def test_sort_order_matches_numeric(self) -> None:
        names = sorted(log_file_name(i) for i in (10, 2, 100))
        assert names == ["log-002.txt", "log-010.txt", "log-100.txt"]

    def test_parse(self) -> None:
        assert parse_log_id("log-007.txt") == 7
        assert parse_log_id("summary.json") is None
        assert parse_log_id("log-abc.txt") is None


class TestDiscoverLogIds:
    def test_sorted_ids(self, tmp_path: Path) -> None:
        for name in ("log-010.txt", "log-002.txt", "summary.json", "notes.txt"):
            (tmp_path / name).write_text("x")
        assert discover_log_ids(tmp_path) == [2, 10]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert discover_log_ids(tmp_path / "nope") == []


class TestResolveWithin:
    def test_relative_inside(self, tmp_path: Path) -> None:
        assert resolve_within(tmp_path, "a/b") == tmp_path.resolve() / "a" / "b"

    def test_base_itself(self, tmp_path: Path) -> None:
        assert resolve_within(tmp_path, ".") == tmp_path.resolve()

    @pytest.mark.parametrize("sub", ["/etc/cron.d", "../x", "a/../../x"])
    def test_rejects_escape(self, tmp_path: Path, sub: str) -> None:
        with pytest.raises(ValidationError):
            resolve_within(tmp_path, sub)
