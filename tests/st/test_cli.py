"""CLI 命令测试"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

import pipelogs.core.config as cfgmod
import pipelogs.services.client as clientmod
from pipelogs.cli import main
from pipelogs.services.container import reset_container
from pipelogs.utils.logger import reset_logging


@pytest.fixture()
def cli(tmp_path: Path, fake_source, monkeypatch: pytest.MonkeyPatch):
    """返回调用 CLI 的函数，远端客户端替换为替身日志源"""
    config_file = tmp_path / "pipelogs.yml"
    config_file.write_text(
        f"cache_dir: {tmp_path / 'cache'}\n"
        f"export_dir: {tmp_path / 'export'}\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(cfgmod, "_current", None)
    monkeypatch.setattr(clientmod, "AzureDevOpsClient", lambda *a, **k: fake_source)
    runner = CliRunner()

    def invoke(*args: str):
        return runner.invoke(main, [
            "--config", str(config_file),
            "--org", "https://dev.azure.com/acme",
            "--project", "demo",
            *args,
        ])

    yield invoke
    reset_container()
    reset_logging()


class TestLogsCommands:
    def test_read(self, cli) -> None:
        result = cli("logs", "read", "83", "12345", "1")
        assert result.exit_code == 0, result.output
        assert "ERROR boom" in result.output

    def test_read_json_page(self, cli) -> None:
        result = cli("logs", "read", "83", "12345", "1", "--limit", "1", "--json")
        assert result.exit_code == 0, result.output
        assert '"hasMore": true' in result.output

    def test_read_missing_log(self, cli) -> None:
        result = cli("logs", "read", "83", "12345", "3")
        assert result.exit_code == 1
        assert "错误:" in result.output

    def test_search(self, cli) -> None:
        result = cli("logs", "search", "83", "12345", "ERROR", "-B", "1", "-A", "1")
        assert result.exit_code == 0, result.output
        assert "log-001.txt" in result.output
        assert "     2: ERROR boom" in result.output
        assert "   - INFO start" in result.output
        assert "共 1 处命中" in result.output

    def test_search_invalid_regex(self, cli, fake_source) -> None:
        result = cli("logs", "search", "83", "12345", "([")
        assert result.exit_code == 1
        assert "非法的正则表达式" in result.output
        assert fake_source.list_calls == 0

    def test_list(self, cli) -> None:
        result = cli("logs", "list", "83", "12345")
        assert result.exit_code == 0, result.output
        assert "共 3 条日志" in result.output

    def test_download(self, cli, tmp_path: Path) -> None:
        result = cli("logs", "download", "83", "12345", "-o", str(tmp_path / "out"))
        assert result.exit_code == 0, result.output
        assert "已下载 2 个文件" in result.output
        assert "[跳过] log 3" in result.output
        assert (tmp_path / "out" / "pipeline-83-run-12345-logs" / "log-002.txt").is_file()

    def test_files(self, cli) -> None:
        result = cli("logs", "files", "83", "12345")
        assert result.exit_code == 0, result.output
        assert "log-001.txt" in result.output
        assert "summary.json" not in result.output


class TestCacheCommands:
    def test_status_empty(self, cli) -> None:
        result = cli("cache", "status")
        assert result.exit_code == 0, result.output
        assert "没有缓存条目" in result.output

    def test_purge_missing(self, cli) -> None:
        result = cli("cache", "purge", "83", "12345")
        assert result.exit_code == 0, result.output
        assert "没有对应的缓存条目" in result.output


class TestMainOptions:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_bad_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        bad = tmp_path / "bad.yml"
        bad.write_text("cache_ttl_seconds: 0\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["--config", str(bad), "cache", "status"])
        assert result.exit_code == 1
        assert "错误:" in result.output
        reset_container()
        reset_logging()
