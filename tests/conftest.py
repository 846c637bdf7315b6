"""测试公共夹具: 替身日志源"""

from __future__ import annotations

import threading
import time

import pytest

from pipelogs.core.exceptions import TransientFetchError
from pipelogs.core.models import RemoteLog


class FakeSource:
    """内存日志源，满足 LogSource 协议

    contents: {log_id: 文本 | 异常实例}
    """

    def __init__(
        self,
        contents: dict[int, str | Exception] | None = None,
        *,
        delay: float = 0.0,
        list_error: Exception | None = None,
    ) -> None:
        self.contents = dict(contents or {})
        self.delay = delay
        self.list_error = list_error
        self.list_calls = 0
        self.fetch_calls: list[str] = []
        self.auth_flags: list[bool] = []
        self._lock = threading.Lock()

    def list_logs(self, project_id: str, pipeline_id: int, run_id: int) -> list[RemoteLog]:
        with self._lock:
            self.list_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.list_error is not None:
            raise self.list_error
        return [
            RemoteLog(
                id=log_id,
                signed_url=f"https://blob.example.com/{project_id}/{run_id}/{log_id}?sig=x",
            )
            for log_id in self.contents
        ]

    def fetch_content(self, url: str, *, timeout: float, authenticated: bool = False) -> bytes:
        with self._lock:
            self.fetch_calls.append(url)
            self.auth_flags.append(authenticated)
        log_id = int(url.split("?")[0].rsplit("/", 1)[-1])
        value = self.contents[log_id]
        if isinstance(value, Exception):
            raise value
        return value.encode("utf-8")


@pytest.fixture()
def fake_source() -> FakeSource:
    return FakeSource({
        1: "INFO start\nERROR boom\nINFO end",
        2: "WARN careful\nINFO ok",
        3: TransientFetchError("HTTP 500 Internal Server Error", status=500),
    })


@pytest.fixture()
def make_source():
    return FakeSource
