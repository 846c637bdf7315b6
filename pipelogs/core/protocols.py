"""领域协议定义

集中定义各层之间的接口契约（Protocol），
实现依赖倒置，缓存与下载器依赖抽象而非具体的远端客户端。

使用 typing.Protocol 而非 ABC，测试中的替身类无需继承即可满足协议。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pipelogs.core.models import CacheKey, DownloadReport, RemoteLog


class LogSource(Protocol):
    """远端 CI 服务协议

    提供某次运行的日志元数据列表，以及按（签名）URL 获取日志内容。
    """

    def list_logs(
        self, project_id: str, pipeline_id: int, run_id: int,
    ) -> list[RemoteLog]:
        """列出运行的全部日志（包含签名下载 URL）"""
        ...

    def fetch_content(
        self, url: str, *, timeout: float, authenticated: bool = False,
    ) -> bytes:
        """下载单条日志内容，失败时抛出 TransientFetchError"""
        ...


class LogDownloader(Protocol):
    """批量下载协议，缓存在未命中或过期时调用"""

    def download(self, key: CacheKey, destination: Path) -> DownloadReport:
        """把一次运行的全部日志下载到 destination"""
        ...
