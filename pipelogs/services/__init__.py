"""服务层模块

拆分说明:
- client.py: 远端 CI 服务客户端（日志列表 / 签名 URL 下载）
- fetcher.py: 日志批量下载
- cache.py: 运行日志目录缓存（TTL + 单飞）
- log_service.py: 对外操作门面
"""

from pipelogs.services.cache import LogCache
from pipelogs.services.client import AzureDevOpsClient
from pipelogs.services.fetcher import LogFetcher
from pipelogs.services.log_service import LogService

__all__ = ["AzureDevOpsClient", "LogFetcher", "LogCache", "LogService"]
