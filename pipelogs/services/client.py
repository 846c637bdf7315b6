"""远端 CI 服务客户端（Azure DevOps Pipelines REST API）

职责:
- 列出某次运行的日志（$expand=signedContent 获取签名 URL）
- 按签名 URL 下载单条日志内容
- 将 HTTP 错误映射为统一异常（401/403 → 认证失败，404 → 不存在）
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from pipelogs.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    RemoteServiceError,
    TransientFetchError,
)
from pipelogs.core.models import RemoteLog
from pipelogs.utils.net import redact_url, validate_url_scheme

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "7.1"


class AzureDevOpsClient:
    """Pipelines API 的最小客户端，满足 LogSource 协议"""

    def __init__(
        self,
        organization_url: str,
        token: str = "",
        *,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
    ) -> None:
        validate_url_scheme(organization_url, context="organization_url")
        self.organization_url = organization_url.rstrip("/")
        self.token = token
        self.api_version = api_version
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            # PAT 认证: 用户名留空，token 作为密码
            raw = f":{self.token}".encode()
            headers["Authorization"] = "Basic " + base64.b64encode(raw).decode("ascii")
        return headers

    def _logs_url(self, project_id: str, pipeline_id: int, run_id: int) -> str:
        project = urllib.parse.quote(project_id, safe="")
        query = urllib.parse.urlencode({
            "$expand": "signedContent", "api-version": self.api_version,
        })
        return (
            f"{self.organization_url}/{project}/_apis/pipelines/"
            f"{pipeline_id}/runs/{run_id}/logs?{query}"
        )

    def _get_json(self, url: str) -> dict[str, Any]:
        req = urllib.request.Request(url, headers=self._headers(), method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            if e.code in (401, 403):
                raise AuthenticationError(
                    f"认证失败 (HTTP {e.code}): 请检查访问令牌",
                ) from e
            if e.code == 404:
                raise NotFoundError(f"流水线运行或日志不存在: {redact_url(url)}") from e
            raise RemoteServiceError(f"HTTP 错误 {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            raise RemoteServiceError(f"网络错误: {e.reason}") from e
        except OSError as e:
            raise RemoteServiceError(f"请求失败: {e}") from e
        except http.client.HTTPException as e:
            raise RemoteServiceError(f"响应不完整: {e!r}") from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise RemoteServiceError(f"响应格式错误: {e}") from e
        if not isinstance(data, dict):
            raise RemoteServiceError("响应格式错误: 顶层不是对象")
        return data

    def list_logs(
        self, project_id: str, pipeline_id: int, run_id: int,
    ) -> list[RemoteLog]:
        """列出运行的全部日志，响应中没有 logs 字段时返回空列表"""
        url = self._logs_url(project_id, pipeline_id, run_id)
        logger.debug("获取日志列表: %s", redact_url(url))
        data = self._get_json(url)
        logs = data.get("logs") or []
        return [RemoteLog.from_api(item) for item in logs if isinstance(item, dict)]

    def fetch_content(
        self, url: str, *, timeout: float | None = None, authenticated: bool = False,
    ) -> bytes:
        """下载单条日志内容

        签名 URL 自带授权；回退到普通 URL 时传 authenticated=True 附带令牌。

        Raises:
            TransientFetchError: 非 2xx、网络错误或超时
        """
        validate_url_scheme(url, context="log download")
        headers = self._headers() if authenticated else {}
        req = urllib.request.Request(url, headers=headers, method="GET")
        try:
            with urllib.request.urlopen(  # nosec B310
                req, timeout=timeout or self.timeout,
            ) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            hint = ""
            if "text/html" in (e.headers.get("Content-Type", "") if e.headers else ""):
                hint = "（返回了 HTML 页面，签名可能已过期）"
            raise TransientFetchError(
                f"HTTP {e.code} {e.reason}{hint}", status=e.code,
            ) from e
        except urllib.error.URLError as e:
            raise TransientFetchError(f"网络错误: {e.reason}") from e
        except (TimeoutError, OSError) as e:
            raise TransientFetchError(f"下载失败: {e}") from e
        except http.client.HTTPException as e:
            raise TransientFetchError(f"响应不完整: {e!r}") from e
