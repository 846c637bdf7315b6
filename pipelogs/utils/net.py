"""URL 工具: 协议白名单与日志脱敏"""

from __future__ import annotations

from urllib.parse import urlparse

from pipelogs.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """组织地址与日志下载地址只允许 http/https 且必须带主机名

    Raises:
        ValidationError: 协议不在白名单内，或缺少主机名
    """
    parsed = urlparse(url)
    label = f" ({context})" if context else ""
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，仅支持 http/https: {redact_url(url)}",
        )
    if not parsed.netloc:
        raise ValidationError(f"URL 缺少主机名{label}: {redact_url(url)}")


def redact_url(url: str, keep: int = 100) -> str:
    """去掉查询串（签名在其中）并截断，用于日志输出"""
    parsed = urlparse(url)
    base = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if len(base) > keep:
        return base[:keep] + "..."
    return base
