"""核心数据模型

使用 dataclass 定义类型安全的返回值，替代 dict[str, Any]。
to_dict() 输出与外部接口一致的 camelCase 键，缺省的可选字段不输出。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pipelogs.core.exceptions import ValidationError

# =========================================================================
# 缓存
# =========================================================================


def _require_positive_int(value: Any, name: str) -> int:
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} 必须为正整数: {value!r}", details=[name])
    return value


@dataclass(frozen=True)
class CacheKey:
    """一次流水线运行的日志集合标识"""

    project_id: str
    pipeline_id: int
    run_id: int

    def __post_init__(self) -> None:
        if not isinstance(self.project_id, str) or not self.project_id.strip():
            raise ValidationError("project_id 不能为空", details=["project_id"])
        _require_positive_int(self.pipeline_id, "pipeline_id")
        _require_positive_int(self.run_id, "run_id")

    def as_string(self) -> str:
        return f"{self.project_id}:{self.pipeline_id}:{self.run_id}"

    def __str__(self) -> str:
        return self.as_string()


@dataclass
class CacheEntry:
    """缓存条目：运行日志目录 + 创建时间"""

    key: CacheKey
    directory: Path
    created_at: float
    report: DownloadReport | None = None

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float, ttl: float) -> bool:
        return self.age(now) >= ttl

    def to_dict(self, now: float | None = None) -> dict[str, Any]:
        result: dict[str, Any] = {
            "key": self.key.as_string(),
            "projectId": self.key.project_id,
            "pipelineId": self.key.pipeline_id,
            "runId": self.key.run_id,
            "downloadPath": str(self.directory),
            "createdAt": self.created_at,
        }
        if now is not None:
            result["ageSeconds"] = round(self.age(now), 3)
        if self.report is not None:
            result["logsCount"] = self.report.success_count
            result["skippedCount"] = self.report.skipped_count
        return result


# =========================================================================
# 远端日志元数据
# =========================================================================


@dataclass
class RemoteLog:
    """远端服务返回的单条日志元数据"""

    id: int | None
    line_count: int | None = None
    url: str | None = None
    signed_url: str | None = None
    signature_expires: str | None = None
    created_on: str | None = None
    last_changed_on: str | None = None

    @property
    def download_url(self) -> str | None:
        """优先使用签名 URL，其次回退到普通 URL"""
        return self.signed_url or self.url

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteLog:
        signed = data.get("signedContent") or {}
        return cls(
            id=data.get("id"),
            line_count=data.get("lineCount"),
            url=data.get("url"),
            signed_url=signed.get("url"),
            signature_expires=signed.get("signatureExpires"),
            created_on=data.get("createdOn"),
            last_changed_on=data.get("lastChangedOn"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id}
        if self.line_count is not None:
            result["lineCount"] = self.line_count
        if self.url:
            result["url"] = self.url
        if self.signed_url:
            result["signedContent"] = {
                "url": self.signed_url,
                "signatureExpires": self.signature_expires,
            }
        if self.created_on:
            result["createdOn"] = self.created_on
        if self.last_changed_on:
            result["lastChangedOn"] = self.last_changed_on
        return result


# =========================================================================
# 下载结果
# =========================================================================


@dataclass
class DownloadedLog:
    """成功写入磁盘的单条日志，行数与大小取自写入后的文件"""

    log_id: int
    file_name: str
    line_count: int
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "logId": self.log_id,
            "fileName": self.file_name,
            "lineCount": self.line_count,
            "size": self.size,
        }


@dataclass
class SkippedLog:
    """被跳过的单条日志及原因"""

    log_id: int | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"logId": self.log_id, "reason": self.reason}


@dataclass
class DownloadReport:
    """一次批量下载的结果：成功列表 + 跳过列表

    部分失败不是错误，只体现为 skipped 非空、files 变少。
    """

    directory: Path
    files: list[DownloadedLog] = field(default_factory=list)
    skipped: list[SkippedLog] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    @property
    def success_count(self) -> int:
        return len(self.files)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "downloadPath": str(self.directory),
            "files": [f.to_dict() for f in self.files],
            "skipped": [s.to_dict() for s in self.skipped],
            "totalSize": self.total_size,
        }


# =========================================================================
# 读取结果
# =========================================================================


@dataclass
class LogSlice:
    """单个日志文件的分页读取结果"""

    file_name: str
    content: str
    line_count: int
    total_lines: int
    size: int
    has_more: bool = False
    log_id: int | None = None
    offset: int | None = None
    limit: int | None = None
    cached: bool | None = None
    download_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.log_id is not None:
            result["logId"] = self.log_id
        result.update({
            "fileName": self.file_name,
            "content": self.content,
            "lineCount": self.line_count,
            "totalLines": self.total_lines,
            "size": self.size,
            "hasMore": self.has_more,
        })
        if self.offset is not None:
            result["offset"] = self.offset
        if self.limit is not None:
            result["limit"] = self.limit
        if self.cached is not None:
            result["cached"] = self.cached
        if self.download_path is not None:
            result["downloadPath"] = self.download_path
        return result


@dataclass
class CachedFile:
    """下载目录中的单个文件"""

    file_name: str
    size: int
    modified_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "size": self.size,
            "modifiedTime": self.modified_time,
        }


@dataclass
class CachedListing:
    """下载目录的文件清单，附带可选的 summary.json 内容"""

    download_path: str
    files: list[CachedFile] = field(default_factory=list)
    summary: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "downloadPath": self.download_path,
            "files": [f.to_dict() for f in self.files],
        }
        if self.summary is not None:
            result["summary"] = self.summary
        return result


# =========================================================================
# 检索
# =========================================================================


@dataclass
class SearchOptions:
    """检索选项，对应 grep 的 -i / -v / -B / -A / -m"""

    ignore_case: bool = False
    invert_match: bool = False
    before_context: int = 0
    after_context: int = 0
    max_matches: int | None = None
    log_ids: list[int] | None = None


@dataclass
class SearchMatch:
    """单行命中"""

    line_number: int
    line: str
    before_context: list[str] | None = None
    after_context: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"lineNumber": self.line_number, "line": self.line}
        if self.before_context is not None:
            result["beforeContext"] = self.before_context
        if self.after_context is not None:
            result["afterContext"] = self.after_context
        return result


@dataclass
class FileMatches:
    """单个日志文件内的全部命中"""

    log_id: int
    file_name: str
    matches: list[SearchMatch] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict[str, Any]:
        return {
            "logId": self.log_id,
            "fileName": self.file_name,
            "matches": [m.to_dict() for m in self.matches],
            "totalMatches": self.total_matches,
        }


@dataclass
class SearchResult:
    """多文件检索结果，文件按日志 ID 升序"""

    pattern: str
    matches: list[FileMatches] = field(default_factory=list)
    total_matches: int = 0
    cached: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "pattern": self.pattern,
            "matches": [m.to_dict() for m in self.matches],
            "totalMatches": self.total_matches,
        }
        if self.cached is not None:
            result["cached"] = self.cached
        return result
