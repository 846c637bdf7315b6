"""日志读取器

读取已缓存的单个日志文件，按行分页返回:
  - 不指定 offset / limit: 返回全文，has_more=False
  - 指定任一参数: offset 默认 0，limit 默认 1000，切片 [offset, offset+limit)

行以 "\\n" 分隔；line_count 为本次切片的行数，total_lines 为文件总行数。
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pipelogs.core.exceptions import NotFoundError, ValidationError
from pipelogs.core.models import CachedFile, CachedListing, LogSlice
from pipelogs.core.paths import SUMMARY_FILE, log_file_name

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000
MAX_LIMIT = 5000


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def count_lines(path: Path) -> int:
    """与分页读取一致的行数统计"""
    return len(split_lines(read_text(path)))


def validate_page(
    offset: int | None, limit: int | None, max_limit: int,
) -> None:
    if offset is not None and offset < 0:
        raise ValidationError(f"offset 不能为负数: {offset}", details=["offset"])
    if limit is not None and not 1 <= limit <= max_limit:
        raise ValidationError(
            f"limit 必须在 1..{max_limit} 之间: {limit}", details=["limit"],
        )


def _paginate(
    path: Path,
    offset: int | None,
    limit: int | None,
    default_limit: int,
) -> LogSlice:
    full = read_text(path)
    lines = split_lines(full)
    total = len(lines)

    if offset is None and limit is None:
        return LogSlice(
            file_name=path.name, content=full,
            line_count=total, total_lines=total,
            size=path.stat().st_size, has_more=False,
        )

    start = offset or 0
    count = limit or default_limit
    selected = lines[start:start + count]
    return LogSlice(
        file_name=path.name,
        content="\n".join(selected),
        line_count=len(selected),
        total_lines=total,
        size=path.stat().st_size,
        has_more=start + count < total,
        offset=offset,
        limit=limit,
    )


def read_log(
    directory: str | Path,
    log_id: int,
    offset: int | None = None,
    limit: int | None = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> LogSlice:
    """按日志 ID 读取缓存目录中的日志

    Raises:
        ValidationError: offset / limit 越界
        NotFoundError: 对应的 log-<id>.txt 不存在（该日志未下载成功）
    """
    validate_page(offset, limit, max_limit)
    path = Path(directory) / log_file_name(log_id)
    if not path.is_file():
        raise NotFoundError(f"日志文件不存在: {path}")

    result = _paginate(path, offset, limit, default_limit)
    result.log_id = log_id
    return result


def read_file(
    directory: str | Path,
    file_name: str,
    offset: int | None = None,
    limit: int | None = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> LogSlice:
    """按文件名读取下载目录中的任意文件（如 log-001.txt / summary.json）"""
    validate_page(offset, limit, max_limit)
    if not file_name or "/" in file_name or "\\" in file_name or ".." in file_name:
        raise ValidationError(f"文件名不合法: {file_name!r}", details=["file_name"])

    path = Path(directory) / file_name
    if not path.exists():
        raise NotFoundError(f"文件不存在: {path}")
    if not path.is_file():
        raise ValidationError(f"路径存在但不是文件: {path}")
    return _paginate(path, offset, limit, default_limit)


def _load_summary(directory: Path) -> dict | None:
    summary_path = directory / SUMMARY_FILE
    if not summary_path.is_file():
        return None
    try:
        data = json.loads(read_text(summary_path))
    except json.JSONDecodeError as e:
        logger.warning("summary.json 无法解析，忽略: %s - %s", summary_path, e)
        return None
    return data if isinstance(data, dict) else None


def list_cached_files(directory: str | Path) -> CachedListing:
    """列出下载目录中的文件（不含 summary.json），按文件名排序"""
    d = Path(directory)
    if not d.exists():
        raise NotFoundError(f"目录不存在: {d}")
    if not d.is_dir():
        raise ValidationError(f"路径存在但不是目录: {d}")

    files: list[CachedFile] = []
    for entry in sorted(d.iterdir(), key=lambda p: p.name):
        if entry.name == SUMMARY_FILE or not entry.is_file():
            continue
        st = entry.stat()
        files.append(CachedFile(
            file_name=entry.name,
            size=st.st_size,
            modified_time=datetime.fromtimestamp(
                st.st_mtime, tz=timezone.utc,
            ).isoformat(),
        ))

    return CachedListing(
        download_path=str(d), files=files, summary=_load_summary(d),
    )
