"""本地存储路径解析

由 (project, pipeline, run) 推导确定的本地目录，无状态。

目录布局:
  <cache_dir>/<project>/pipeline-<pid>-run-<rid>/log-001.txt
  <export_dir>/pipeline-<pid>-run-<rid>-logs/log-001.txt   (显式下载)
"""

from __future__ import annotations

import re
from pathlib import Path

from pipelogs.core.exceptions import ValidationError
from pipelogs.core.models import CacheKey

SUMMARY_FILE = "summary.json"

_LOG_FILE_RE = re.compile(r"^log-(\d+)\.txt$")
_UNSAFE_SEGMENT_RE = re.compile(r"[\\/:]|\.\.")


def safe_segment(value: str) -> str:
    """把任意字符串转为单级目录名，避免路径穿越"""
    cleaned = _UNSAFE_SEGMENT_RE.sub("_", value.strip())
    return cleaned or "_"


def run_directory(base_dir: str | Path, key: CacheKey) -> Path:
    return (
        Path(base_dir)
        / safe_segment(key.project_id)
        / f"pipeline-{key.pipeline_id}-run-{key.run_id}"
    )


def export_directory(output_dir: str | Path, pipeline_id: int, run_id: int) -> Path:
    return Path(output_dir) / f"pipeline-{pipeline_id}-run-{run_id}-logs"


def resolve_within(base_dir: str | Path, sub_dir: str) -> Path:
    """把相对路径解析到 base_dir 之下，绝对路径或越出 base_dir 时报错"""
    base = Path(base_dir).resolve()
    if Path(sub_dir).is_absolute():
        raise ValidationError(f"输出目录必须是相对路径: {sub_dir}", details=["output_dir"])
    target = (base / sub_dir).resolve()
    if target != base and base not in target.parents:
        raise ValidationError(f"输出目录越出导出根目录: {sub_dir}", details=["output_dir"])
    return target


def log_file_name(log_id: int) -> str:
    """零填充 3 位，保证 log-002 排在 log-010 之前"""
    return f"log-{log_id:03d}.txt"


def parse_log_id(file_name: str) -> int | None:
    m = _LOG_FILE_RE.match(file_name)
    if m is None:
        return None
    return int(m.group(1))


def discover_log_ids(directory: str | Path) -> list[int]:
    """按文件命名约定发现目录中的日志 ID，升序返回"""
    d = Path(directory)
    if not d.is_dir():
        return []
    ids = set()
    for f in d.iterdir():
        log_id = parse_log_id(f.name)
        if log_id is not None and f.is_file():
            ids.add(log_id)
    return sorted(ids)
