"""配置读取与结果落盘

- load_yaml: 读取配置文件（configs/pipelogs.yml）
- atomic_write: 原子写入 summary.json 等批次元数据，读者不会看到半个文件
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 配置文件上限 1MB
MAX_YAML_SIZE = 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """写入同目录临时文件后 os.replace 到目标路径

    Raises:
        OSError: 写入或替换失败，临时文件会被清理
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射；文件不存在或为空时返回 {}

    Raises:
        yaml.YAMLError: 语法错误
        ValueError: 文件超过 MAX_YAML_SIZE
    """
    p = Path(path)
    if not p.is_file():
        logger.debug("配置文件不存在，使用默认值: %s", p)
        return {}
    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"配置文件过大: {p} ({size} 字节)")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("配置文件顶层不是映射，忽略: %s (%s)", p, type(data).__name__)
        return {}
    return data
