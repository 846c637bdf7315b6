"""集中配置管理

替代各模块散落的 DEFAULT_* 常量，提供统一的配置入口。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import yaml

from pipelogs.core.exceptions import ConfigError
from pipelogs.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """全局配置"""

    # 目录
    cache_dir: str = "data/pipeline-logs"
    export_dir: str = "."

    # 缓存
    cache_ttl_seconds: int = 15 * 60
    write_summary: bool = True

    # 下载
    max_concurrent_downloads: int = 3
    fetch_timeout: float = 30.0

    # 读取 / 检索
    default_read_limit: int = 1000
    max_read_limit: int = 5000
    default_max_matches: int = 100
    max_context_lines: int = 10

    # 远端服务
    organization_url: str = ""
    default_project: str = ""
    token: str = ""
    api_version: str = "7.1"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.cache_ttl_seconds <= 0:
            raise ConfigError(f"cache_ttl_seconds 必须为正数: {self.cache_ttl_seconds}")
        if self.max_concurrent_downloads < 1:
            raise ConfigError(
                f"max_concurrent_downloads 至少为 1: {self.max_concurrent_downloads}",
            )
        if not 1 <= self.default_read_limit <= self.max_read_limit:
            raise ConfigError(
                f"default_read_limit 必须在 1..{self.max_read_limit} 之间: "
                f"{self.default_read_limit}",
            )

    @classmethod
    def from_file(cls, path: str = "configs/pipelogs.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError, OSError) as e:
            raise ConfigError(f"无法读取配置文件: {path} - {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效: {path} - {e}") from e
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        from dataclasses import asdict
        data = asdict(self)
        if data.get("token"):
            data["token"] = "***"
        return data


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/pipelogs.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
