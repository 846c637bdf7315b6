"""pipelogs 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import dataclasses
import os
from typing import Any

import click

from pipelogs import __version__
from pipelogs.core.config import init_config
from pipelogs.core.exceptions import PipeLogsError
from pipelogs.services.container import ServiceContainer, get_container, set_container
from pipelogs.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _fail(exc: PipeLogsError) -> click.ClickException:
    return click.ClickException(f"错误: {exc}")


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default="configs/pipelogs.yml",
              help="配置文件路径")
@click.option("--token", envvar="PIPELOGS_TOKEN", default=None, help="访问令牌 (PAT)")
@click.option("--org", envvar="PIPELOGS_ORG_URL", default=None, help="组织 URL")
@click.option("--project", envvar="PIPELOGS_PROJECT", default=None, help="默认项目")
def main(
    config_path: str, token: str | None, org: str | None, project: str | None,
) -> None:
    """pipelogs - 流水线运行日志缓存与检索"""
    setup_logging(
        level=os.getenv("PIPELOGS_LOG_LEVEL", "INFO"),
        json_output=os.getenv("PIPELOGS_LOG_JSON", "") == "1",
    )
    try:
        cfg = init_config(config_path)
    except PipeLogsError as e:
        raise _fail(e) from e

    overrides = {
        name: value for name, value in (
            ("token", token), ("organization_url", org), ("default_project", project),
        ) if value
    }
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)
    set_container(ServiceContainer(config=cfg))


# 注册各领域子命令
from pipelogs.cli.cmd_logs import register as _reg_logs  # noqa: E402
from pipelogs.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_logs(main)
_reg_misc(main)
