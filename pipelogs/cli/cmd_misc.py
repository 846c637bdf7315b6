"""CLI: 杂项命令（缓存状态、Web 服务）"""

from __future__ import annotations

import click

from pipelogs.cli import _fail, _svc
from pipelogs.core.exceptions import PipeLogsError


def register(group: click.Group) -> None:
    group.add_command(cache_group)
    group.add_command(serve)


# ---- 缓存 ----

@click.group(name="cache")
def cache_group() -> None:
    """日志缓存管理"""


@cache_group.command(name="status")
def cache_status() -> None:
    """列出当前进程内的缓存条目"""
    entries = _svc().logs.cache_status()
    if not entries:
        click.echo("没有缓存条目。")
        return
    for e in entries:
        state = "过期" if e.get("expired") else "有效"
        click.echo(f"  {e['key']:30s} {state}  age={e.get('ageSeconds', 0):.0f}s  {e['downloadPath']}")


@cache_group.command(name="purge")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
def cache_purge(pipeline_id: int, run_id: int, project: str | None) -> None:
    """删除指定运行的缓存目录"""
    try:
        removed = _svc().logs.invalidate(
            pipeline_id, run_id, project_id=project, remove_files=True,
        )
    except PipeLogsError as e:
        raise _fail(e) from e
    click.echo("缓存已删除" if removed else "没有对应的缓存条目")


# ---- Web 服务 ----

@click.command()
@click.option("--port", default=8888, help="监听端口")
@click.option("--host", default="127.0.0.1", help="监听地址")
def serve(port: int, host: str) -> None:
    """启动日志查询 Web 服务"""
    from pipelogs.web.app import run_server
    run_server(port=port, host=host)
