"""CLI: 流水线日志命令（列表、下载、读取、检索、文件清单）"""

from __future__ import annotations

import json

import click

from pipelogs.cli import _fail, _svc
from pipelogs.core.exceptions import PipeLogsError


def register(group: click.Group) -> None:
    group.add_command(logs_group)


def _parse_ids(raw: str) -> list[int] | None:
    if not raw:
        return None
    try:
        return [int(p) for p in raw.split(",") if p.strip()]
    except ValueError:
        raise click.BadParameter(f"必须为逗号分隔的整数: {raw}", param_hint="--log-ids") from None


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@click.group(name="logs")
def logs_group() -> None:
    """流水线运行日志"""


@logs_group.command(name="list")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
def logs_list(pipeline_id: int, run_id: int, project: str | None) -> None:
    """列出远端运行的日志元数据"""
    try:
        logs = _svc().logs.list_run_logs(pipeline_id, run_id, project_id=project)
    except PipeLogsError as e:
        raise _fail(e) from e
    for log in logs:
        lines = "-" if log.line_count is None else str(log.line_count)
        signed = "signed" if log.signed_url else ""
        click.echo(f"  {log.id!s:>6}  lines={lines:>8}  {signed}")
    click.echo(f"共 {len(logs)} 条日志")


@logs_group.command(name="download")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
@click.option("--output", "-o", default=None, help="输出目录（默认取配置 export_dir）")
def logs_download(
    pipeline_id: int, run_id: int, project: str | None, output: str | None,
) -> None:
    """下载运行的全部日志到本地目录（不经过缓存）"""
    try:
        report = _svc().logs.download_run_logs(
            pipeline_id, run_id, output_dir=output, project_id=project,
        )
    except PipeLogsError as e:
        raise _fail(e) from e
    for f in report.files:
        click.echo(f"  {f.file_name:16s} {f.line_count:>8} 行  {f.size:>10} 字节")
    for s in report.skipped:
        click.echo(f"  [跳过] log {s.log_id}: {s.reason}")
    click.echo(
        f"已下载 {report.success_count} 个文件 ({report.total_size} 字节) -> {report.directory}"
    )


@logs_group.command(name="read")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.argument("log_id", type=int)
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
@click.option("--offset", type=int, default=None, help="起始行（0 开始）")
@click.option("--limit", type=int, default=None, help="读取行数")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
def logs_read(
    pipeline_id: int, run_id: int, log_id: int, project: str | None,
    offset: int | None, limit: int | None, as_json: bool,
) -> None:
    """读取单条日志（自动下载并缓存）"""
    try:
        result = _svc().logs.read_log(
            pipeline_id, run_id, log_id, offset=offset, limit=limit, project_id=project,
        )
    except PipeLogsError as e:
        raise _fail(e) from e
    if as_json:
        _echo_json(result.to_dict())
        return
    click.echo(result.content)
    if result.has_more:
        next_offset = (offset or 0) + result.line_count
        click.echo(
            f"-- 共 {result.total_lines} 行，还有更多内容 (--offset {next_offset}) --",
            err=True,
        )


@logs_group.command(name="search")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.argument("pattern")
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
@click.option("--ignore-case", "-i", is_flag=True, help="忽略大小写")
@click.option("--invert-match", "-v", is_flag=True, help="反向匹配")
@click.option("--before", "-B", type=int, default=0, help="命中前的上下文行数")
@click.option("--after", "-A", type=int, default=0, help="命中后的上下文行数")
@click.option("--max-matches", "-m", type=int, default=None, help="全部文件的命中上限")
@click.option("--log-ids", default="", help="只检索指定日志，逗号分隔")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
def logs_search(
    pipeline_id: int, run_id: int, pattern: str, project: str | None,
    ignore_case: bool, invert_match: bool, before: int, after: int,
    max_matches: int | None, log_ids: str, as_json: bool,
) -> None:
    """在运行的日志中检索（类似 grep -B/-A/-i/-v/-m）"""
    try:
        result = _svc().logs.search_logs(
            pipeline_id, run_id, pattern,
            ignore_case=ignore_case, invert_match=invert_match,
            before_context=before, after_context=after,
            max_matches=max_matches, log_ids=_parse_ids(log_ids),
            project_id=project,
        )
    except PipeLogsError as e:
        raise _fail(e) from e
    if as_json:
        _echo_json(result.to_dict())
        return
    for fm in result.matches:
        click.echo(f"== {fm.file_name} ({fm.total_matches}) ==")
        for m in fm.matches:
            for line in m.before_context or []:
                click.echo(f"   - {line}")
            click.echo(f"{m.line_number:>6}: {m.line}")
            for line in m.after_context or []:
                click.echo(f"   + {line}")
    click.echo(f"共 {result.total_matches} 处命中")


@logs_group.command(name="files")
@click.argument("pipeline_id", type=int)
@click.argument("run_id", type=int)
@click.option("--project", "-p", default=None, help="项目名称（默认取配置）")
def logs_files(pipeline_id: int, run_id: int, project: str | None) -> None:
    """列出缓存目录中的日志文件"""
    svc = _svc().logs
    try:
        listing = svc.list_cached_files(
            svc.get_or_download(pipeline_id, run_id, project_id=project),
        )
    except PipeLogsError as e:
        raise _fail(e) from e
    click.echo(f"目录: {listing.download_path}")
    for f in listing.files:
        click.echo(f"  {f.file_name:16s} {f.size:>10}  {f.modified_time[:19]}")
