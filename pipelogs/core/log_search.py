"""日志检索引擎

在已缓存的运行目录上执行类 grep 的多文件检索:
  - ignore_case:    忽略大小写 (-i)
  - invert_match:   输出不匹配的行 (-v)
  - before/after:   命中行前后的上下文行数 (-B / -A)，在文件边界处截断
  - max_matches:    跨文件的全局命中上限 (-m)，达到后立即停止全部处理
  - log_ids:        只检索指定日志，默认检索目录中的全部日志

文件按日志 ID 升序处理，与下载完成的先后无关；文件内命中按行号升序。
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pipelogs.core.exceptions import ValidationError
from pipelogs.core.log_reader import read_text, split_lines
from pipelogs.core.models import FileMatches, SearchMatch, SearchOptions, SearchResult
from pipelogs.core.paths import discover_log_ids, log_file_name

logger = logging.getLogger(__name__)

MAX_CONTEXT_LINES = 10


def compile_pattern(pattern: str, ignore_case: bool = False) -> re.Pattern[str]:
    """编译检索模式，非法正则在任何 IO 之前报错"""
    if not isinstance(pattern, str) or pattern == "":
        raise ValidationError("检索模式不能为空", details=["pattern"])
    flags = re.IGNORECASE if ignore_case else 0
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ValidationError(
            f"非法的正则表达式 '{pattern}': {e}", details=["pattern"],
        ) from e


def validate_options(options: SearchOptions, max_context: int = MAX_CONTEXT_LINES) -> None:
    errors: list[str] = []
    for name in ("before_context", "after_context"):
        value = getattr(options, name)
        if not 0 <= value <= max_context:
            errors.append(f"{name} 必须在 0..{max_context} 之间: {value}")
    if options.max_matches is not None and options.max_matches < 1:
        errors.append(f"max_matches 至少为 1: {options.max_matches}")
    if options.log_ids is not None:
        bad = [i for i in options.log_ids if isinstance(i, bool) or not isinstance(i, int) or i <= 0]
        if bad:
            errors.append(f"log_ids 必须为正整数: {bad}")
    if errors:
        raise ValidationError("; ".join(errors), details=errors)


class LogSearcher:
    """多文件上下文检索"""

    def __init__(self, max_context: int = MAX_CONTEXT_LINES) -> None:
        self.max_context = max_context

    def search(
        self,
        directory: str | Path,
        pattern: str,
        options: SearchOptions | None = None,
    ) -> SearchResult:
        """在 directory 下的日志文件中检索 pattern

        Raises:
            ValidationError: 正则非法或选项越界（不做任何文件读取）
        """
        opts = options or SearchOptions()
        regex = compile_pattern(pattern, opts.ignore_case)
        validate_options(opts, self.max_context)

        d = Path(directory)
        result = SearchResult(pattern=pattern)

        for log_id in self._target_ids(d, opts.log_ids):
            path = d / log_file_name(log_id)
            if not path.is_file():
                logger.warning("待检索的日志不存在，跳过: %s", path)
                continue

            lines = split_lines(read_text(path))
            file_matches = FileMatches(log_id=log_id, file_name=path.name)
            limit_hit = self._scan(lines, regex, opts, file_matches, result)

            if file_matches.matches:
                result.matches.append(file_matches)
            if limit_hit:
                logger.debug("已达到命中上限 %d，停止检索", opts.max_matches)
                break

        return result

    @staticmethod
    def _target_ids(directory: Path, log_ids: list[int] | None) -> list[int]:
        if log_ids:
            return sorted(set(log_ids))
        return discover_log_ids(directory)

    @staticmethod
    def _scan(
        lines: list[str],
        regex: re.Pattern[str],
        opts: SearchOptions,
        file_matches: FileMatches,
        result: SearchResult,
    ) -> bool:
        """扫描单个文件，返回是否已达到全局命中上限"""
        for i, line in enumerate(lines):
            if (regex.search(line) is not None) == opts.invert_match:
                continue

            match = SearchMatch(line_number=i + 1, line=line)
            if opts.before_context > 0:
                match.before_context = lines[max(0, i - opts.before_context):i]
            if opts.after_context > 0:
                match.after_context = lines[i + 1:i + 1 + opts.after_context]
            file_matches.matches.append(match)
            result.total_matches += 1

            if opts.max_matches is not None and result.total_matches >= opts.max_matches:
                return True
        return False
