"""流水线日志 API Blueprint"""

from __future__ import annotations

from flask import Blueprint, Response, request

from pipelogs.core.exceptions import ValidationError
from pipelogs.core.paths import resolve_within
from pipelogs.web.responses import not_found, ok

logs_bp = Blueprint("logs", __name__, url_prefix="/api")

_RUN = "/pipelines/<int:pipeline_id>/runs/<int:run_id>"
_TRUE = {"1", "true", "yes", "on"}


def _logs_svc():  # type: ignore[no-untyped-def]
    from pipelogs.services.container import get_container
    return get_container().logs


def _opt_int(name: str) -> int | None:
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"参数 '{name}' 必须为整数: {raw}", details=[name]) from None


def _flag(name: str) -> bool:
    return request.args.get(name, "").strip().lower() in _TRUE


def _id_list(name: str) -> list[int] | None:
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        return [int(p) for p in raw.split(",") if p.strip()]
    except ValueError:
        raise ValidationError(f"参数 '{name}' 必须为逗号分隔的整数: {raw}", details=[name]) from None


def _project() -> str | None:
    return request.args.get("project") or None


@logs_bp.route(f"{_RUN}/logs", methods=["GET"])
def list_run_logs(pipeline_id: int, run_id: int) -> Response:
    logs = _logs_svc().list_run_logs(pipeline_id, run_id, project_id=_project())
    return ok({"logs": [log.to_dict() for log in logs]})  # type: ignore[return-value]


@logs_bp.route(f"{_RUN}/logs/download", methods=["POST"])
def download(pipeline_id: int, run_id: int) -> Response:
    body = request.get_json(silent=True) or {}
    svc = _logs_svc()
    # 只允许写入 export_dir 之下
    output_dir = None
    if body.get("output_dir"):
        output_dir = resolve_within(svc.config.export_dir, str(body["output_dir"]))
    report = svc.download_run_logs(
        pipeline_id, run_id,
        output_dir=output_dir,
        project_id=body.get("project") or _project(),
    )
    return ok(report.to_dict())  # type: ignore[return-value]


@logs_bp.route(f"{_RUN}/logs/<int:log_id>", methods=["GET"])
def read_log(pipeline_id: int, run_id: int, log_id: int) -> Response:
    result = _logs_svc().read_log(
        pipeline_id, run_id, log_id,
        offset=_opt_int("offset"),
        limit=_opt_int("limit"),
        project_id=_project(),
        include_download_path=_flag("include_path"),
    )
    return ok(result.to_dict())  # type: ignore[return-value]


@logs_bp.route(f"{_RUN}/search", methods=["GET"])
def search(pipeline_id: int, run_id: int) -> Response:
    pattern = request.args.get("pattern", "")
    if not pattern:
        raise ValidationError("需要提供 pattern", details=["pattern"])
    result = _logs_svc().search_logs(
        pipeline_id, run_id, pattern,
        ignore_case=_flag("ignore_case"),
        invert_match=_flag("invert_match"),
        before_context=_opt_int("before") or 0,
        after_context=_opt_int("after") or 0,
        max_matches=_opt_int("max_matches"),
        log_ids=_id_list("log_ids"),
        project_id=_project(),
    )
    return ok(result.to_dict())  # type: ignore[return-value]


@logs_bp.route(f"{_RUN}/files", methods=["GET"])
def list_files(pipeline_id: int, run_id: int) -> Response:
    svc = _logs_svc()
    directory = svc.get_or_download(pipeline_id, run_id, project_id=_project())
    return ok(svc.list_cached_files(directory).to_dict())  # type: ignore[return-value]


@logs_bp.route(f"{_RUN}/cache", methods=["DELETE"])
def invalidate(pipeline_id: int, run_id: int) -> tuple[Response, int] | Response:
    removed = _logs_svc().invalidate(
        pipeline_id, run_id, project_id=_project(), remove_files=_flag("purge"),
    )
    if not removed:
        return not_found("缓存条目")
    return ok({"invalidated": True})


@logs_bp.route("/cache", methods=["GET"])
def cache_status() -> Response:
    return ok({"entries": _logs_svc().cache_status()})  # type: ignore[return-value]
