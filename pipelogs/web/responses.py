"""Web 层统一响应辅助函数

消除各 Blueprint 中重复的 jsonify(error=...), 400/404 模式。
"""

from __future__ import annotations

from flask import Response, jsonify

from pipelogs.core.exceptions import PipeLogsError

# 业务异常 code → HTTP 状态码
_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "AUTHENTICATION_ERROR": 401,
    "REMOTE_ERROR": 502,
    "CONFIG_ERROR": 500,
}


def ok(data: dict, status: int = 200) -> tuple[Response, int] | Response:
    """成功响应"""
    if status == 200:
        return jsonify(data)
    return jsonify(data), status


def not_found(resource: str) -> tuple[Response, int]:
    """资源不存在"""
    return jsonify(error=f"{resource}不存在", code="NOT_FOUND"), 404


def error_response(exc: PipeLogsError) -> tuple[Response, int]:
    """业务异常 → JSON 错误响应"""
    status = _STATUS_BY_CODE.get(exc.code, 500)
    body: dict = {"error": str(exc), "code": exc.code}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details
    return jsonify(body), status
