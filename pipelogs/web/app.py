"""轻量级 Web 接口（基于 Flask）

提供: 远端日志列表、显式下载、分页读取、多文件检索、缓存状态。

启动方式: pipelogs serve --port 8888
生产部署: gunicorn --config deploy/gunicorn.conf.py pipelogs.web.app:app
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from pipelogs.core.exceptions import PipeLogsError
from pipelogs.web.blueprints import logs_bp
from pipelogs.web.responses import error_response

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    flask_app = Flask(__name__)
    flask_app.register_blueprint(logs_bp)

    @flask_app.errorhandler(PipeLogsError)
    def handle_business_error(exc: PipeLogsError):  # type: ignore[no-untyped-def]
        return error_response(exc)

    @flask_app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):  # type: ignore[no-untyped-def]
        """将所有 HTTP 异常统一返回 JSON"""
        return jsonify(error=exc.description), exc.code

    @flask_app.errorhandler(Exception)
    def handle_generic_exception(exc: Exception):  # type: ignore[no-untyped-def]  # noqa: ARG001
        """捕获未处理异常，返回 500 JSON"""
        logger.exception("未处理的异常")
        return jsonify(error="服务器内部错误"), 500

    @flask_app.route("/api/health")
    def health():  # type: ignore[no-untyped-def]
        return jsonify(status="ok")

    return flask_app


app = create_app()


def run_server(port: int = 8888, debug: bool = False, host: str = "127.0.0.1") -> None:
    logger.info("pipelogs 服务已启动: http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug, threaded=True)
