"""Gunicorn 生产配置

用法:
  gunicorn --config deploy/gunicorn.conf.py pipelogs.web.app:app

日志缓存是进程内映射，多 worker 之间不共享，单飞只在同一进程内生效；
因此固定单 worker，通过线程数扩展并发。
"""

import os

# ---------- 网络 ----------
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8888")

# ---------- 并发 ----------
workers = 1
threads = int(os.getenv("GUNICORN_THREADS", "8"))
worker_class = "gthread"
timeout = int(os.getenv("GUNICORN_TIMEOUT", "300"))

# ---------- 日志 ----------
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ---------- 进程管理 ----------
graceful_timeout = 30
keepalive = 5


def on_starting(server):  # noqa: ARG001
    from pipelogs.core.config import init_config
    from pipelogs.utils.logger import setup_logging
    setup_logging(
        level=os.getenv("PIPELOGS_LOG_LEVEL", "INFO"),
        json_output=os.getenv("PIPELOGS_LOG_JSON", "") == "1",
    )
    init_config(os.getenv("PIPELOGS_CONFIG", "configs/pipelogs.yml"))
