"""Web 路由模块 - Blueprint 集合

- logs_bp.py: 流水线日志 API
"""

from pipelogs.web.blueprints.logs_bp import logs_bp

__all__ = ["logs_bp"]
