"""pipelogs - 流水线运行日志缓存与检索"""

__version__ = "0.1.0"
