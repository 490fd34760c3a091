# -*- coding: utf-8 -*-
"""taskpeek 日志：glog / text / json 格式，输出到标准输出"""

from .config import LogConfig, LogFormatter, install_logs, make_formatter
from .formatter import GlogFormatter, JsonFormatter, TextFormatter

__all__ = [
    "LogConfig",
    "LogFormatter",
    "install_logs",
    "make_formatter",
    "GlogFormatter",
    "JsonFormatter",
    "TextFormatter",
]
