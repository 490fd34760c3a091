# -*- coding: utf-8 -*-
"""
日志安装

exporter 以守护进程或容器运行，日志只写标准输出，由外部采集。
配置文件中的 log 段：

    log:
      formatter: glog   # glog | text | json
      level: info       # debug | info | warn | error | fatal
"""

import logging
import sys
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

from .formatter import GlogFormatter, JsonFormatter, TextFormatter

logger = logging.getLogger(__name__)


class LogFormatter(str, Enum):
    GLOG = "glog"
    TEXT = "text"
    JSON = "json"


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


@dataclass
class LogConfig:
    """log 配置段，未知级别按 info 处理"""

    formatter: str = LogFormatter.GLOG.value
    level: str = "info"
    report_caller: bool = True
    enable_colors: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def levelno(self) -> int:
        return _LEVELS.get(str(self.level).lower(), logging.INFO)


def make_formatter(config: LogConfig) -> logging.Formatter:
    kind = str(config.formatter).lower()
    if kind == LogFormatter.JSON.value:
        return JsonFormatter(report_caller=config.report_caller)
    if kind == LogFormatter.TEXT.value:
        return TextFormatter(report_caller=config.report_caller)
    return GlogFormatter(enable_colors=config.enable_colors, report_caller=config.report_caller)


def install_logs(config: Optional[LogConfig] = None, verbose: bool = False) -> None:
    """替换根 logger 的处理器为一个 stdout 处理器

    Args:
        config: 日志配置，None 时使用默认值
        verbose: 对应 --verbose，强制 debug 级别
    """
    config = config or LogConfig()
    level = logging.DEBUG if verbose else config.levelno

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(make_formatter(config))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logger.debug("logs installed: level=%s formatter=%s", logging.getLevelName(level), config.formatter)
