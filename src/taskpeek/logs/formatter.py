# -*- coding: utf-8 -*-
"""
日志格式化器

glog 格式：

    [LEVEL] [yyyymmdd hh:mm:ss.uuuuuu] [PID] [file:line](func) msg k=v ...

    [INFO] [20240917 23:00:00.123456] [12345] [cycle.py:88](_tick) published 3 task processes

记录上的 extra_fields（dict）会追加到行尾，json 格式下合并进对象。
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class GlogFormatter(logging.Formatter):
    LEVELS = {
        logging.DEBUG: ("DEBU", "\033[37m"),
        logging.INFO: ("INFO", "\033[36m"),
        logging.WARNING: ("WARN", "\033[33m"),
        logging.ERROR: ("ERRO", "\033[31m"),
        logging.CRITICAL: ("FATA", "\033[35m"),
    }
    RESET = "\033[0m"

    def __init__(
        self,
        datefmt: str = "%Y%m%d %H:%M:%S",
        enable_colors: bool = False,
        report_caller: bool = True,
    ):
        super().__init__(datefmt=datefmt)
        self.report_caller = report_caller
        # 仅在终端上着色
        self.colorize = enable_colors and sys.stdout.isatty()

    def _level(self, levelno: int) -> str:
        text, color = self.LEVELS.get(levelno, ("UNKN", ""))
        if self.colorize and color:
            return f"{color}[{text}]{self.RESET}"
        return f"[{text}]"

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created)
        parts = [
            self._level(record.levelno),
            f"[{created.strftime(self.datefmt)}.{created.microsecond:06d}]",
            f"[{record.process or os.getpid()}]",
        ]
        if self.report_caller:
            parts.append(f"[{os.path.basename(record.pathname)}:{record.lineno}]({record.funcName})")
        parts.append(record.getMessage())
        parts.extend(f"{k}={v}" for k, v in _extra_fields(record).items())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TextFormatter(logging.Formatter):
    """DATETIME - NAME - LEVEL - [file:line] - MESSAGE"""

    def __init__(self, datefmt: str = "%Y-%m-%d %H:%M:%S", report_caller: bool = True):
        caller = "[%(filename)s:%(lineno)d] - " if report_caller else ""
        super().__init__(
            fmt=f"%(asctime)s - %(name)s - %(levelname)s - {caller}%(message)s",
            datefmt=datefmt,
        )


class JsonFormatter(logging.Formatter):
    """每条记录一行 JSON"""

    def __init__(self, report_caller: bool = True):
        super().__init__()
        self.report_caller = report_caller

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.report_caller:
            data.update(file=record.pathname, line=record.lineno, function=record.funcName)
        data.update(_extra_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)
