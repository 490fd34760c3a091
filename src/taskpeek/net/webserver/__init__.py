# -*- coding: utf-8 -*-
"""Web 服务器（FastAPI + Uvicorn）"""

from taskpeek.net.webserver.healthz import (
    CompositeHealthChecker,
    FuncHealthChecker,
    HealthChecker,
    HealthCheckResult,
    HealthzController,
    PingHealthChecker,
)
from taskpeek.net.webserver.hooks import HookEntry, HookRegistry
from taskpeek.net.webserver.server import WebHandler, WebServer

__all__ = [
    "CompositeHealthChecker",
    "FuncHealthChecker",
    "HealthChecker",
    "HealthCheckResult",
    "HealthzController",
    "PingHealthChecker",
    "HookEntry",
    "HookRegistry",
    "WebHandler",
    "WebServer",
]
