#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
探针端点

/livez  采样线程是否还在运行
/readyz 服务已启动且最近一次采样周期足够新
/healthz 两者合并

每个检查函数返回 None 表示通过，返回异常表示失败；
响应体形如 {"status": "...", "timestamp": "...", "checks": [...]}
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_UNHEALTHY = "unhealthy"
STATUS_NOT_READY = "not ready"


class HealthCheckResult(BaseModel):
    """单个检查器的一次结果"""

    name: str
    status: str
    message: str = ""
    duration_ms: float = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


class HealthChecker(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def check(self) -> Optional[Exception]:
        ...


class PingHealthChecker(HealthChecker):
    """进程能响应请求即视为通过"""

    @property
    def name(self) -> str:
        return "ping"

    async def check(self) -> Optional[Exception]:
        return None


class FuncHealthChecker(HealthChecker):
    """把普通函数或协程函数包装成检查器，抛出的异常按失败处理"""

    def __init__(self, checker_name: str, check_func: Callable[[], Optional[Exception]]):
        self._name = checker_name
        self._check_func = check_func

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> Optional[Exception]:
        try:
            result = self._check_func()
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            return e
        return result


class CompositeHealthChecker(HealthChecker):
    """按注册顺序执行子检查器，任一失败则整体失败"""

    def __init__(self, checker_name: str):
        self._name = checker_name
        self._checkers: List[HealthChecker] = []

    @property
    def name(self) -> str:
        return self._name

    def add_checker(self, checker: HealthChecker) -> None:
        self._checkers.append(checker)

    async def check_all(self) -> List[HealthCheckResult]:
        results = []
        for checker in self._checkers:
            started = time.monotonic()
            err = await checker.check()
            results.append(
                HealthCheckResult(
                    name=checker.name,
                    status=STATUS_OK if err is None else STATUS_FAILED,
                    message="" if err is None else str(err),
                    duration_ms=round((time.monotonic() - started) * 1000, 2),
                )
            )
        return results

    async def check(self) -> Optional[Exception]:
        failed = [f"{r.name}: {r.message}" for r in await self.check_all() if not r.ok]
        return Exception("; ".join(failed)) if failed else None


class HealthzController:
    """
    探针控制器

    就绪状态由 WebServer 的 lifespan 切换：启动钩子执行完后就绪，
    关闭前取消就绪。未就绪时 /readyz 与 /healthz 返回 503。
    """

    def __init__(self):
        self.livez_checkers = CompositeHealthChecker("livez")
        self.livez_checkers.add_checker(PingHealthChecker())
        self.readyz_checkers = CompositeHealthChecker("readyz")
        self.readyz_checkers.add_checker(PingHealthChecker())
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def set_ready(self, ready: bool) -> None:
        self._ready = ready

    def add_livez_checker(self, checker: HealthChecker) -> None:
        self.livez_checkers.add_checker(checker)

    def add_readyz_checker(self, checker: HealthChecker) -> None:
        self.readyz_checkers.add_checker(checker)

    @staticmethod
    def _respond(results: Sequence[HealthCheckResult], require_ready: Optional[bool] = None) -> JSONResponse:
        if require_ready is False:
            status = STATUS_NOT_READY
        elif all(r.ok for r in results):
            status = STATUS_OK
        else:
            status = STATUS_UNHEALTHY
        return JSONResponse(
            status_code=200 if status == STATUS_OK else 503,
            content={
                "status": status,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "checks": [r.model_dump() for r in results],
            },
        )

    async def _prefixed(self, group: CompositeHealthChecker) -> List[HealthCheckResult]:
        results = await group.check_all()
        for r in results:
            r.name = f"{group.name}/{r.name}"
        return results

    def install_routes(self, app: FastAPI) -> None:
        @app.get("/livez", tags=["Health"])
        async def livez() -> JSONResponse:
            return self._respond(await self.livez_checkers.check_all())

        @app.get("/readyz", tags=["Health"])
        async def readyz() -> JSONResponse:
            return self._respond(await self.readyz_checkers.check_all(), self._ready)

        @app.get("/healthz", tags=["Health"])
        async def healthz() -> JSONResponse:
            results = await self._prefixed(self.livez_checkers)
            results += await self._prefixed(self.readyz_checkers)
            return self._respond(results, self._ready)
