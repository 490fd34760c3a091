#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
WebServer

FastAPI 应用 + uvicorn。业务路由通过 WebHandler 安装，
后台任务（采样周期）挂在 post-start / pre-shutdown 钩子上，
随 lifespan 启停。
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from taskpeek.net.webserver.healthz import HealthzController
from taskpeek.net.webserver.hooks import HookFunc, HookRegistry

logger = logging.getLogger(__name__)


class WebHandler:
    """路由提供者，子类实现 set_routes"""

    def set_routes(self, app: FastAPI) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement set_routes")


class WebServer:
    """
    示例:
        server = WebServer(host="0.0.0.0", port=8080)
        server.install_web_handler(MetricsHandler(registry))
        server.add_post_start_hook("sampling-cycle", cycle.start)
        server.add_pre_shutdown_hook("sampling-cycle", cycle.stop)
        server.run()
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8080,
        title: str = "taskpeek",
        version: str = "",
    ):
        self.host = host
        self.port = port
        self.healthz_controller: Optional[HealthzController] = None

        self._post_start_hooks = HookRegistry("post-start")
        self._pre_shutdown_hooks = HookRegistry("pre-shutdown")

        # 只暴露指标与探针，不生成 API 文档
        self.app = FastAPI(
            title=title,
            version=version or "0.0.0",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=self._lifespan,
        )

    def _set_ready(self, ready: bool) -> None:
        if self.healthz_controller is not None:
            self.healthz_controller.set_ready(ready)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self._post_start_hooks.run_all()
        self._set_ready(True)
        try:
            yield
        finally:
            self._set_ready(False)
            await self._pre_shutdown_hooks.run_all()

    def add_post_start_hook(self, name: str, hook: HookFunc) -> None:
        self._post_start_hooks.add(name, hook)

    def add_pre_shutdown_hook(self, name: str, hook: HookFunc) -> None:
        self._pre_shutdown_hooks.add(name, hook)

    def install_healthz_controller(
        self, controller: Optional[HealthzController] = None
    ) -> HealthzController:
        """安装 /healthz /livez /readyz，返回控制器以便追加检查器"""
        self.healthz_controller = controller or HealthzController()
        self.healthz_controller.install_routes(self.app)
        return self.healthz_controller

    def install_web_handler(self, handler: WebHandler) -> None:
        handler.set_routes(self.app)

    def run(self) -> None:
        """阻塞运行；端口绑定失败时 uvicorn 以 SystemExit 退出"""
        if self.healthz_controller is None:
            self.install_healthz_controller()

        logger.info("listening on %s:%s", self.host, self.port)
        # log_config=None: uvicorn 日志走根 logger 的处理器
        uvicorn.run(self.app, host=self.host, port=self.port, log_level="info", log_config=None)
