#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
生命周期钩子

参考 Go 版本 golang 库的 hooks.go 实现
提供 PostStartHook 和 PreShutdownHook 支持
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)

# 钩子函数类型
HookFunc = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class HookEntry:
    """
    钩子条目

    Attributes:
        hook: 钩子函数
        done: 执行完成事件
    """

    hook: HookFunc
    done: threading.Event = field(default_factory=threading.Event)

    def is_done(self) -> bool:
        """检查钩子是否已执行完成"""
        return self.done.is_set()

    async def run(self, name: str) -> None:
        """执行钩子，异常只记录日志"""
        try:
            result = self.hook()
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("hook %s failed", name)
        finally:
            self.done.set()


class HookRegistry:
    """按名称登记的钩子集合，同名重复注册报错"""

    def __init__(self, kind: str):
        self.kind = kind
        self._hooks: Dict[str, HookEntry] = {}
        self._lock = threading.Lock()

    def add(self, name: str, hook: HookFunc) -> None:
        if not name:
            raise ValueError(f"{self.kind} hook name must not be empty")
        if hook is None:
            raise ValueError(f"{self.kind} hook {name} must not be None")
        with self._lock:
            if name in self._hooks:
                raise ValueError(f"{self.kind} hook {name!r} is already registered")
            self._hooks[name] = HookEntry(hook=hook)

    def get(self, name: str) -> Optional[HookEntry]:
        return self._hooks.get(name)

    async def run_all(self) -> None:
        with self._lock:
            entries = list(self._hooks.items())
        for name, entry in entries:
            logger.debug("running %s hook %s", self.kind, name)
            await entry.run(name)
