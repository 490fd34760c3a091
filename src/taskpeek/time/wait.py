"""
Wait 定时轮询工具模块

移植自 golang/go/time/wait.go（同步线程版本）

功能特性：
- 定时轮询执行（until/jitter_until），间隔从上一次执行完成后开始计算
- 通过 threading.Event 取消
- 单次执行异常不会终止轮询（可选 stop_on_error）

使用示例：
    stop = threading.Event()

    # 每 10 秒执行一次，直到 stop 被设置
    until(collect, period=10.0, stop=stop)
"""

import logging
import random
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class WaitCancelledError(Exception):
    """等待被取消错误"""

    pass


def jitter(period: float, jitter_factor: float) -> float:
    """
    计算带抖动的间隔

    Args:
        period: 基础间隔（秒）
        jitter_factor: 抖动因子（0-1），<= 0 表示不抖动

    Returns:
        实际间隔，位于 [period, period*(1+jitter_factor)]
    """
    if jitter_factor <= 0:
        return period
    return period + random.random() * jitter_factor * period


def sleep(seconds: float, stop: Optional[threading.Event] = None) -> None:
    """
    可取消的休眠

    Args:
        seconds: 休眠时间（秒）
        stop: 取消事件

    Raises:
        WaitCancelledError: 休眠期间 stop 被设置
    """
    if stop is None:
        time.sleep(seconds)
        return
    if stop.wait(seconds):
        raise WaitCancelledError("wait cancelled")


def jitter_until(
    func: Callable[..., Any],
    period: float,
    stop: threading.Event,
    jitter_factor: float = 0.0,
    stop_on_error: bool = False,
    *args: Any,
    **kwargs: Any,
) -> None:
    """
    带抖动的定时轮询执行函数，直到 stop 被设置

    Args:
        func: 要定时执行的函数
        period: 基础执行周期（秒）
        stop: 取消事件
        jitter_factor: 抖动因子（0-1）
        stop_on_error: 是否在遇到错误时停止
        *args: 传递给函数的位置参数
        **kwargs: 传递给函数的关键字参数

    Raises:
        Exception: 当 stop_on_error=True 时，函数执行异常
    """
    while not stop.is_set():
        try:
            func(*args, **kwargs)
        except Exception:
            if stop_on_error:
                raise
            logger.exception("jitter_until: 执行异常, func=%s", getattr(func, "__name__", func))

        try:
            sleep(jitter(period, jitter_factor), stop)
        except WaitCancelledError:
            logger.debug("jitter_until: 已取消")
            return


def until(
    func: Callable[..., Any],
    period: float,
    stop: threading.Event,
    stop_on_error: bool = False,
    *args: Any,
    **kwargs: Any,
) -> None:
    """
    定时轮询执行函数，直到 stop 被设置

    函数会在每个周期执行一次，执行间隔从上一次执行完成后开始计算（sliding=True）

    使用示例：
        # 永久轮询（直到外部取消）
        until(heartbeat, period=5.0, stop=stop)
    """
    jitter_until(
        func,
        period,
        stop,
        0.0,
        stop_on_error,
        *args,
        **kwargs,
    )
