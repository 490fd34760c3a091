"""
Wait 定时轮询工具模块测试
"""

import threading
import time

import pytest

from taskpeek.time.wait import (
    WaitCancelledError,
    jitter,
    jitter_until,
    sleep,
    until,
)


def _run_in_thread(target, *args, **kwargs):
    thread = threading.Thread(target=target, args=args, kwargs=kwargs, daemon=True)
    thread.start()
    return thread


class TestUntil:
    """定时轮询测试"""

    def test_runs_periodically_until_stopped(self):
        """测试周期执行直到取消"""
        stop = threading.Event()
        counter = {"value": 0}

        def tick():
            counter["value"] += 1

        thread = _run_in_thread(until, tick, 0.01, stop)
        time.sleep(0.2)
        stop.set()
        thread.join(timeout=1.0)

        assert not thread.is_alive()
        assert counter["value"] >= 3

    def test_stop_before_start(self):
        """测试已取消时不执行"""
        stop = threading.Event()
        stop.set()
        calls = []
        until(lambda: calls.append(1), 0.01, stop)
        assert calls == []

    def test_error_does_not_stop_loop(self):
        """测试单次异常不会终止轮询"""
        stop = threading.Event()
        counter = {"value": 0}

        def flaky():
            counter["value"] += 1
            if counter["value"] == 1:
                raise RuntimeError("boom")
            if counter["value"] >= 3:
                stop.set()

        until(flaky, 0.01, stop)
        assert counter["value"] == 3

    def test_stop_on_error(self):
        """测试 stop_on_error=True 时异常上抛"""
        stop = threading.Event()

        def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            until(broken, 0.01, stop, True)

    def test_sleep_is_interruptible(self):
        """测试取消会打断休眠"""
        stop = threading.Event()
        thread = _run_in_thread(until, lambda: None, 60, stop)
        time.sleep(0.05)

        start = time.monotonic()
        stop.set()
        thread.join(timeout=2.0)
        assert time.monotonic() - start < 1.0


class TestJitter:
    def test_no_jitter(self):
        assert jitter(1.0, 0) == 1.0

    def test_bounds(self):
        for _ in range(100):
            assert 1.0 <= jitter(1.0, 0.5) <= 1.5

    def test_jitter_until_runs(self):
        stop = threading.Event()
        calls = []

        def tick():
            calls.append(1)
            if len(calls) == 2:
                stop.set()

        jitter_until(tick, 0.01, stop, 0.5)
        assert len(calls) == 2


class TestSleep:
    def test_cancelled(self):
        stop = threading.Event()
        stop.set()
        with pytest.raises(WaitCancelledError):
            sleep(1.0, stop)

    def test_plain_sleep(self):
        start = time.monotonic()
        sleep(0.01)
        assert time.monotonic() - start >= 0.01
