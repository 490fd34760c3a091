# -*- coding: utf-8 -*-
"""psutil 替身对象"""

from types import SimpleNamespace
from typing import Dict, List, Optional

import psutil

TASK_CMDLINE = [
    "/usr/bin/python3",
    "/usr/local/bin/airflow",
    "run",
    "my_dag",
    "extract_op",
    "2024-01-02T03:04:05",
    "--job_id",
    "42",
    "--raw",
    "-sd",
    "DAGS_FOLDER/my_dag.py",
]


def mem_info(**fields) -> SimpleNamespace:
    values = dict(rss=100, vms=200, shared=30, text=4, lib=0, data=50, dirty=0)
    values.update(fields)
    return SimpleNamespace(**values)


def mem_region(**fields) -> SimpleNamespace:
    values = dict(
        path="[heap]",
        rss=10,
        size=10,
        pss=7,
        shared_clean=1,
        shared_dirty=2,
        private_clean=3,
        private_dirty=4,
        referenced=0,
        anonymous=0,
        swap=5,
    )
    values.update(fields)
    return SimpleNamespace(**values)


class FakeProcess:
    """psutil.Process 替身

    failures 中列出的方法名会抛出 psutil.AccessDenied
    """

    def __init__(
        self,
        pid: int = 1000,
        cmdline: Optional[List[str]] = None,
        memory: Optional[SimpleNamespace] = None,
        regions: Optional[List[SimpleNamespace]] = None,
        user: float = 1.5,
        system: float = 0.5,
        percent: float = 12.5,
        created: float = 1700000000.0,
        failures: tuple = (),
    ):
        self.pid = pid
        self._cmdline = TASK_CMDLINE if cmdline is None else cmdline
        self._memory = memory or mem_info()
        self._regions = [mem_region()] if regions is None else regions
        self._user = user
        self._system = system
        self._percent = percent
        self._created = created
        self.failures = set(failures)
        self.info: Dict[str, object] = {"pid": pid, "cmdline": self._cmdline}

    def _maybe_fail(self, name: str) -> None:
        if name in self.failures:
            raise psutil.AccessDenied(pid=self.pid)

    def cmdline(self):
        self._maybe_fail("cmdline")
        return self._cmdline

    def create_time(self):
        self._maybe_fail("create_time")
        return self._created

    def memory_info(self):
        self._maybe_fail("memory_info")
        return self._memory

    def memory_maps(self, grouped=True):
        self._maybe_fail("memory_maps")
        return self._regions

    def cpu_times(self):
        self._maybe_fail("cpu_times")
        return SimpleNamespace(user=self._user, system=self._system)

    def cpu_percent(self, interval=None):
        self._maybe_fail("cpu_percent")
        return self._percent


