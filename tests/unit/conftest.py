# -*- coding: utf-8 -*-
"""单元测试夹具"""

import pytest
from prometheus_client import CollectorRegistry

from fakes import FakeProcess


@pytest.fixture
def task_process() -> FakeProcess:
    """一个正常的 airflow 任务进程"""
    return FakeProcess()


@pytest.fixture
def registry() -> CollectorRegistry:
    """独立的 Prometheus Registry"""
    return CollectorRegistry()
