"""
日志配置测试
"""

import json
import logging

import pytest

from taskpeek.logs import (
    GlogFormatter,
    JsonFormatter,
    LogConfig,
    TextFormatter,
    install_logs,
    make_formatter,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg="sampling cycle started", level=logging.INFO):
    return logging.LogRecord(
        name="taskpeek.exporter.cycle",
        level=level,
        pathname="/src/taskpeek/exporter/cycle.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
        func="_run",
    )


class TestFormatters:
    def test_glog(self):
        line = GlogFormatter().format(_record())
        assert line.startswith("[INFO] [")
        assert "[cycle.py:42](_run) sampling cycle started" in line

    def test_glog_extra_fields(self):
        record = _record()
        record.extra_fields = {"pid": 7}
        assert GlogFormatter(report_caller=False).format(record).endswith(
            "sampling cycle started pid=7"
        )

    def test_json(self):
        data = json.loads(JsonFormatter().format(_record(level=logging.WARNING)))
        assert data["level"] == "WARNING"
        assert data["message"] == "sampling cycle started"
        assert data["line"] == 42

    @pytest.mark.parametrize(
        "name,cls",
        [("glog", GlogFormatter), ("json", JsonFormatter), ("text", TextFormatter)],
    )
    def test_make_formatter(self, name, cls):
        assert isinstance(make_formatter(LogConfig(formatter=name)), cls)


class TestInstallLogs:
    def test_level(self, restore_root_logger):
        install_logs(LogConfig(level="warning"))
        assert restore_root_logger.level == logging.WARNING
        assert len(restore_root_logger.handlers) == 1

    def test_verbose_forces_debug(self, restore_root_logger):
        install_logs(LogConfig(level="error"), verbose=True)
        assert restore_root_logger.level == logging.DEBUG

    def test_from_dict(self):
        config = LogConfig.from_dict({"formatter": "json"})
        assert config.formatter == "json"
        assert config.level == "info"
