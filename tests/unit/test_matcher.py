"""
任务进程命令行匹配测试
"""

import concurrent.futures

import pytest

from taskpeek.os.process.matcher import (
    NOT_A_TARGET,
    ProcessMatcher,
    join_cmdline,
    match_cmdline,
)

from fakes import TASK_CMDLINE


class TestMatchCmdline:
    """默认 airflow 标记的匹配"""

    def test_extracts_identity(self):
        result = match_cmdline("airflow run my_dag extract_op 2024-01-02T03:04:05 --raw -sd x.py")
        assert result.is_target
        assert result.workflow_id == "my_dag"
        assert result.task_id == "extract_op"
        assert result.execution_timestamp == "2024-01-02T03:04:05"

    def test_argv_list(self):
        result = match_cmdline(TASK_CMDLINE)
        assert result.is_target
        assert result.fields == {
            "workflow_id": "my_dag",
            "task_id": "extract_op",
            "execution_timestamp": "2024-01-02T03:04:05",
        }

    @pytest.mark.parametrize(
        "cmdline",
        [
            "airflow run dág tâsk 2024-01-02T03:04:05 --raw",
            "airflow run my_dag extract_op ٢٠٢٤-٠١-٠٢T03:04:05 --raw",
        ],
    )
    def test_non_ascii_identity_not_parsed(self, cmdline):
        result = match_cmdline(cmdline)
        assert result.is_target
        assert not result.parsed
        assert result.fields == {}

    def test_trailing_raw_marker(self):
        result = match_cmdline("airflow run my_dag extract_op 2024-01-02T03:04:05 --raw")
        assert result.is_target
        assert result.parsed

    @pytest.mark.parametrize(
        "cmdline",
        [
            # 缺少 --raw：调度监督进程
            "airflow run my_dag extract_op 2024-01-02T03:04:05 --local -sd x.py",
            # 缺少 runner 标记
            "python worker.py my_dag extract_op 2024-01-02T03:04:05 --raw",
            # --raw 不是独立参数
            "airflow run my_dag extract_op 2024-01-02T03:04:05 --rawx",
            "airflow scheduler",
            "",
        ],
    )
    def test_not_a_target(self, cmdline):
        result = match_cmdline(cmdline)
        assert not result.is_target
        assert result.fields == {}

    def test_none_cmdline(self):
        assert match_cmdline(None) is NOT_A_TARGET

    def test_malformed_identity_is_still_target(self):
        """标记齐全但结构不匹配：保留进程，身份字段为空"""
        result = match_cmdline("airflow run my-dag extract_op 2024-01-02 --raw")
        assert result.is_target
        assert not result.parsed
        assert result.workflow_id == ""
        assert result.task_id == ""
        assert result.execution_timestamp == ""

    def test_timestamp_with_suffix_keeps_fixed_prefix(self):
        result = match_cmdline(
            "airflow run my_dag extract_op 2024-01-02T03:04:05+00:00 --raw"
        )
        assert result.execution_timestamp == "2024-01-02T03:04:05"


class TestProcessMatcher:
    """自定义标记"""

    def test_custom_markers(self):
        matcher = ProcessMatcher(runner_marker="airflow tasks run", raw_marker="--raw")
        result = matcher.match("airflow tasks run etl load_op 2024-05-06T07:08:09 --raw")
        assert result.is_target
        assert result.workflow_id == "etl"
        assert result.task_id == "load_op"

    def test_runner_marker_is_escaped(self):
        matcher = ProcessMatcher(runner_marker="run.task", raw_marker="--leaf")
        assert not matcher.match("runXtask a b 2024-01-02T03:04:05 --leaf").is_target
        assert matcher.match("run.task a b 2024-01-02T03:04:05 --leaf").parsed

    def test_empty_marker_rejected(self):
        with pytest.raises(ValueError):
            ProcessMatcher(runner_marker="")

    def test_concurrent_matching(self):
        matcher = ProcessMatcher()
        lines = [
            f"airflow run dag_{i} task_{i} 2024-01-02T03:04:05 --raw" for i in range(200)
        ]
        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(matcher.match, lines))
        assert [r.workflow_id for r in results] == [f"dag_{i}" for i in range(200)]


def test_join_cmdline():
    assert join_cmdline(["a", "b"]) == "a b"
    assert join_cmdline("a b") == "a b"
    assert join_cmdline(None) == ""
