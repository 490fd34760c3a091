"""
指标集合发布测试
"""

import threading

import pytest
from prometheus_client import generate_latest
from prometheus_client.parser import text_string_to_metric_families

from taskpeek.metrics.gauges import DIMENSIONS, MetricSet
from taskpeek.metrics.labels import LabelConfigError
from taskpeek.os.process.sampler import SampleRecord

CONST = {"hostname": "host1", "host_hostname": "override-host", "team": "true", "env": "true"}


def _record(task="extract_op", ts="2024-01-02T03:04:05", **readings):
    values = dict(
        mem_rss=100.0,
        mem_vms=200.0,
        mem_shared=30.0,
        mem_text=4.0,
        mem_data=50.0,
        mem_lib=1.0,
        mem_uss=7.0,
        mem_pss=8.0,
        mem_swap=5.0,
        cpu_percent=12.5,
        cpu_user=1.5,
        cpu_system=0.5,
    )
    values.update(readings)
    return SampleRecord(workflow_id="my_dag", task_id=task, execution_timestamp=ts, **values)


def _labels(task="extract_op", ts="2024-01-02T03:04:05", const=None):
    labels = dict(const or {})
    name = task if "my_dag" in task else f"{task}.my_dag"
    labels.update(
        {"name": f"{name}_{ts}", "workflow": "my_dag", "task": task, "exec_date": ts}
    )
    return labels


class TestPublish:
    def test_every_dimension_written(self, registry):
        metric_set = MetricSet(registry)
        assert metric_set.publish([_record()]) == 1

        labels = _labels()
        assert registry.get_sample_value("airflow_process_mem_rss", labels) == 100.0
        assert registry.get_sample_value("airflow_process_mem_vms", labels) == 200.0
        assert registry.get_sample_value("airflow_process_mem_data", labels) == 50.0
        assert registry.get_sample_value("airflow_process_mem_uss", labels) == 7.0
        assert registry.get_sample_value("airflow_process_mem_pss", labels) == 8.0
        assert registry.get_sample_value("airflow_process_cpu_percent", labels) == 12.5
        assert registry.get_sample_value("airflow_process_cpu_times_user", labels) == 1.5
        assert registry.get_sample_value("airflow_process_cpu_times_system", labels) == 0.5
        assert metric_set.series_count() == len(DIMENSIONS)

    def test_families_exposed(self, registry):
        metric_set = MetricSet(registry)
        metric_set.publish([_record()])

        families = {
            f.name: f for f in text_string_to_metric_families(generate_latest(registry).decode())
        }
        assert set(families) == set(metric_set.names)
        assert all(f.type == "gauge" for f in families.values())

    def test_constant_labels_on_every_series(self, registry):
        metric_set = MetricSet(registry, const_labels=CONST)
        metric_set.publish([_record(), _record(task="my_dag_load")])

        for metric in registry.collect():
            for sample in metric.samples:
                for key, value in CONST.items():
                    assert sample.labels[key] == value

        assert registry.get_sample_value("airflow_process_mem_rss", _labels(const=CONST)) == 100.0

    def test_custom_prefix(self, registry):
        MetricSet(registry, prefix="task").publish([_record()])
        assert registry.get_sample_value("task_mem_rss", _labels()) == 100.0

    def test_duplicate_series_last_wins(self, registry):
        metric_set = MetricSet(registry)
        written = metric_set.publish([_record(mem_rss=1.0), _record(mem_rss=2.0)])
        assert written == 1
        assert registry.get_sample_value("airflow_process_mem_rss", _labels()) == 2.0

    def test_blank_identity_published(self, registry):
        metric_set = MetricSet(registry)
        metric_set.publish([SampleRecord(mem_rss=3.0)])
        labels = {"name": "_", "workflow": "", "task": "", "exec_date": ""}
        assert registry.get_sample_value("airflow_process_mem_rss", labels) == 3.0


class TestReplace:
    """每个周期完全替换上一周期的序列"""

    def test_empty_cycle_clears_everything(self, registry):
        metric_set = MetricSet(registry, const_labels=CONST)
        metric_set.publish([_record(), _record(task="other_op")])
        assert metric_set.series_count() == 2 * len(DIMENSIONS)

        metric_set.publish([])
        assert metric_set.series_count() == 0
        assert registry.get_sample_value("airflow_process_mem_rss", _labels(const=CONST)) is None

    def test_exited_process_dropped(self, registry):
        metric_set = MetricSet(registry)
        metric_set.publish([_record(task="a_op"), _record(task="b_op")])
        metric_set.publish([_record(task="b_op")])

        assert registry.get_sample_value("airflow_process_mem_rss", _labels(task="a_op")) is None
        assert registry.get_sample_value("airflow_process_mem_rss", _labels(task="b_op")) == 100.0

    def test_reset_and_set(self, registry):
        metric_set = MetricSet(registry)
        metric_set.set(_labels(), _record())
        assert metric_set.series_count() == len(DIMENSIONS)
        metric_set.reset()
        assert metric_set.series_count() == 0


class TestLabelSchema:
    def test_invalid_constant_label_name(self, registry):
        with pytest.raises(LabelConfigError):
            MetricSet(registry, const_labels={"__hidden": "true"})

    def test_registered_once(self, registry):
        MetricSet(registry)
        with pytest.raises(ValueError):
            MetricSet(registry)


def test_concurrent_scrape_sees_whole_cycles(registry):
    """并发抓取只能看到完整的周期（全部 A 或全部 B），不会看到空集合或撕裂的记录"""
    metric_set = MetricSet(registry)
    cycle_a = [_record(task=f"a{i}_op", mem_rss=1.0, mem_vms=1.0) for i in range(20)]
    cycle_b = [_record(task=f"b{i}_op", mem_rss=2.0, mem_vms=2.0) for i in range(20)]
    metric_set.publish(cycle_a)

    stop = threading.Event()
    errors = []

    def writer():
        flip = False
        while not stop.is_set():
            metric_set.publish(cycle_b if flip else cycle_a)
            flip = not flip

    def reader():
        for _ in range(200):
            values = set()
            count = 0
            for metric in registry.collect():
                for sample in metric.samples:
                    if sample.name in ("airflow_process_mem_rss", "airflow_process_mem_vms"):
                        values.add(sample.value)
                        count += 1
            if count != 40 or len(values) != 1:
                errors.append((count, values))

    thread = threading.Thread(target=writer)
    thread.start()
    readers = [threading.Thread(target=reader) for _ in range(4)]
    for r in readers:
        r.start()
    for r in readers:
        r.join()
    stop.set()
    thread.join()

    assert errors == []
