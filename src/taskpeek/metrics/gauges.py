# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Metric set: one gauge family per task process resource dimension.

The set is a prometheus_client collector. Publishing and collecting share a
lock, so a scrape sees a whole cycle, either the previous or the new one.

Example:
    >>> registry = CollectorRegistry()
    >>> metric_set = MetricSet(registry, const_labels={"hostname": "host1"})
    >>> metric_set.publish(records)
    >>> generate_latest(registry)
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from prometheus_client import CollectorRegistry, Gauge
from prometheus_client.metrics_core import Metric

from taskpeek.metrics.labels import (
    LabelConfigError,
    PROCESS_LABEL_NAMES,
    derive_labels,
)
from taskpeek.os.process.sampler import SampleRecord

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "airflow_process"


@dataclass(frozen=True)
class Dimension:
    """A published resource dimension.

    Attributes:
        suffix: Metric name suffix appended to the prefix.
        attr: SampleRecord attribute holding the value.
        help: Metric help text.
    """

    suffix: str
    attr: str
    help: str


DIMENSIONS = (
    Dimension("mem_rss", "mem_rss", "Non-swapped physical memory"),
    Dimension("mem_vms", "mem_vms", "Amount of virtual memory"),
    Dimension("mem_shared", "mem_shared", "Amount of shared memory"),
    Dimension("mem_text", "mem_text", "Devoted to executable code"),
    Dimension(
        "mem_data",
        "mem_data",
        "amount of physical memory devoted to other than executable code",
    ),
    Dimension("mem_lib", "mem_lib", "Used by shared libraries"),
    Dimension("mem_uss", "mem_uss", "Mem unique to a process and which would be freed"),
    Dimension(
        "mem_pss",
        "mem_pss",
        "Shared with other processes, accounted in a way that "
        "the amount is divided evenly between processes that share it",
    ),
    Dimension("mem_swap", "mem_swap", "Amount of swapped memory"),
    Dimension(
        "cpu_percent",
        "cpu_percent",
        "System-wide CPU utilization as a percentage of the process",
    ),
    Dimension("cpu_times_user", "cpu_user", "CPU times user"),
    Dimension("cpu_times_system", "cpu_system", "CPU times system"),
)


class MetricSet:
    """Gauge families for task processes, sharing one label schema.

    Args:
        registry: Registry the set registers itself into; None to skip.
        const_labels: Labels attached to every series.
        prefix: Metric name prefix.

    Raises:
        LabelConfigError: A constant label name is not a valid Prometheus
            label name.
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        const_labels: Optional[Dict[str, str]] = None,
        prefix: str = DEFAULT_PREFIX,
    ):
        self.const_labels = dict(const_labels or {})
        self.prefix = prefix
        self.label_names = tuple(self.const_labels) + PROCESS_LABEL_NAMES
        self._lock = threading.Lock()

        self._gauges: "OrderedDict[str, Gauge]" = OrderedDict()
        try:
            for dim in DIMENSIONS:
                self._gauges[dim.attr] = Gauge(
                    f"{prefix}_{dim.suffix}",
                    dim.help,
                    labelnames=self.label_names,
                    registry=None,
                )
        except ValueError as e:
            raise LabelConfigError(str(e)) from e

        if registry is not None:
            registry.register(self)

    @property
    def names(self) -> List[str]:
        """Published metric family names."""
        return [f"{self.prefix}_{dim.suffix}" for dim in DIMENSIONS]

    def reset(self) -> None:
        """Remove every series from every family."""
        with self._lock:
            self._reset()

    def set(self, labels: Dict[str, str], record: SampleRecord) -> None:
        """Write one value per family for ``record`` under ``labels``."""
        with self._lock:
            self._set(labels, record)

    def publish(self, records: Iterable[SampleRecord]) -> int:
        """Replace all published series with ``records``.

        Labels are derived before the lock is taken; readers wait only for
        the gauge rewrite.

        Returns:
            Number of distinct series written per family.
        """
        prepared = [(derive_labels(record), record) for record in records]

        with self._lock:
            self._reset()
            seen = set()
            for labels, record in prepared:
                key = tuple(sorted(labels.items()))
                if key in seen:
                    logger.debug("duplicate series %s, last sample wins", labels)
                seen.add(key)
                self._set(labels, record)
        return len(seen)

    def _reset(self) -> None:
        for gauge in self._gauges.values():
            gauge.clear()

    def _set(self, labels: Dict[str, str], record: SampleRecord) -> None:
        values = dict(self.const_labels)
        values.update(labels)
        for attr, gauge in self._gauges.items():
            gauge.labels(**values).set(getattr(record, attr))

    def describe(self) -> List[Metric]:
        metrics: List[Metric] = []
        for gauge in self._gauges.values():
            metrics.extend(gauge.describe())
        return metrics

    def collect(self) -> List[Metric]:
        with self._lock:
            metrics: List[Metric] = []
            for gauge in self._gauges.values():
                metrics.extend(gauge.collect())
            return metrics

    def series_count(self) -> int:
        """Number of published samples across all families."""
        return sum(len(metric.samples) for metric in self.collect())
