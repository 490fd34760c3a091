# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Per-process resource sampler.

Reads memory breakdown, memory map and CPU accounting for a matched
task-runner process. Every source is read on its own: a failure in one
leaves its fields at zero and the record is still produced.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import psutil

from taskpeek.os.process.matcher import MatchResult

logger = logging.getLogger(__name__)

# errors that degrade a single reading instead of the whole record
SAMPLING_ERRORS = (
    psutil.Error,
    OSError,
    AttributeError,
    IndexError,
    NotImplementedError,
)

ProcessKey = Tuple[int, float]


class MemoryMapPolicy(str, Enum):
    """How mapped regions are folded into process-level uss/pss/swap."""

    FIRST = "first"  # only the first region, as the reference exporter does
    SUM = "sum"


class CpuPercentMode(str, Enum):
    """Source of the cpu_percent reading."""

    INTERVAL = "interval"  # psutil percent since the previous cycle
    USER_TIME = "user_time"  # cpu user seconds, reference compatible


@dataclass(frozen=True)
class SampleRecord:
    """Identity and resource readings of one task process for one cycle.

    Attributes:
        workflow_id: Workflow (DAG) id, "" when the command line did not parse.
        task_id: Task id, "" when the command line did not parse.
        execution_timestamp: Execution date as written on the command line.
        pid: Process ID.
        mem_rss: Non-swapped physical memory in bytes.
        mem_vms: Virtual memory in bytes.
        mem_shared: Shared memory in bytes.
        mem_text: Memory devoted to executable code in bytes.
        mem_data: Memory devoted to other than executable code in bytes.
        mem_lib: Memory used by shared libraries in bytes.
        mem_uss: Unique set size in bytes.
        mem_pss: Proportional set size in bytes.
        mem_swap: Swapped memory in bytes.
        cpu_percent: CPU percent, see CpuPercentMode.
        cpu_user: CPU user time in seconds.
        cpu_system: CPU system time in seconds.
    """

    workflow_id: str = ""
    task_id: str = ""
    execution_timestamp: str = ""
    pid: int = 0
    mem_rss: float = 0.0
    mem_vms: float = 0.0
    mem_shared: float = 0.0
    mem_text: float = 0.0
    mem_data: float = 0.0
    mem_lib: float = 0.0
    mem_uss: float = 0.0
    mem_pss: float = 0.0
    mem_swap: float = 0.0
    cpu_percent: float = 0.0
    cpu_user: float = 0.0
    cpu_system: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "workflow_id": self.workflow_id,
            "task_id": self.task_id,
            "execution_timestamp": self.execution_timestamp,
            "pid": self.pid,
            "mem_rss": self.mem_rss,
            "mem_vms": self.mem_vms,
            "mem_shared": self.mem_shared,
            "mem_text": self.mem_text,
            "mem_data": self.mem_data,
            "mem_lib": self.mem_lib,
            "mem_uss": self.mem_uss,
            "mem_pss": self.mem_pss,
            "mem_swap": self.mem_swap,
            "cpu_percent": self.cpu_percent,
            "cpu_user": self.cpu_user,
            "cpu_system": self.cpu_system,
        }


def _field(obj: Any, name: str) -> float:
    """Read a numeric field that may be missing on this platform."""
    return float(getattr(obj, name, 0) or 0)


def aggregate_memory_maps(
    regions: Optional[List[Any]], policy: MemoryMapPolicy = MemoryMapPolicy.FIRST
) -> Dict[str, float]:
    """Fold psutil memory map regions into uss, pss and swap.

    Args:
        regions: Result of ``Process.memory_maps(grouped=True)``.
        policy: Aggregation policy.

    Returns:
        Dict with ``uss``, ``pss`` and ``swap`` keys, zeros when no region
        is available.
    """
    totals = {"uss": 0.0, "pss": 0.0, "swap": 0.0}
    if not regions:
        return totals

    if policy == MemoryMapPolicy.FIRST:
        selected = regions[:1]
    else:
        selected = regions

    for region in selected:
        totals["uss"] += _field(region, "private_clean") + _field(region, "private_dirty")
        totals["pss"] += _field(region, "pss")
        totals["swap"] += _field(region, "swap")
    return totals


class ResourceSampler:
    """Best-effort resource sampler for task processes.

    psutil.Process objects are cached between cycles, keyed by pid and
    create time, so ``cpu_percent`` can measure over the previous interval.
    Only the sampling cycle thread should call into an instance.

    Example:
        >>> sampler = ResourceSampler()
        >>> record = sampler.sample(psutil.Process(), match_cmdline(cmdline))
        >>> sampler.prune([process_key(proc)])
    """

    def __init__(
        self,
        memory_map_policy: MemoryMapPolicy = MemoryMapPolicy.FIRST,
        cpu_percent_mode: CpuPercentMode = CpuPercentMode.INTERVAL,
    ):
        self.memory_map_policy = MemoryMapPolicy(memory_map_policy)
        self.cpu_percent_mode = CpuPercentMode(cpu_percent_mode)
        self._processes: Dict[ProcessKey, Any] = {}

    @property
    def cached(self) -> int:
        """Number of cached process handles."""
        return len(self._processes)

    def track(self, proc: Any) -> Any:
        """Return the cached handle for ``proc``, caching it on first sight."""
        key = process_key(proc)
        cached = self._processes.get(key)
        if cached is None:
            self._processes[key] = proc
            return proc
        return cached

    def prune(self, alive: Iterable[ProcessKey]) -> None:
        """Drop cached handles whose process was not seen this cycle."""
        keep = set(alive)
        for key in list(self._processes):
            if key not in keep:
                del self._processes[key]

    def _read_memory_info(self, proc: Any) -> Dict[str, float]:
        try:
            mem = proc.memory_info()
        except SAMPLING_ERRORS as e:
            logger.debug("memory_info unavailable for pid %s: %s", proc.pid, e)
            return {}
        return {
            "mem_rss": _field(mem, "rss"),
            "mem_vms": _field(mem, "vms"),
            "mem_shared": _field(mem, "shared"),
            "mem_text": _field(mem, "text"),
            "mem_data": _field(mem, "data"),
            "mem_lib": _field(mem, "lib"),
        }

    def _read_memory_maps(self, proc: Any) -> Dict[str, float]:
        try:
            regions = proc.memory_maps(grouped=True)
            totals = aggregate_memory_maps(regions, self.memory_map_policy)
        except SAMPLING_ERRORS as e:
            logger.debug("memory_maps unavailable for pid %s: %s", proc.pid, e)
            return {}
        return {
            "mem_uss": totals["uss"],
            "mem_pss": totals["pss"],
            "mem_swap": totals["swap"],
        }

    def _read_cpu_times(self, proc: Any) -> Dict[str, float]:
        try:
            times = proc.cpu_times()
        except SAMPLING_ERRORS as e:
            logger.debug("cpu_times unavailable for pid %s: %s", proc.pid, e)
            return {}
        return {
            "cpu_user": _field(times, "user"),
            "cpu_system": _field(times, "system"),
        }

    def _read_cpu_percent(self, proc: Any, cpu_user: float) -> float:
        if self.cpu_percent_mode == CpuPercentMode.USER_TIME:
            return cpu_user
        try:
            return float(proc.cpu_percent(interval=None))
        except SAMPLING_ERRORS as e:
            logger.debug("cpu_percent unavailable for pid %s: %s", proc.pid, e)
            return 0.0

    def sample(self, proc: Any, match: MatchResult) -> SampleRecord:
        """Sample one process.

        Args:
            proc: psutil.Process (or an object with the same methods).
            match: Matcher result carrying the identity fields.

        Returns:
            SampleRecord; unavailable readings are 0.
        """
        proc = self.track(proc)

        readings: Dict[str, float] = {}
        readings.update(self._read_memory_info(proc))
        readings.update(self._read_memory_maps(proc))
        readings.update(self._read_cpu_times(proc))
        readings["cpu_percent"] = self._read_cpu_percent(
            proc, readings.get("cpu_user", 0.0)
        )

        return SampleRecord(
            workflow_id=match.workflow_id,
            task_id=match.task_id,
            execution_timestamp=match.execution_timestamp,
            pid=proc.pid,
            **readings,
        )


def process_key(proc: Any) -> ProcessKey:
    """Identity of a process across cycles; guards against pid reuse."""
    try:
        created = float(proc.create_time())
    except SAMPLING_ERRORS:
        created = 0.0
    return proc.pid, created
