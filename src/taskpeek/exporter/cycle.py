# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Sampling cycle: enumerate, sample, publish, sleep, repeat.

Example:
    >>> cycle = SamplingCycle(metric_set, ProcessDiscovery(), ResourceSampler(), interval=10)
    >>> cycle.start()
    >>> ...
    >>> cycle.stop()
"""

import logging
import threading
import time
from enum import Enum
from typing import List, Optional

from taskpeek.metrics.gauges import MetricSet
from taskpeek.os.process.discovery import Candidate, DiscoveryError, ProcessDiscovery
from taskpeek.os.process.sampler import ResourceSampler, SampleRecord, process_key
from taskpeek.time.wait import until

logger = logging.getLogger(__name__)


class CycleState(str, Enum):
    IDLE = "idle"
    ENUMERATING = "enumerating"
    SAMPLING = "sampling"
    PUBLISHING = "publishing"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class SamplingCycle:
    """Periodic sampler publishing task process metrics.

    The cycle is the only writer of the metric set. An enumeration failure
    publishes an empty set for that cycle; nothing is retried before the
    next tick.

    Args:
        metric_set: Destination gauges.
        discovery: Process table access.
        sampler: Per-process resource sampler.
        interval: Seconds to sleep between the end of one cycle and the
            start of the next.
        verbose: Log every sample at info level.
    """

    def __init__(
        self,
        metric_set: MetricSet,
        discovery: Optional[ProcessDiscovery] = None,
        sampler: Optional[ResourceSampler] = None,
        interval: float = 10.0,
        verbose: bool = False,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.metric_set = metric_set
        self.discovery = discovery or ProcessDiscovery()
        self.sampler = sampler or ResourceSampler()
        self.interval = interval
        self.verbose = verbose

        self._state = CycleState.IDLE
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        self.cycles = 0
        self.last_cycle_at: Optional[float] = None
        self.last_error: Optional[str] = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _enumerate(self) -> List[Candidate]:
        self._state = CycleState.ENUMERATING
        try:
            return self.discovery.candidates()
        except DiscoveryError as e:
            logger.warning("process enumeration failed, publishing nothing: %s", e)
            self.last_error = str(e)
            return []

    def _sample(self, candidates: List[Candidate]) -> List[SampleRecord]:
        self._state = CycleState.SAMPLING
        records = []
        for proc, match in candidates:
            record = self.sampler.sample(proc, match)
            if self.verbose:
                logger.info("Process: %s", record.to_dict())
            records.append(record)
        self.sampler.prune(process_key(proc) for proc, _ in candidates)
        return records

    def run_once(self) -> List[SampleRecord]:
        """Run a single enumerate, sample and publish pass.

        Returns:
            Records published by this pass.
        """
        started = time.monotonic()
        self.last_error = None

        candidates = self._enumerate()
        records = self._sample(candidates)

        self._state = CycleState.PUBLISHING
        series = self.metric_set.publish(records)

        self.cycles += 1
        self.last_cycle_at = time.time()
        logger.debug(
            "cycle %d: %d task processes, %d series, took %.3fs",
            self.cycles,
            len(records),
            series,
            time.monotonic() - started,
        )
        return records

    def _tick(self) -> None:
        try:
            self.run_once()
        except Exception as e:
            self.last_error = str(e)
            logger.exception("sampling cycle failed")
        finally:
            self._state = CycleState.SLEEPING

    def _run(self) -> None:
        logger.info("sampling cycle started, interval=%ss", self.interval)
        try:
            until(self._tick, self.interval, self._stop)
        finally:
            self._state = CycleState.STOPPED
            logger.info("sampling cycle stopped after %d cycles", self.cycles)

    def start(self) -> None:
        """Start the cycle on a daemon thread."""
        with self._lock:
            if self.is_running:
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, name="taskpeek-sampling", daemon=True
            )
            self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the cycle to stop and wait for the current pass to end."""
        with self._lock:
            self._stop.set()
            if self._thread is not None:
                self._thread.join(timeout=timeout)
                self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
