# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Scrape endpoint and health checks for the exporter."""

import time
from typing import Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from taskpeek.exporter.cycle import CycleState, SamplingCycle
from taskpeek.net.webserver.server import WebHandler


class MetricsHandler(WebHandler):
    """Serves the registry in the Prometheus text format.

    Rendering only reads the registry; it never waits on a sampling pass
    beyond the metric set's publish lock.
    """

    def __init__(self, registry: CollectorRegistry, path: str = "/metrics"):
        self.registry = registry
        self.path = path

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def set_routes(self, app: FastAPI) -> None:
        @app.get(self.path, tags=["Metrics"])
        def metrics() -> Response:
            return Response(content=self.render(), media_type=CONTENT_TYPE_LATEST)


def cycle_alive_check(cycle: SamplingCycle):
    """Liveness: the sampling thread has not died."""

    def check() -> Optional[Exception]:
        if cycle.state in (CycleState.IDLE, CycleState.STOPPED):
            return None
        if not cycle.is_running:
            return Exception("sampling cycle thread is not running")
        return None

    return check


def cycle_ready_check(cycle: SamplingCycle, stale_after: Optional[float] = None):
    """Readiness: at least one cycle completed, and recently.

    Args:
        cycle: Sampling cycle to watch.
        stale_after: Seconds after which the last cycle counts as stale;
            defaults to three intervals, at least 30s.
    """
    if stale_after is None:
        stale_after = max(cycle.interval * 3, 30.0)

    def check() -> Optional[Exception]:
        if cycle.last_cycle_at is None:
            return Exception("no sampling cycle completed yet")
        age = time.time() - cycle.last_cycle_at
        if age > stale_after:
            return Exception(f"last sampling cycle finished {age:.0f}s ago")
        return None

    return check
