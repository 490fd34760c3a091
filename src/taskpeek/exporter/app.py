# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Exporter assembly: config -> metric set, sampling cycle and web server.

Example:
    >>> config = load_config(config_file="taskpeek.yaml")
    >>> Exporter.from_config(config).run()
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry

from taskpeek.__version__ import __version__
from taskpeek.exporter.config import ExporterConfig
from taskpeek.exporter.cycle import SamplingCycle
from taskpeek.exporter.handler import MetricsHandler, cycle_alive_check, cycle_ready_check
from taskpeek.metrics.gauges import MetricSet
from taskpeek.metrics.labels import build_constant_labels
from taskpeek.net.webserver.healthz import FuncHealthChecker
from taskpeek.net.webserver.server import WebServer
from taskpeek.os.process.discovery import ProcessDiscovery
from taskpeek.os.process.matcher import ProcessMatcher
from taskpeek.os.process.sampler import ResourceSampler

logger = logging.getLogger(__name__)


class Exporter:
    """Owns the registry, metric set, sampling cycle and web server.

    The metric set is shared by the cycle (writer) and the metrics handler
    (reader); nothing lives in module globals.
    """

    def __init__(
        self,
        config: ExporterConfig,
        registry: Optional[CollectorRegistry] = None,
        const_labels: Optional[dict] = None,
        discovery: Optional[ProcessDiscovery] = None,
    ):
        self.config = config
        self.registry = registry or CollectorRegistry()

        if const_labels is None:
            const_labels = build_constant_labels(
                hostname_path=config.hostname_path or None,
                custom_labels=config.labels or None,
            )
        self.const_labels = const_labels
        logger.info("constLabels: %s", self.const_labels)

        self.metric_set = MetricSet(
            self.registry,
            const_labels=self.const_labels,
            prefix=config.metric_prefix,
        )

        matcher = ProcessMatcher(config.runner_marker, config.raw_marker)
        self.cycle = SamplingCycle(
            self.metric_set,
            discovery=discovery or ProcessDiscovery(matcher),
            sampler=ResourceSampler(
                memory_map_policy=config.memory_map_policy,
                cpu_percent_mode=config.cpu_percent_mode,
            ),
            interval=config.interval,
            verbose=config.verbose,
        )

        host, port = config.bind_address
        self.server = WebServer(host=host, port=port, version=__version__)
        self.server.install_web_handler(MetricsHandler(self.registry, config.metrics_path))

        healthz = self.server.install_healthz_controller()
        healthz.add_livez_checker(FuncHealthChecker("sampling", cycle_alive_check(self.cycle)))
        healthz.add_readyz_checker(FuncHealthChecker("sampling", cycle_ready_check(self.cycle)))

        self.server.add_post_start_hook("sampling-cycle", self.cycle.start)
        self.server.add_pre_shutdown_hook("sampling-cycle", self.cycle.stop)

    @classmethod
    def from_config(cls, config: ExporterConfig) -> "Exporter":
        return cls(config)

    @property
    def app(self):
        """FastAPI application."""
        return self.server.app

    def run(self) -> None:
        """Serve until the process is stopped; sampling starts with the server."""
        logger.info(
            "taskpeek %s: listen=%s path=%s interval=%ss",
            __version__,
            self.config.listen_address,
            self.config.metrics_path,
            self.config.interval,
        )
        self.server.run()
