"""
taskpeek exports resource usage of workflow scheduler task processes
(Airflow ``airflow run ... --raw`` workers) as Prometheus gauges.

Modules:
- taskpeek.os.process: Process discovery, command line matching, sampling
- taskpeek.metrics: Gauge families and label derivation
- taskpeek.exporter: Sampling cycle, configuration, scrape endpoint
- taskpeek.net.webserver: Web server (FastAPI-based) and health checks
- taskpeek.logs: Logging setup
- taskpeek.time: Periodic execution utilities
"""

from taskpeek.__version__ import __version__

__all__ = ["__version__"]
