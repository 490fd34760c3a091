# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Task process exporter: sampling cycle, configuration and scrape endpoint.

Example:
    >>> from taskpeek.exporter import Exporter, load_config
    >>> Exporter.from_config(load_config()).run()
"""

from taskpeek.exporter.config import (
    ConfigError,
    ConfigLoader,
    ExporterConfig,
    load_config,
    parse_duration,
    parse_listen_address,
)
from taskpeek.exporter.cycle import CycleState, SamplingCycle
from taskpeek.exporter.handler import MetricsHandler
from taskpeek.exporter.app import Exporter

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "ExporterConfig",
    "load_config",
    "parse_duration",
    "parse_listen_address",
    "CycleState",
    "SamplingCycle",
    "MetricsHandler",
    "Exporter",
]
