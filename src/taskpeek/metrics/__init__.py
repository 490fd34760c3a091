# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Prometheus metric set and label derivation for task processes."""

from taskpeek.metrics.gauges import (
    DEFAULT_PREFIX,
    DIMENSIONS,
    Dimension,
    MetricSet,
)
from taskpeek.metrics.labels import (
    PROCESS_LABEL_NAMES,
    LabelConfigError,
    build_constant_labels,
    derive_labels,
    derive_name,
)

__all__ = [
    "DEFAULT_PREFIX",
    "DIMENSIONS",
    "Dimension",
    "MetricSet",
    "PROCESS_LABEL_NAMES",
    "LabelConfigError",
    "build_constant_labels",
    "derive_labels",
    "derive_name",
]
