# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Task process discovery and sampling.

Example:
    >>> from taskpeek.os.process import ProcessDiscovery, ResourceSampler
    >>> sampler = ResourceSampler()
    >>> records = [sampler.sample(proc, match) for proc, match in ProcessDiscovery().candidates()]
"""

from taskpeek.os.process.matcher import (
    MatchResult,
    ProcessMatcher,
    match_cmdline,
)
from taskpeek.os.process.sampler import (
    CpuPercentMode,
    MemoryMapPolicy,
    ResourceSampler,
    SampleRecord,
    aggregate_memory_maps,
    process_key,
)
from taskpeek.os.process.discovery import (
    DiscoveryError,
    ProcessDiscovery,
)

__all__ = [
    "MatchResult",
    "ProcessMatcher",
    "match_cmdline",
    "CpuPercentMode",
    "MemoryMapPolicy",
    "ResourceSampler",
    "SampleRecord",
    "aggregate_memory_maps",
    "process_key",
    "DiscoveryError",
    "ProcessDiscovery",
]
