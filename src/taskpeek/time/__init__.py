"""定时轮询工具"""

from taskpeek.time.wait import (
    WaitCancelledError,
    jitter,
    jitter_until,
    sleep,
    until,
)

__all__ = [
    "WaitCancelledError",
    "jitter",
    "jitter_until",
    "sleep",
    "until",
]
