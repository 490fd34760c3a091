# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Process table enumeration for task-runner processes."""

import logging
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

import psutil

from taskpeek.os.process.matcher import MatchResult, ProcessMatcher

logger = logging.getLogger(__name__)

Candidate = Tuple[Any, MatchResult]


class DiscoveryError(Exception):
    """The process table could not be listed."""

    pass


def _default_iter() -> Iterable[Any]:
    return psutil.process_iter(["pid", "cmdline"])


class ProcessDiscovery:
    """Lists task-runner processes from the OS process table.

    Args:
        matcher: Command line matcher.
        process_iter: Callable returning an iterable of psutil.Process.
            Defaults to ``psutil.process_iter(["pid", "cmdline"])``.
    """

    def __init__(
        self,
        matcher: Optional[ProcessMatcher] = None,
        process_iter: Optional[Callable[[], Iterable[Any]]] = None,
    ):
        self.matcher = matcher or ProcessMatcher()
        self._process_iter = process_iter or _default_iter

    @staticmethod
    def _cmdline(proc: Any) -> List[str]:
        info = getattr(proc, "info", None)
        if info and info.get("cmdline") is not None:
            return info["cmdline"]
        return proc.cmdline() or []

    def _iterate(self) -> Iterator[Any]:
        try:
            processes = iter(self._process_iter())
        except (psutil.Error, OSError) as e:
            raise DiscoveryError(f"failed to list processes: {e}") from e

        while True:
            try:
                yield next(processes)
            except StopIteration:
                return
            except (psutil.Error, OSError) as e:
                raise DiscoveryError(f"failed to list processes: {e}") from e

    def candidates(self) -> List[Candidate]:
        """Return (process, match) pairs for every target process.

        Processes that vanish or deny access while being inspected are
        skipped.

        Raises:
            DiscoveryError: The process table itself could not be read.
        """
        out: List[Candidate] = []
        for proc in self._iterate():
            try:
                cmdline = self._cmdline(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

            match = self.matcher.match(cmdline)
            if not match.is_target:
                continue
            if not match.parsed:
                logger.debug(
                    "pid %s matches task markers but not the identity pattern: %s",
                    proc.pid,
                    " ".join(cmdline),
                )
            out.append((proc, match))
        return out
