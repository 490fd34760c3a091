# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Task-runner command line matcher.

Decides whether a process command line belongs to a leaf task-runner
invocation of the workflow scheduler and extracts its identity:

    airflow run <workflow_id> <task_id> <YYYY-MM-DDTHH:MM:SS> ... --raw ...

Example:
    >>> result = match_cmdline("airflow run my_dag extract_op 2024-01-02T03:04:05 --raw")
    >>> result.is_target
    True
    >>> result.workflow_id, result.task_id
    ('my_dag', 'extract_op')
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Union

DEFAULT_RUNNER_MARKER = "airflow run"
DEFAULT_RAW_MARKER = "--raw"

FIELD_WORKFLOW_ID = "workflow_id"
FIELD_TASK_ID = "task_id"
FIELD_EXECUTION_TIMESTAMP = "execution_timestamp"

EXECUTION_TIMESTAMP_PATTERN = r"\d\d\d\d-\d\d-\d\dT\d\d:\d\d:\d\d"

Cmdline = Union[str, Sequence[str]]


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one command line.

    Attributes:
        is_target: True when both markers are present.
        fields: Identity captures; empty when the structural parse failed.
    """

    is_target: bool = False
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def workflow_id(self) -> str:
        return self.fields.get(FIELD_WORKFLOW_ID, "")

    @property
    def task_id(self) -> str:
        return self.fields.get(FIELD_TASK_ID, "")

    @property
    def execution_timestamp(self) -> str:
        return self.fields.get(FIELD_EXECUTION_TIMESTAMP, "")

    @property
    def parsed(self) -> bool:
        """Whether identity fields were extracted."""
        return bool(self.fields)


NOT_A_TARGET = MatchResult()


def join_cmdline(cmdline: Optional[Cmdline]) -> str:
    """Normalize an argv list or a raw string into a single string."""
    if cmdline is None:
        return ""
    if isinstance(cmdline, str):
        return cmdline
    return " ".join(cmdline)


class ProcessMatcher:
    """Stateless matcher for task-runner command lines.

    The compiled pattern is shared read-only, so one instance can be used
    from any number of threads.
    """

    def __init__(
        self,
        runner_marker: str = DEFAULT_RUNNER_MARKER,
        raw_marker: str = DEFAULT_RAW_MARKER,
    ):
        if not runner_marker or not raw_marker:
            raise ValueError("runner_marker and raw_marker must not be empty")

        self.runner_marker = runner_marker
        self.raw_marker = raw_marker
        self._pattern = re.compile(
            re.escape(runner_marker)
            + rf" (?P<{FIELD_WORKFLOW_ID}>\w+)"
            + rf" (?P<{FIELD_TASK_ID}>\w+)"
            + rf" (?P<{FIELD_EXECUTION_TIMESTAMP}>{EXECUTION_TIMESTAMP_PATTERN})",
            # \w and \d match ASCII only
            re.ASCII,
        )

    def is_candidate(self, cmdline: str) -> bool:
        """Check the two coarse markers.

        The raw marker must be a whole argument, so a trailing ``--raw``
        counts while ``--rawx`` does not.
        """
        if self.runner_marker not in cmdline:
            return False
        return f" {self.raw_marker} " in f" {cmdline} "

    def extract(self, cmdline: str) -> Dict[str, str]:
        """Return the named captures of the structural pattern, or {}."""
        match = self._pattern.search(cmdline)
        if match is None:
            return {}
        return {name: value for name, value in match.groupdict().items() if value is not None}

    def match(self, cmdline: Optional[Cmdline]) -> MatchResult:
        line = join_cmdline(cmdline)
        if not self.is_candidate(line):
            return NOT_A_TARGET
        # markers present but malformed identity: keep the candidate with
        # blank fields so it still shows up in the published series
        return MatchResult(is_target=True, fields=self.extract(line))


_default_matcher = ProcessMatcher()


def match_cmdline(cmdline: Optional[Cmdline]) -> MatchResult:
    """Match a command line with the default Airflow markers."""
    return _default_matcher.match(cmdline)
