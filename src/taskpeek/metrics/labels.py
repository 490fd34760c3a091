# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""Label derivation for published task process series."""

import logging
import re
import socket
from pathlib import Path
from typing import Dict, Optional

from taskpeek.os.process.sampler import SampleRecord

logger = logging.getLogger(__name__)

LABEL_NAME = "name"
LABEL_WORKFLOW = "workflow"
LABEL_TASK = "task"
LABEL_EXEC_DATE = "exec_date"

PROCESS_LABEL_NAMES = (LABEL_NAME, LABEL_WORKFLOW, LABEL_TASK, LABEL_EXEC_DATE)

LABEL_HOSTNAME = "hostname"
LABEL_HOST_HOSTNAME = "host_hostname"

_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class LabelConfigError(ValueError):
    """Constant labels cannot be combined with the process label schema."""

    pass


def derive_name(record: SampleRecord) -> str:
    """Human friendly series name.

    The task id alone is used when it already contains the workflow id,
    otherwise ``<task>.<workflow>``; the execution timestamp is appended.
    """
    if record.workflow_id in record.task_id:
        base = record.task_id
    else:
        base = f"{record.task_id}.{record.workflow_id}"
    return f"{base}_{record.execution_timestamp}"


def derive_labels(record: SampleRecord) -> Dict[str, str]:
    return {
        LABEL_NAME: derive_name(record),
        LABEL_WORKFLOW: record.workflow_id,
        LABEL_TASK: record.task_id,
        LABEL_EXEC_DATE: record.execution_timestamp,
    }


def _read_hostname_file(path: str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


def build_constant_labels(
    hostname: Optional[str] = None,
    hostname_path: Optional[str] = None,
    custom_labels: Optional[str] = None,
) -> Dict[str, str]:
    """Build the process wide labels attached to every series.

    Args:
        hostname: Machine hostname, defaults to ``socket.gethostname()``.
        hostname_path: File whose trimmed content becomes ``host_hostname``;
            an unreadable file is ignored.
        custom_labels: Comma separated label names, each set to "true".

    Returns:
        Label name to value mapping.

    Raises:
        LabelConfigError: A custom label name is invalid or collides with a
            per-process or host label name.
    """
    if hostname is None:
        try:
            hostname = socket.gethostname()
        except OSError:
            hostname = ""

    labels = {LABEL_HOSTNAME: hostname}

    if hostname_path:
        content = _read_hostname_file(hostname_path)
        if content is not None:
            labels[LABEL_HOST_HOSTNAME] = content

    if custom_labels:
        for name in custom_labels.split(","):
            name = name.strip()
            if not name:
                continue
            if not _LABEL_NAME_RE.match(name) or name.startswith("__"):
                raise LabelConfigError(f"invalid label name: {name!r}")
            if name in (LABEL_HOSTNAME, LABEL_HOST_HOSTNAME):
                raise LabelConfigError(f"custom label {name!r} clashes with a host label")
            labels[name] = "true"

    clashes = sorted(set(labels) & set(PROCESS_LABEL_NAMES))
    if clashes:
        raise LabelConfigError(
            f"constant labels clash with process labels: {', '.join(clashes)}"
        )
    return labels
