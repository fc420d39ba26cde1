"""
Interface for tracing important lifecycle events of a job

Currently, the export is handled just by logging, assuming to be parsed later. We log at debug
level since this is assumed to be high level tracing
"""

import logging
import time
from enum import Enum

logger = logging.getLogger(__name__)


class JobLifecycle(str, Enum):
    started = "job_started"
    cancelled = "job_cancelled"
    failed = "job_failed"
    completed = "job_completed"


class PhaseLifecycle(str, Enum):
    started = "phase_started"
    completed = "phase_completed"


class CommandLifecycle(str, Enum):
    spawned = "command_spawned"
    exited = "command_exited"
    killed = "command_killed"


def _labels(labels: dict) -> str:
    return ";".join(f"{k}={v.value if isinstance(v, Enum) else v}" for k, v in labels.items())


def mark(labels: dict) -> None:
    at = time.perf_counter_ns()
    event = _labels(labels)
    logger.debug(f"{event};{at=}")
