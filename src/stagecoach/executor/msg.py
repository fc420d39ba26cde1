"""
This module defines the events published by a job, as well as the inbound cancel request
"""

# NOTE we stick to plain dataclasses here -- the args carry datetimes and arbitrary text, and
# the wire format is decided by the transport, not by the message

from dataclasses import dataclass
from typing import Any

JobId = str

CANCEL = "job.cancel"
CANCELLED = "job.cancelled"
STATUS_PREFIX = "job.status."


@dataclass(frozen=True)
class Event:
    name: str  # eg `job.status.stdout`, `job.cancelled`
    job_id: JobId
    args: tuple[Any, ...] = ()

    @property
    def status_type(self) -> str | None:
        """`stdout` for `job.status.stdout`, None for non-status events"""
        if self.name.startswith(STATUS_PREFIX):
            return self.name[len(STATUS_PREFIX) :]
        return None


def status_event(job_id: JobId, type_: str, *args: Any) -> Event:
    return Event(name=f"{STATUS_PREFIX}{type_}", job_id=job_id, args=args)


@dataclass(frozen=True)
class CancelRequest:
    job_id: JobId
