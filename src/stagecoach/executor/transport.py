"""
Where published events go. The engine only requires `publish`; persistence and broadcasting
are the business of the transport implementation
"""

import logging
import threading
from typing import Protocol, runtime_checkable

from stagecoach.executor.msg import Event

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    def publish(self, event: Event) -> None:
        raise NotImplementedError


class RecordingTransport:
    """Keeps all events in memory, in publication order. Safe to publish from multiple threads"""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.lock = threading.Lock()

    def publish(self, event: Event) -> None:
        with self.lock:
            self.events.append(event)

    def names(self) -> list[str]:
        with self.lock:
            return [e.name for e in self.events]

    def of_type(self, type_: str) -> list[Event]:
        with self.lock:
            return [e for e in self.events if e.status_type == type_]


class LoggingTransport:
    """Used when no observer is configured -- events end up in the debug log only"""

    def publish(self, event: Event) -> None:
        logger.debug(f"{event.name} {event.job_id} {event.args!r}")
