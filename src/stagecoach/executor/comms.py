"""
This module handles the zmq side of a job: publishing the status stream to observers, and
receiving cancel requests from the outside
"""

# NOTE the status stream goes over PUB so that any number of observers (ui, log store) can
# subscribe by topic prefix, eg `job.status.` or `job.status.stdout`. Cancel requests go over
# PULL instead, as a PUB/SUB pair could drop the request during subscription handshake

import logging
import threading
from typing import Any

import orjson
import zmq

from stagecoach.executor.cancel import CancellationRegistry
from stagecoach.executor.msg import CANCEL, CancelRequest, Event

logger = logging.getLogger(__name__)
default_timeout_sec = 1


def get_context() -> zmq.Context:
    return zmq.Context.instance()


def _default(obj: Any) -> Any:
    # orjson handles datetimes natively, this is for whatever plugins pass along
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return repr(obj)


def ser_event(event: Event) -> tuple[bytes, bytes]:
    payload = {"job_id": event.job_id, "args": list(event.args)}
    return event.name.encode(), orjson.dumps(payload, default=_default)


def des_event(parts: list[bytes]) -> Event:
    if len(parts) != 2:
        raise ValueError(f"expected 2 frames, gotten {len(parts)}")
    payload = orjson.loads(parts[1])
    return Event(name=parts[0].decode(), job_id=payload["job_id"], args=tuple(payload.get("args", [])))


def ser_cancel(request: CancelRequest) -> bytes:
    return orjson.dumps({"event": CANCEL, "job_id": request.job_id})


def des_cancel(raw: bytes) -> CancelRequest:
    d = orjson.loads(raw)
    if not isinstance(d, dict) or d.get("event") != CANCEL:
        raise ValueError(f"not a cancel request: {raw[:32]!r}")
    job_id = d.get("job_id")
    if not isinstance(job_id, str):
        raise ValueError(f"cancel request without job id: {raw[:32]!r}")
    return CancelRequest(job_id=job_id)


class ZmqTransport:
    """Publishes events as two-frame messages `[name, {"job_id", "args"}]`"""

    def __init__(self, address: str, bind: bool = True) -> None:
        self.address = address
        self.socket = get_context().socket(zmq.PUB)
        self.socket.set(zmq.LINGER, 1000)
        if bind:
            self.socket.bind(address)
        else:
            self.socket.connect(address)
        self.lock = threading.Lock()

    def publish(self, event: Event) -> None:
        parts = ser_event(event)
        with self.lock:
            self.socket.send_multipart(parts)

    def close(self) -> None:
        with self.lock:
            self.socket.close()


def send_cancel(address: str, job_id: str) -> None:
    socket = get_context().socket(zmq.PUSH)
    socket.set(zmq.LINGER, 1000)
    socket.connect(address)
    try:
        socket.send(ser_cancel(CancelRequest(job_id=job_id)))
    finally:
        socket.close()


class CancelListener:
    """Receives cancel requests on a background thread and delivers them to the registry"""

    def __init__(self, address: str, registry: CancellationRegistry) -> None:
        self.address = address
        self.registry = registry
        self.socket = get_context().socket(zmq.PULL)
        self.socket.bind(address)
        self.poller = zmq.Poller()
        self.poller.register(self.socket, flags=zmq.POLLIN)
        self.stopping = threading.Event()
        self.thread: threading.Thread | None = None

    def recv_requests(self, timeout_sec: float | None = default_timeout_sec) -> list[CancelRequest]:
        requests: list[CancelRequest] = []
        timeout_ms = int(timeout_sec * 1_000) if timeout_sec is not None else None
        while self.poller.poll(timeout_ms):
            raw = self.socket.recv()
            try:
                requests.append(des_cancel(raw))
            except ValueError:
                logger.warning(f"dropping malformed message on {self.address}: {raw[:32]!r}")
            timeout_ms = 0
        return requests

    def recv_loop(self) -> None:
        logger.debug(f"listening for cancel requests on {self.address}")
        while not self.stopping.is_set():
            for request in self.recv_requests():
                self.registry.cancel(request.job_id)
        self.socket.close()

    def start(self) -> threading.Thread:
        self.thread = threading.Thread(target=self.recv_loop, name="cancel-listener", daemon=True)
        self.thread.start()
        return self.thread

    def stop(self) -> None:
        self.stopping.set()
        if self.thread is not None:
            self.thread.join()
