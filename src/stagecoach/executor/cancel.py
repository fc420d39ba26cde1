"""
Per-job cancellation: a write-once flag, and a registry mapping job ids to their flags so that
an external cancel request can be delivered directly by id
"""

import logging
import threading

from stagecoach.executor.msg import JobId

logger = logging.getLogger(__name__)


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()
        # NOTE held by the status emitter while publishing, so that flipping the flag waits for an
        # in-progress publish, and nothing is published once the flag is set
        self.lock = threading.RLock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Sets the flag. Returns True only for the call which actually flipped it"""
        with self.lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def wait(self, timeout_sec: float | None = None) -> bool:
        return self._event.wait(timeout_sec)


class CancellationRegistry:
    def __init__(self) -> None:
        self.tokens: dict[JobId, CancellationToken] = {}
        self.handlers: dict[JobId, list] = {}
        self.lock = threading.Lock()

    def register(self, job_id: JobId, on_cancel=None) -> CancellationToken:
        """Creates the token for the job. `on_cancel` is invoked once, on the first cancel"""
        with self.lock:
            if job_id in self.tokens:
                raise ValueError(f"job {job_id} is already registered")
            token = CancellationToken()
            self.tokens[job_id] = token
            self.handlers[job_id] = [on_cancel] if on_cancel is not None else []
            return token

    def unregister(self, job_id: JobId) -> None:
        with self.lock:
            self.tokens.pop(job_id, None)
            self.handlers.pop(job_id, None)

    def get(self, job_id: JobId) -> CancellationToken | None:
        with self.lock:
            return self.tokens.get(job_id)

    def cancel(self, job_id: JobId) -> bool:
        """Returns True if a running job was cancelled by this call"""
        with self.lock:
            token = self.tokens.get(job_id)
            handlers = list(self.handlers.get(job_id, []))
        if token is None:
            logger.debug(f"ignoring cancel of unknown job {job_id}")
            return False
        if not token.cancel():
            return False
        logger.info(f"job {job_id} cancelled")
        for handler in handlers:
            handler()
        return True
