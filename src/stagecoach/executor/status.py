"""
Publishes the status stream of a single job, and handles its diagnostic output.

The status stream (`job.status.<type>` events) is what observers see. `log` and `error` go to the
server-side log; `error` additionally publishes a sanitized message unless marked server-only
"""

import logging
from typing import Any, Callable

from stagecoach.executor.cancel import CancellationToken
from stagecoach.executor.msg import JobId, status_event
from stagecoach.executor.transport import Transport

logger = logging.getLogger(__name__)

STDERR_TYPES = {"error", "stderr", "warn"}

default_messages: dict[str, str] = {
    "error_please_report": "An unexpected error occurred while running this job. Please report it to the administrator.",
}


class StatusEmitter:
    def __init__(
        self,
        job_id: JobId,
        token: CancellationToken,
        transport: Transport,
        messages: dict[str, str] | None = None,
        formatters: dict[str, Callable[[str], str]] | None = None,
    ) -> None:
        self.job_id = job_id
        self.token = token
        self.transport = transport
        self.messages = {**default_messages, **(messages or {})}
        self.formatters = formatters or {}
        # NOTE stdout and stderr are read on separate threads, we keep their events in one ordered stream.
        # The lock is the one of the token, so a cancel cannot interleave with a publish
        self.lock = token.lock

    def status(self, type_: str, *args: Any) -> bool:
        if self.token.cancelled:
            return False
        with self.lock:
            if self.token.cancelled:
                return False
            self.transport.publish(status_event(self.job_id, type_, *args))
        return True

    def log(self, msg: str, *args: Any) -> None:
        logger.info(f"[{self.job_id}] {msg}", *args)

    def error(self, error: BaseException, server_only: bool = False) -> None:
        logger.error(f"[{self.job_id}] {error!r}", exc_info=error)
        if not server_only:
            self.status("stderr", f"{self.messages['error_please_report']}\n\n{error}\n")

    def out(self, text: str, type_: str | None = None) -> bool:
        dest = "stderr" if type_ in STDERR_TYPES else "stdout"
        if type_ is not None and (formatter := self.formatters.get(type_)) is not None:
            text = formatter(text)
        return self.status(dest, text)
