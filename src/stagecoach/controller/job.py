"""
The Job: identity, working directory and environment of one build, and the loop driving it
through the phases. This is the job execution entrypoint
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from stagecoach.config import Config
from stagecoach.controller.outcome import Aborted, FatalFailure, PhaseOutcome
from stagecoach.controller.phases import first_phase, transition
from stagecoach.controller.runner import PhaseRunner
from stagecoach.executor.cancel import CancellationRegistry
from stagecoach.executor.command import CommandExecutor
from stagecoach.executor.msg import CANCELLED, Event
from stagecoach.executor.status import StatusEmitter
from stagecoach.executor.transport import LoggingTransport, Transport
from stagecoach.low.core import Phase, Task
from stagecoach.low.tracing import JobLifecycle, PhaseLifecycle, mark

logger = logging.getLogger(__name__)

JobCallback = Callable[[BaseException | None], None]


def data_dir_name(task: Task) -> str:
    return f"{task.job.id}-{task.repo.name.replace('/', '-')}"


class Job:
    def __init__(
        self,
        task: Task,
        config: Config,
        callback: JobCallback,
        transport: Transport | None = None,
        registry: CancellationRegistry | None = None,
    ) -> None:
        config.validate_job(task.job)
        self.task = task
        self.id = task.job.id
        self.config = config
        self.callback = callback
        self.transport = transport if transport is not None else LoggingTransport()
        self.registry = registry if registry is not None else CancellationRegistry()

        self.phase: Phase | None = None
        self.phase_codes: dict[Phase, int] = {}
        self.env = dict(config.env)
        self.env_lock = threading.Lock()
        self.finished = False

        self.data_dir = self.init_data_dir()
        self.token = self.registry.register(self.id, on_cancel=self._on_cancel)
        self.emitter = StatusEmitter(self.id, self.token, self.transport, config.messages, config.formatters)
        self.executor = CommandExecutor(
            self.emitter,
            self.token,
            env=self.environment,
            cwd=str(self.data_dir),
            default_timeout_sec=config.command_timeout_sec,
        )
        self.runner = PhaseRunner(task, config, self.emitter, self.executor, self.token, self.data_dir, self.setenv)

    # public api
    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def run(self) -> None:
        """Runs the job to completion on the calling thread. Any unexpected fault ends up as a
        fatal error passed to the callback"""
        mark({"job": self.id, "action": JobLifecycle.started})
        try:
            phase: Phase | None = first_phase()
            while phase is not None:
                if self.cancelled:
                    return
                self.phase = phase
                mark({"job": self.id, "phase": phase.value, "action": PhaseLifecycle.started})
                outcome = self.runner.run(phase)
                phase = self.phase_done(phase, outcome)
        except Exception as e:
            if self.cancelled:
                logger.debug(f"[{self.id}] ignoring {e!r} after cancellation")
                return
            self.emitter.error(e)
            self.done(e)
        finally:
            self.registry.unregister(self.id)

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name=f"job-{self.id}")
        thread.start()
        return thread

    def cancel(self) -> bool:
        return self.registry.cancel(self.id)

    def init_data_dir(self) -> Path:
        data_dir = self.config.data_dir / data_dir_name(self.task)
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def environment(self) -> dict[str, str]:
        with self.env_lock:
            return dict(self.env)

    def setenv(self, key: str, value: str) -> None:
        with self.env_lock:
            self.env[key] = value

    # private api
    def _on_cancel(self) -> None:
        mark({"job": self.id, "action": JobLifecycle.cancelled})
        self.transport.publish(Event(name=CANCELLED, job_id=self.id))
        # NOTE we may get here during construction, before the executor exists
        if self.config.kill_on_cancel and hasattr(self, "executor"):
            self.executor.terminate()

    def phase_done(self, phase: Phase, outcome: PhaseOutcome) -> Phase | None:
        if isinstance(outcome, Aborted) or self.cancelled:
            return None
        if isinstance(outcome, FatalFailure):
            mark({"job": self.id, "phase": phase.value, "action": JobLifecycle.failed})
            self.emitter.error(outcome.error)
            self.done(outcome.error)
            return None
        self.phase_codes[phase] = outcome.code
        mark({"job": self.id, "phase": phase.value, "action": PhaseLifecycle.completed, "code": outcome.code})
        self.emitter.status(f"{phase.value}.done", datetime.now(timezone.utc), outcome.code)
        following = transition(phase, outcome, self.task.job.type)
        if following is None:
            self.done(None)
        return following

    def done(self, err: BaseException | None) -> None:
        # NOTE under the token lock, so a cancel is either seen here or comes after the flip
        with self.token.lock:
            if self.cancelled or self.finished:
                return
            self.finished = True
        if err is None:
            mark({"job": self.id, "action": JobLifecycle.completed})
        self.callback(err)
