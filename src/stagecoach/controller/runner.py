"""
Runs a single phase: builds the ExecutionContext, assembles the ordered tasks (provider clone
in prepare, then every configured plugin) and runs them one after another, stopping at the
first failure
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from stagecoach.config import Config
from stagecoach.controller.context import ExecutionContext
from stagecoach.controller.outcome import Aborted, ExitCodeFailure, FatalFailure, PhaseOutcome, Success
from stagecoach.executor.cancel import CancellationToken
from stagecoach.executor.command import CommandExecutor
from stagecoach.executor.status import StatusEmitter
from stagecoach.low.core import Phase, Task
from stagecoach.low.errors import ExitCodeError, JobCancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseTask:
    name: str  # eg `provider:git` or `plugin:shell`, for logging
    run: Callable[[ExecutionContext], None]


def outcome_of(error: BaseException) -> PhaseOutcome:
    if isinstance(error, JobCancelled):
        return Aborted()
    if isinstance(error, ExitCodeError) and error.is_well_formed():
        return ExitCodeFailure(error.code)
    return FatalFailure(error)


class PhaseRunner:
    def __init__(
        self,
        task: Task,
        config: Config,
        emitter: StatusEmitter,
        executor: CommandExecutor,
        token: CancellationToken,
        data_dir: Path,
        setenv: Callable[[str, str], None],
    ) -> None:
        self.task = task
        self.config = config
        self.emitter = emitter
        self.executor = executor
        self.token = token
        self.data_dir = data_dir
        self.setenv = setenv

    def context(self, phase: Phase) -> ExecutionContext:
        return ExecutionContext(
            status=self.emitter.status,
            out=self.emitter.out,
            log=self.emitter.log,
            cmd=self.executor,
            setenv=self.setenv,
            data_dir=self.data_dir,
            phase=phase,
            job=self.task.job,
            repo=self.task.repo,
        )

    def tasks(self, phase: Phase) -> list[PhaseTask]:
        job = self.task.job
        tasks: list[PhaseTask] = []
        if phase == Phase.prepare:
            provider = self.config.providers[job.provider.name]
            tasks.append(PhaseTask(f"provider:{job.provider.name}", provider.clone))
        for ref in job.plugins:
            plugin = self.config.plugins[ref.name]
            tasks.append(PhaseTask(f"plugin:{ref.name}", plugin.run_phase))
        return tasks

    def run(self, phase: Phase) -> PhaseOutcome:
        context = self.context(phase)
        for task in self.tasks(phase):
            if self.token.cancelled:
                return Aborted()
            logger.debug(f"[{self.task.job.id}] {phase.value}: running {task.name}")
            try:
                task.run(context)
            except Exception as e:
                outcome = outcome_of(e)
                if self.token.cancelled:
                    return Aborted()
                if isinstance(outcome, ExitCodeFailure):
                    logger.info(f"[{self.task.job.id}] {phase.value}: {task.name} failed with exit code {outcome.code}")
                return outcome
        if self.token.cancelled:
            return Aborted()
        return Success()
