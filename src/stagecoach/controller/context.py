"""
The ExecutionContext: everything a plugin or provider gets to see of the job during one phase
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from stagecoach.low.core import Command, JobSpec, Phase, Repo


@dataclass(frozen=True)
class ExecutionContext:
    """Built by the phase runner once per phase and shared by all its tasks. Read-only -- tasks
    act on the job only through the callables.

    status: publishes `job.status.<type>` with args, returns False once cancelled
    out: publishes text to stdout/stderr depending on the type (`error`, `warn`, ...)
    log: writes to the server-side log, not published
    cmd: runs a command in the working directory, returns its exit code
    setenv: sets a variable in the job environment, seen by all subsequent commands
    """

    status: Callable[..., bool]
    out: Callable[..., bool]
    log: Callable[..., None]
    cmd: Callable[[str | dict | Command], int]
    setenv: Callable[[str, str], None]
    data_dir: Path
    phase: Phase
    job: JobSpec
    repo: Repo

    def plugin_config(self, name: str) -> dict[str, Any]:
        """Extra fields the job configured for the named plugin"""
        ref = self.job.plugin_config(name)
        if ref is None:
            return {}
        return dict(ref.model_extra or {})
