"""
Runs shell commands configured on the job, per phase:

    {"name": "shell", "environment": {"CI": "1"}, "prepare": "make deps", "test": ["make lint", "make test"]}

The `environment` mapping is exported in the env phase, before the env commands run
"""

import logging

from stagecoach.controller.context import ExecutionContext
from stagecoach.low.core import Phase
from stagecoach.low.errors import ExitCodeError

logger = logging.getLogger(__name__)


class ShellPlugin:
    name = "shell"

    def commands(self, context: ExecutionContext) -> list:
        configured = context.plugin_config(self.name).get(context.phase.value)
        if configured is None:
            return []
        if isinstance(configured, (str, dict)):
            return [configured]
        if isinstance(configured, list):
            return configured
        raise TypeError(f"{self.name}.{context.phase.value} must be a command or a list thereof, gotten {type(configured)}")

    def run_phase(self, context: ExecutionContext) -> None:
        if context.phase == Phase.env:
            for key, value in context.plugin_config(self.name).get("environment", {}).items():
                context.setenv(str(key), str(value))
        for command in self.commands(context):
            code = context.cmd(command)
            if code != 0:
                raise ExitCodeError(code)
