"""
Core data structures -- prescribes most of the API
"""

import shlex
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# NOTE plugin and provider refs, as well as repos, carry arbitrary extra fields -- those are
# the per-job configuration of the respective plugin, which the engine does not interpret


class JobType(str, Enum):
    TEST_ONLY = "TEST_ONLY"
    TEST_AND_DEPLOY = "TEST_AND_DEPLOY"


class Phase(str, Enum):
    env = "env"
    prepare = "prepare"
    test = "test"
    deploy = "deploy"
    cleanup = "cleanup"


PHASES: list[Phase] = [Phase.env, Phase.prepare, Phase.test, Phase.deploy, Phase.cleanup]


class Repo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(description="eg `org/project`, used for deriving the working directory name")
    url: str | None = None


class PluginRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(description="key into the plugin registry")


class ProviderRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(description="key into the provider registry")


class JobSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: JobType = JobType.TEST_ONLY
    plugins: list[PluginRef] = Field(default_factory=list, description="in the order they are run in every phase")
    provider: ProviderRef

    def plugin_config(self, name: str) -> PluginRef | None:
        for ref in self.plugins:
            if ref.name == name:
                return ref
        return None


class Task(BaseModel):
    """What the engine is given to run: a job and the repo it builds"""

    model_config = ConfigDict(frozen=True)

    job: JobSpec
    repo: Repo


# Commands
class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: str
    args: list[str] | None = Field(None, description="if absent, `command` is shell-tokenized and its head is the executable")
    screen: str | None = Field(None, description="displayed instead of the command line, eg to hide secrets")
    env: dict[str, str] | None = Field(None, description="replaces the job environment")
    cwd: str | None = Field(None, description="overrides the job working directory")
    timeout_sec: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_options(cls, data: Any) -> Any:
        # options-style call: {"cmd": "make" | {"command": ...}, "env": ..., "cwd": ...}
        if isinstance(data, dict) and "cmd" in data:
            data = dict(data)
            inner = data.pop("cmd")
            if isinstance(inner, str):
                inner = {"command": inner}
            elif isinstance(inner, Command):
                inner = inner.model_dump(exclude_none=True)
            data = {**inner, **data}
        return data

    @classmethod
    def parse(cls, cmd: "str | dict | Command") -> "Command":
        if isinstance(cmd, Command):
            return cmd
        elif isinstance(cmd, str):
            return cls(command=cmd)
        elif isinstance(cmd, dict):
            return cls.model_validate(cmd)
        else:
            raise TypeError(f"unsupported command type: {type(cmd)}")

    def normalized(self) -> "Command":
        """Returns a command whose `command` is the executable and `args` are explicit"""
        if self.args is not None:
            return self
        tokens = tokenize(self.command)
        if not tokens:
            raise ValueError(f"empty command: {self.command!r}")
        return self.model_copy(update={"command": tokens[0], "args": tokens[1:]})

    def display(self) -> str:
        if self.screen:
            return self.screen
        normalized = self.normalized()
        return quote([normalized.command, *(normalized.args or [])])


class CommandResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int
    start: datetime
    end: datetime
    duration_ms: int


def tokenize(command: str) -> list[str]:
    """Splits according to shell quoting rules, respecting quotes and escapes"""
    return shlex.split(command, posix=True)


def quote(tokens: list[str]) -> str:
    return shlex.join(tokens)
