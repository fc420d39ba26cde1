"""
Configuration of the engine: where jobs live, the base environment, the plugin and provider
registries, and the user facing message catalog. Also the logging setup used by entrypoints
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from stagecoach.executor.status import default_messages
from stagecoach.low.core import JobSpec
from stagecoach.low.errors import ConfigurationError
from stagecoach.plugins import Plugin, Provider

logger = logging.getLogger(__name__)

logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s",
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "stagecoach": {"level": "INFO", "handlers": ["default"], "propagate": False},
        "stagecoach.low.tracing": {"level": "WARNING"},
    },
}


def _env_flag(key: str, default: bool) -> bool:
    value = os.environ.get(key, "")
    if not value:
        return default
    return value.lower() in ("1", "yes", "true")


@dataclass
class Config:
    data_dir: Path
    plugins: dict[str, Plugin] = field(default_factory=dict)
    providers: dict[str, Provider] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))
    messages: dict[str, str] = field(default_factory=lambda: dict(default_messages))
    # type of output -> presentation, eg colouring
    formatters: dict[str, Callable[[str], str]] = field(default_factory=dict)
    kill_on_cancel: bool = True
    command_timeout_sec: float | None = None

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
        for name, plugin in self.plugins.items():
            if not isinstance(plugin, Plugin):
                raise ConfigurationError(f"plugin {name} does not implement run_phase")
        for name, provider in self.providers.items():
            if not isinstance(provider, Provider):
                raise ConfigurationError(f"provider {name} does not implement clone")

    @classmethod
    def from_env(cls, **kwargs) -> "Config":
        """Values from STAGECOACH_* envvars, overridden by kwargs"""
        defaults: dict = {
            "data_dir": Path(os.environ.get("STAGECOACH_DATA_DIR", "") or Path.cwd() / "data"),
            "kill_on_cancel": _env_flag("STAGECOACH_KILL_ON_CANCEL", True),
        }
        if timeout := os.environ.get("STAGECOACH_COMMAND_TIMEOUT_SEC", ""):
            defaults["command_timeout_sec"] = float(timeout)
        return cls(**{**defaults, **kwargs})

    def validate_job(self, job: JobSpec) -> None:
        """Fails fast on names the registries do not know"""
        if job.provider.name not in self.providers:
            raise ConfigurationError(f"job {job.id}: unknown provider {job.provider.name}")
        unknown = [ref.name for ref in job.plugins if ref.name not in self.plugins]
        if unknown:
            raise ConfigurationError(f"job {job.id}: unknown plugins {', '.join(unknown)}")
