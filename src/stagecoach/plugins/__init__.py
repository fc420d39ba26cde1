"""
Capability interfaces of plugins and providers, and loading them by name.

A plugin is invoked once per phase, in the order the job configures the plugins; a provider
is invoked once, at the start of the prepare phase, to populate the working directory.
Both return normally on success and raise `ExitCodeError` for a non-zero process exit --
any other exception is treated as a fatal error of the job.
"""

import importlib
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from stagecoach.low.errors import ConfigurationError

if TYPE_CHECKING:
    from stagecoach.controller.context import ExecutionContext


@runtime_checkable
class Plugin(Protocol):
    def run_phase(self, context: "ExecutionContext") -> None:
        raise NotImplementedError


@runtime_checkable
class Provider(Protocol):
    def clone(self, context: "ExecutionContext") -> None:
        raise NotImplementedError


def load(fqn: str) -> Any:
    """Imports `module.sub:attr` (or `module.sub.attr`) and instantiates it if it is a class"""
    if ":" in fqn:
        module_name, attr = fqn.split(":", 1)
    else:
        module_name, _, attr = fqn.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"not a fully qualified name: {fqn}")
    try:
        module = importlib.import_module(module_name)
        obj = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"failed to load {fqn}: {e}") from e
    return obj() if isinstance(obj, type) else obj


def builtin_plugins() -> dict[str, Plugin]:
    from stagecoach.plugins.shell import ShellPlugin

    return {"shell": ShellPlugin()}


def builtin_providers() -> dict[str, Provider]:
    from stagecoach.plugins.git import GitProvider

    return {"git": GitProvider()}
