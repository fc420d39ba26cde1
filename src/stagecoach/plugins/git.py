"""
Acquires the source of the repo with git. Clones into the working directory, or updates an
existing checkout in place
"""

import logging
from urllib.parse import urlsplit, urlunsplit

from stagecoach.controller.context import ExecutionContext
from stagecoach.low.core import Command
from stagecoach.low.errors import ExitCodeError

logger = logging.getLogger(__name__)


def mask_credentials(url: str) -> str:
    parts = urlsplit(url)
    if parts.password is None and parts.username is None:
        return url
    netloc = parts.hostname or ""
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit(parts._replace(netloc=f"[credentials]@{netloc}"))


class GitProvider:
    name = "git"

    def commands(self, context: ExecutionContext) -> list[Command]:
        url = context.repo.url
        if not url:
            raise ValueError(f"repo {context.repo.name} has no url to clone from")
        ref = (context.job.provider.model_extra or {}).get("ref")
        shown = mask_credentials(url)
        if (context.data_dir / ".git").exists():
            commands = [
                Command(command="git", args=["remote", "set-url", "origin", url], screen=f"git remote set-url origin {shown}"),
                Command(command="git", args=["fetch", "--prune", "origin"]),
            ]
            target = f"origin/{ref}" if ref else "origin/HEAD"
            commands.append(Command(command="git", args=["reset", "--hard", target]))
            return commands
        args = ["clone", "--recursive"]
        if ref:
            args += ["--branch", ref]
        screen = " ".join(["git", *args, shown, "."])
        return [Command(command="git", args=[*args, url, "."], screen=screen)]

    def clone(self, context: ExecutionContext) -> None:
        for command in self.commands(context):
            code = context.cmd(command)
            if code != 0:
                raise ExitCodeError(code)
