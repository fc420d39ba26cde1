"""
Runs external commands on behalf of a job:
 - normalizing a shell string or a descriptor into executable + args + options,
 - publishing `command.start`, the live `stdout`/`stderr` chunks and `command.done`,
 - reporting the exit code and duration.

Commands are spawned in their own session (process group), so that they can be addressed
independently of the runner -- notably killed as a whole on timeout or cancellation.
There are no retries at this level. An executable which cannot be found or executed does not fail
the job: like a shell, we report it on stderr and complete with 127 or 126, and the caller decides.
"""

import codecs
import logging
import os
import signal
import subprocess
import threading
import time
from datetime import datetime, timezone
from typing import IO, Callable

from stagecoach.executor.cancel import CancellationToken
from stagecoach.executor.status import StatusEmitter
from stagecoach.low.core import Command, CommandResult
from stagecoach.low.errors import JobCancelled
from stagecoach.low.tracing import CommandLifecycle, mark

logger = logging.getLogger(__name__)

read_chunk_size = 64 * 1024
exit_not_found = 127
exit_not_executable = 126
kill_grace_sec = 5.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _pump(stream: IO[bytes], type_: str, emit: Callable[[str, str], bool]) -> None:
    """Forwards chunks as they arrive, decoding utf8 incrementally so that multibyte characters
    split across reads are not mangled"""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while chunk := stream.read1(read_chunk_size):  # type: ignore[attr-defined]
            if text := decoder.decode(chunk):
                emit(type_, text)
        if tail := decoder.decode(b"", final=True):
            emit(type_, tail)
    finally:
        stream.close()


class CommandExecutor:
    def __init__(
        self,
        emitter: StatusEmitter,
        token: CancellationToken,
        env: Callable[[], dict[str, str]],
        cwd: str,
        default_timeout_sec: float | None = None,
        grace_sec: float = kill_grace_sec,
    ) -> None:
        self.emitter = emitter
        self.token = token
        self.env = env
        self.cwd = cwd
        self.default_timeout_sec = default_timeout_sec
        self.grace_sec = grace_sec
        self.proc: subprocess.Popen | None = None
        self.lock = threading.Lock()

    def options(self, command: Command) -> tuple[dict[str, str], str]:
        # NOTE a caller-supplied env replaces the job environment as a whole, it is not merged
        env = dict(command.env) if command.env is not None else dict(self.env())
        cwd = command.cwd if command.cwd is not None else self.cwd
        return env, cwd

    def __call__(self, cmd: str | dict | Command) -> int:
        """Runs the command, returns its exit code. This is the `cmd` capability plugins receive"""
        return self.run(cmd).code

    def run(self, cmd: str | dict | Command) -> CommandResult:
        if self.token.cancelled:
            raise JobCancelled(self.emitter.job_id)
        command = Command.parse(cmd)
        normalized = command.normalized()
        env, cwd = self.options(command)
        timeout_sec = command.timeout_sec if command.timeout_sec is not None else self.default_timeout_sec
        argv = [normalized.command, *(normalized.args or [])]

        start = _now()
        started_ns = time.perf_counter_ns()
        self.emitter.status("command.start", command.display(), start)

        try:
            code = self._spawn_and_wait(argv, env, cwd, timeout_sec)
        except FileNotFoundError as e:
            self.emitter.status("stderr", f"{normalized.command}: command not found ({e.strerror})\n")
            code = exit_not_found
        except PermissionError as e:
            self.emitter.status("stderr", f"{normalized.command}: cannot execute ({e.strerror})\n")
            code = exit_not_executable

        end = _now()
        elapsed_ms = (time.perf_counter_ns() - started_ns) // 1_000_000
        logger.debug(f"[{self.emitter.job_id}] command done {argv}; exit code {code}; duration {elapsed_ms}ms")
        self.emitter.status("command.done", code, end, elapsed_ms)
        return CommandResult(code=code, start=start, end=end, duration_ms=elapsed_ms)

    def _spawn_and_wait(self, argv: list[str], env: dict[str, str], cwd: str, timeout_sec: float | None) -> int:
        with self.lock:
            if self.token.cancelled:
                raise JobCancelled(self.emitter.job_id)
            proc = subprocess.Popen(
                argv,
                env=env,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
            self.proc = proc
        mark({"job": self.emitter.job_id, "action": CommandLifecycle.spawned, "pid": proc.pid})

        pumps = [
            threading.Thread(target=_pump, args=(proc.stdout, "stdout", self.emitter.status), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, "stderr", self.emitter.status), daemon=True),
        ]
        for pump in pumps:
            pump.start()
        try:
            try:
                proc.wait(timeout_sec)
            except subprocess.TimeoutExpired:
                logger.warning(f"[{self.emitter.job_id}] {argv[0]} exceeded {timeout_sec}s, killing")
                self.emitter.status("stderr", f"command timed out after {timeout_sec}s\n")
                self._kill(proc, signal.SIGKILL)
                proc.wait()
            # NOTE like a shell, we consider the command done once its output is drained -- a detached
            # grandchild holding the pipes open keeps the command running
            for pump in pumps:
                pump.join()
        finally:
            with self.lock:
                self.proc = None
        mark({"job": self.emitter.job_id, "action": CommandLifecycle.exited, "pid": proc.pid, "code": proc.returncode})
        return proc.returncode

    def _kill(self, proc: subprocess.Popen, sig: int) -> None:
        try:
            os.killpg(proc.pid, sig)
        except ProcessLookupError:
            pass
        mark({"job": self.emitter.job_id, "action": CommandLifecycle.killed, "pid": proc.pid, "signal": sig})

    def terminate(self) -> None:
        """Sends SIGTERM to the process group of the in-flight command, if any, and SIGKILL if it is
        still running after the grace period. Does not block"""
        with self.lock:
            proc = self.proc
        if proc is not None and proc.poll() is None:
            logger.debug(f"[{self.emitter.job_id}] terminating {proc.pid}")
            self._kill(proc, signal.SIGTERM)
            threading.Thread(target=self._escalate, args=(proc,), daemon=True).start()

    def _escalate(self, proc: subprocess.Popen) -> None:
        try:
            proc.wait(self.grace_sec)
        except subprocess.TimeoutExpired:
            logger.warning(f"[{self.emitter.job_id}] {proc.pid} ignored SIGTERM for {self.grace_sec}s, killing")
            self._kill(proc, signal.SIGKILL)
