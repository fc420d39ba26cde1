"""
Result of running a phase. Passed from the phase runner to the state machine
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Success:
    @property
    def code(self) -> int:
        return 0


@dataclass(frozen=True)
class ExitCodeFailure:
    """Some task signalled a non-zero process exit"""

    exit_code: int

    @property
    def code(self) -> int:
        return self.exit_code


@dataclass(frozen=True)
class FatalFailure:
    """Anything not recognized as a well-formed exit code failure"""

    error: BaseException

    @property
    def code(self) -> int:
        # NOTE no process exit, but broken nonetheless
        return 0


@dataclass(frozen=True)
class Aborted:
    """Cancellation was observed, the phase did not finish"""

    @property
    def code(self) -> int:
        return 0


PhaseOutcome = Success | ExitCodeFailure | FatalFailure | Aborted
