"""
Exceptions crossing the boundary between plugins, the command executor and the controller
"""


class ExitCodeError(Exception):
    """A task completed but its process signalled a non-zero exit. Routes the job to cleanup
    instead of aborting it"""

    def __init__(self, code: int, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or f"process exited with code {code}")

    def is_well_formed(self) -> bool:
        # NOTE bool is an int subclass, but `True` is no exit code
        return isinstance(self.code, int) and not isinstance(self.code, bool) and self.code != 0


class ConfigurationError(ValueError):
    """Unknown plugin/provider names, or registry entries not implementing the capability"""


class JobCancelled(Exception):
    """Raised when work is attempted on a job that has been cancelled"""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"job {job_id} has been cancelled")
