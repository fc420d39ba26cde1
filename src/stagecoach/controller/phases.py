"""
The phase state machine: which phase runs after which, given the job type and how the phase
ended. `None` stands for the terminal `done` state
"""

from stagecoach.controller.outcome import Aborted, ExitCodeFailure, FatalFailure, PhaseOutcome, Success
from stagecoach.low.core import PHASES, JobType, Phase
from stagecoach.low.func import assert_never


def first_phase() -> Phase:
    return PHASES[0]


def next_phase(phase: Phase, job_type: JobType) -> Phase | None:
    """The nominal successor. Deploy is skipped altogether for jobs not of the deploy type"""
    idx = PHASES.index(phase)
    if idx + 1 >= len(PHASES):
        return None
    successor = PHASES[idx + 1]
    if successor == Phase.deploy and job_type != JobType.TEST_AND_DEPLOY:
        return next_phase(successor, job_type)
    return successor


def transition(phase: Phase, outcome: PhaseOutcome, job_type: JobType) -> Phase | None:
    if isinstance(outcome, Success):
        if phase == Phase.cleanup:
            return None
        return next_phase(phase, job_type)
    elif isinstance(outcome, ExitCodeFailure):
        # a failing cleanup does not loop into another cleanup
        if phase == Phase.cleanup:
            return None
        return Phase.cleanup
    elif isinstance(outcome, FatalFailure | Aborted):
        raise ValueError(f"no transition out of {phase.value} on {outcome}")
    else:
        assert_never(outcome)
