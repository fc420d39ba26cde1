import pytest

from stagecoach.controller.outcome import Aborted, ExitCodeFailure, FatalFailure, Success
from stagecoach.controller.phases import first_phase, next_phase, transition
from stagecoach.low.core import JobType, Phase


def _walk(job_type: JobType) -> list[str]:
    phases = []
    phase: Phase | None = first_phase()
    while phase is not None:
        phases.append(phase.value)
        phase = transition(phase, Success(), job_type)
    return phases


def test_nominal_order():
    assert _walk(JobType.TEST_ONLY) == ["env", "prepare", "test", "cleanup"]
    assert _walk(JobType.TEST_AND_DEPLOY) == ["env", "prepare", "test", "deploy", "cleanup"]


def test_next_phase():
    assert next_phase(Phase.test, JobType.TEST_ONLY) == Phase.cleanup
    assert next_phase(Phase.test, JobType.TEST_AND_DEPLOY) == Phase.deploy
    assert next_phase(Phase.deploy, JobType.TEST_AND_DEPLOY) == Phase.cleanup
    assert next_phase(Phase.cleanup, JobType.TEST_AND_DEPLOY) is None


@pytest.mark.parametrize("phase", [Phase.env, Phase.prepare, Phase.test, Phase.deploy])
@pytest.mark.parametrize("job_type", [JobType.TEST_ONLY, JobType.TEST_AND_DEPLOY])
def test_failure_goes_to_cleanup(phase, job_type):
    assert transition(phase, ExitCodeFailure(2), job_type) == Phase.cleanup


def test_cleanup_failure_does_not_loop():
    assert transition(Phase.cleanup, ExitCodeFailure(1), JobType.TEST_AND_DEPLOY) is None
    assert transition(Phase.cleanup, Success(), JobType.TEST_AND_DEPLOY) is None


def test_no_transition_on_fatal_or_abort():
    with pytest.raises(ValueError):
        transition(Phase.test, FatalFailure(RuntimeError("x")), JobType.TEST_ONLY)
    with pytest.raises(ValueError):
        transition(Phase.test, Aborted(), JobType.TEST_ONLY)


def test_outcome_codes():
    assert Success().code == 0
    assert ExitCodeFailure(3).code == 3
    assert FatalFailure(RuntimeError()).code == 0
    assert Aborted().code == 0
