from typing import Callable

import pytest
from fakes import RecordingProvider

from stagecoach.config import Config
from stagecoach.executor.transport import RecordingTransport
from stagecoach.low.core import JobSpec, JobType, PluginRef, ProviderRef, Repo, Task


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def make_task() -> Callable[..., Task]:
    def make(job_type: JobType = JobType.TEST_ONLY, plugins: list[str] | None = None, job_id: str = "j1", configs: dict | None = None) -> Task:
        configs = configs or {}
        refs = [PluginRef(name=name, **configs.get(name, {})) for name in (plugins or ["p1"])]
        return Task(
            job=JobSpec(id=job_id, type=job_type, plugins=refs, provider=ProviderRef(name="fake")),
            repo=Repo(name="org/project"),
        )

    return make


@pytest.fixture
def make_config(tmp_path, calls) -> Callable[..., Config]:
    def make(plugins: dict, provider=None, **kwargs) -> Config:
        return Config(
            data_dir=tmp_path / "data",
            plugins=plugins,
            providers={"fake": provider if provider is not None else RecordingProvider(calls)},
            **kwargs,
        )

    return make
