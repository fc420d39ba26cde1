"""
Runs the command line entrypoint on a task file, with a provider that needs no network
"""

import logging.config

import orjson
import pytest

import stagecoach.__main__ as cli
from stagecoach.controller.context import ExecutionContext


class TouchProvider:
    name = "touch"

    def clone(self, context: ExecutionContext) -> None:
        (context.data_dir / "README").write_text("hello\n")


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(logging.config, "dictConfig", lambda config: None)


def _task(tmp_path, test: str) -> str:
    path = tmp_path / "task.json"
    path.write_bytes(
        orjson.dumps(
            {
                "job": {"id": "7", "type": "TEST_ONLY", "plugins": [{"name": "shell", "test": test}], "provider": {"name": "touch"}},
                "repo": {"name": "org/project"},
            }
        )
    )
    return str(path)


def test_run(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "builtin_providers", lambda: {"touch": TouchProvider()})
    cli.run(_task(tmp_path, "cat README"), data_dir=str(tmp_path / "data"))
    assert (tmp_path / "data" / "7-org-project" / "README").exists()


def test_run_failing_test_still_succeeds(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "builtin_providers", lambda: {"touch": TouchProvider()})
    cli.run(_task(tmp_path, "sh -c 'exit 3'"), data_dir=str(tmp_path / "data"))


def test_run_fatal(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "builtin_providers", lambda: {"touch": TouchProvider()})
    with pytest.raises(SystemExit) as e:
        cli.run(_task(tmp_path, 42), data_dir=str(tmp_path / "data"))  # type: ignore[arg-type]
    assert e.value.code == 1


def test_load_all():
    loaded = cli._load_all("stagecoach.plugins.shell:ShellPlugin,stagecoach.plugins.git:GitProvider")
    assert set(loaded.keys()) == {"shell", "git"}
    assert cli._load_all("") == {}
