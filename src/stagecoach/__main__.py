"""
Entrypoint for running a single job from a task file

Example:
```
python -m stagecoach run task.json --data_dir /var/lib/stagecoach --publish tcp://*:5560 --listen tcp://*:5561
```

The task file is a json object with `job` and `repo`, see `stagecoach.low.core.Task`. Status
events are published on `--publish` (zmq PUB), cancel requests are accepted on `--listen`
(zmq PULL, see `stagecoach.executor.comms.send_cancel`).
"""

import logging
import logging.config
import sys
from pathlib import Path

import fire
import orjson

from stagecoach.config import Config, logging_config
from stagecoach.controller.job import Job
from stagecoach.executor.cancel import CancellationRegistry
from stagecoach.executor.comms import CancelListener, ZmqTransport, send_cancel
from stagecoach.executor.transport import LoggingTransport, Transport
from stagecoach.low.core import Task
from stagecoach.plugins import builtin_plugins, builtin_providers, load

logger = logging.getLogger("stagecoach.cli")


def _load_all(fqns: str | tuple | list) -> dict:
    if isinstance(fqns, str):
        fqns = [e for e in fqns.split(",") if e]
    loaded = {}
    for fqn in fqns:
        obj = load(fqn)
        name = getattr(obj, "name", None) or fqn.rpartition(":")[2].rpartition(".")[2]
        loaded[name] = obj
    return loaded


def run(
    task: str,
    data_dir: str | None = None,
    publish: str | None = None,
    listen: str | None = None,
    plugins: str | tuple = "",
    providers: str | tuple = "",
) -> None:
    """Runs the job described by the `task` json file. Exits with 1 on a fatal error"""
    logging.config.dictConfig(logging_config)
    parsed = Task.model_validate(orjson.loads(Path(task).read_bytes()))
    overrides = {"data_dir": Path(data_dir)} if data_dir else {}
    config = Config.from_env(
        plugins={**builtin_plugins(), **_load_all(plugins)},
        providers={**builtin_providers(), **_load_all(providers)},
        **overrides,
    )

    transport: Transport = ZmqTransport(publish) if publish else LoggingTransport()
    registry = CancellationRegistry()
    listener = CancelListener(listen, registry) if listen else None

    errors: list[BaseException | None] = []
    job = Job(parsed, config, errors.append, transport=transport, registry=registry)
    if listener is not None:
        listener.start()
    try:
        job.run()
    finally:
        if listener is not None:
            listener.stop()
        if isinstance(transport, ZmqTransport):
            transport.close()

    if job.cancelled:
        logger.info(f"job {job.id} was cancelled")
    elif errors and errors[0] is not None:
        logger.error(f"job {job.id} failed: {errors[0]!r}")
        sys.exit(1)
    else:
        codes = {k.value: v for k, v in job.phase_codes.items()}
        logger.info(f"job {job.id} finished, phase codes: {codes}")


def cancel(job_id: str, address: str) -> None:
    """Sends a cancel request for the job to a runner listening on `address`"""
    send_cancel(address, job_id)


if __name__ == "__main__":
    fire.Fire({"run": run, "cancel": cancel})
