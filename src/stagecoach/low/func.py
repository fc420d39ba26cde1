from typing import Any, NoReturn


def assert_never(v: Any) -> NoReturn:
    """For exhaustive enum/union checks etc"""
    raise TypeError(v)
