"""Verbosity levels for command logging.

Values line up with the stdlib ``logging`` levels so a command's verbosity
can be handed straight to ``logger.log()``.
"""

import enum
from typing import Any


class Verbosity(enum.IntEnum):
    DEBUG    = 10
    INFO     = 20
    WARNING  = 30
    ERROR    = 40
    CRITICAL = 50


_ALIASES = {"WARN": Verbosity.WARNING, "FATAL": Verbosity.CRITICAL}


def resolve_verbosity(value: Any) -> int:
    """Resolve a numeric level or a symbolic name (``"debug"``) to a level.

    Raises ValueError for bools, negative numbers, and unknown names.
    """
    if isinstance(value, bool):
        raise ValueError(f"verbosity must be a level or a name, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"verbosity level must be non-negative, got {value}")
        try:
            return Verbosity(value)
        except ValueError:
            return value
    if isinstance(value, str):
        name = value.strip().upper()
        if name.isdigit():
            return resolve_verbosity(int(name))
        if name in Verbosity.__members__:
            return Verbosity[name]
        if name in _ALIASES:
            return _ALIASES[name]
        valid = ", ".join(m.name.lower() for m in Verbosity)
        raise ValueError(f"unknown verbosity '{value}' (expected one of: {valid})")
    raise ValueError(f"verbosity must be a level or a name, got {type(value).__name__}")
