"""Error taxonomy for command construction and completion."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shellwrap.command import Command


class ShellwrapError(Exception):
    """Base class for all shellwrap errors."""


class InvalidArguments(ShellwrapError, ValueError):
    """Raised at construction when a command cannot be described as given."""


class CommandFailed(ShellwrapError, RuntimeError):
    """Raised from set_exit_status() on a non-zero exit when raising is enabled.

    The descriptor is already complete when this propagates.
    """

    def __init__(self, message: str, command: "Command | None" = None, exit_status: int | None = None):
        super().__init__(message)
        self.command = command
        self.exit_status = exit_status


class CommandTimeout(ShellwrapError, TimeoutError):
    """Raised by a backend when a command outlives its timeout and raising is disabled."""

    def __init__(self, message: str, command: "Command | None" = None):
        super().__init__(message)
        self.command = command


NOTHING_WRITTEN = "Nothing written"


def failure_message(name: str, stdout: str, stderr: str) -> str:
    """Two-line summary of captured output, one line per stream."""
    out = stdout.strip() or NOTHING_WRITTEN
    err = stderr.strip() or NOTHING_WRITTEN
    return f"{name} stdout: {out}\n{name} stderr: {err}\n"
