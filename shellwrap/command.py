"""Command descriptor: what to run, how to run it, and how it turned out."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from shellwrap._verbosity import resolve_verbosity
from shellwrap.compiler import compile_command, map_command, normalize_script
from shellwrap.config import Settings, get_settings, normalize_umask
from shellwrap.errors import CommandFailed, InvalidArguments, failure_message

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool)


class CommandOptions(BaseModel):
    """Per-command options, validated once at construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("environment", "env"),
    )
    working_directory: str | None = Field(
        default=None,
        validation_alias=AliasChoices("working_directory", "cd"),
    )
    user: str | None = None
    group: str | None = None
    run_in_background: bool = False
    umask: str | None = None
    # None = fall back to settings at construction
    verbosity: int | None = None
    raise_on_non_zero_exit: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("raise_on_non_zero_exit", "raise_on_nonzero_exit"),
    )
    host: Any = None

    @field_validator("environment", mode="before")
    @classmethod
    def _stringify_environment(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        env: dict[str, str] = {}
        for key, value in v.items():
            if not isinstance(value, _SCALARS):
                raise ValueError(f"environment value for {key!r} must be a scalar, got {type(value).__name__}")
            env[str(key)] = str(value)
        return env

    @field_validator("working_directory", "user", "group", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("umask", mode="before")
    @classmethod
    def _validate_umask(cls, v: Any) -> str | None:
        return normalize_umask(v)

    @field_validator("verbosity", mode="before")
    @classmethod
    def _resolve_verbosity(cls, v: Any) -> int | None:
        return None if v is None else resolve_verbosity(v)


@dataclass
class CommandOutcome:
    """Exit status is write-once; output buffers are append-only."""

    exit_status: int | None = None
    stdout: str = ""
    stderr: str = ""
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def record_exit_status(self, code: int) -> None:
        if self.exit_status is not None:
            raise RuntimeError(f"exit status already recorded ({self.exit_status})")
        self.finished_at = datetime.now(timezone.utc)
        self.exit_status = code


class Command:
    """A single shell invocation.

    Construct with an executable and its arguments, or with a multi-line
    script body::

        Command("ls", "-l", working_directory="/opt/sites")
        Command('''
            if test ! -d /var/log; then
              echo "Example"
            fi
        ''')

    Options are fixed at construction. The outcome (exit status, stdout,
    stderr) is filled in later by whatever executes the rendered string.
    """

    def __init__(self, *command_args: Any, config: Settings | None = None, **options: Any):
        if command_args and isinstance(command_args[0], (list, tuple)):
            # Command(["ls", "-l"]) is the same as Command("ls", "-l")
            command_args = (*command_args[0], *command_args[1:])
        if not command_args or command_args[0] is None or not str(command_args[0]).strip():
            raise InvalidArguments("Command needs an executable or a script body")
        try:
            self._options = CommandOptions.model_validate(options)
        except ValidationError as e:
            raise InvalidArguments(f"Invalid command options: {e}") from e

        cfg = config if config is not None else get_settings()
        self._base = normalize_script(str(command_args[0]))
        self._args = tuple(str(arg) for arg in command_args[1:])
        self._verbosity = (
            self._options.verbosity if self._options.verbosity is not None else cfg.output_verbosity
        )
        self._raise_on_non_zero_exit = (
            self._options.raise_on_non_zero_exit
            if self._options.raise_on_non_zero_exit is not None
            else cfg.raise_on_non_zero_exit
        )
        self._config = config
        self._id = secrets.token_hex(4)
        self._outcome = CommandOutcome()
        self._started = False
        logger.debug("command %s created: %s %s", self._id, self._base, " ".join(self._args))

    # -- static description ------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        """Display name: the executable token (or collapsed script body)."""
        return self._base

    @property
    def base(self) -> str:
        return self._base

    @property
    def args(self) -> tuple[str, ...]:
        return self._args

    @property
    def options(self) -> CommandOptions:
        return self._options

    @property
    def verbosity(self) -> int:
        return self._verbosity

    @property
    def host(self) -> Any:
        return self._options.host

    @property
    def raise_on_non_zero_exit(self) -> bool:
        return self._raise_on_non_zero_exit

    def _render_config(self, config: Settings | None) -> Settings:
        """Explicit config, else the one given at construction, else the live settings."""
        if config is not None:
            return config
        return self._config if self._config is not None else get_settings()

    def to_command(self, config: Settings | None = None) -> str:
        return compile_command(self, self._render_config(config))

    def __str__(self) -> str:
        return map_command(self._base, self._args, self._render_config(None).command_map)

    def __repr__(self) -> str:
        return f"<Command {self._id} {' '.join([self._base, *self._args])!r}>"

    # -- outcome -----------------------------------------------------------

    @property
    def exit_status(self) -> int | None:
        return self._outcome.exit_status

    @property
    def stdout(self) -> str:
        return self._outcome.stdout

    @property
    def stderr(self) -> str:
        return self._outcome.stderr

    @property
    def started_at(self) -> datetime | None:
        return self._outcome.started_at

    @property
    def finished_at(self) -> datetime | None:
        return self._outcome.finished_at

    @property
    def runtime(self) -> float | None:
        """Seconds between start() and set_exit_status(), None until both happened."""
        if self._outcome.started_at is None or self._outcome.finished_at is None:
            return None
        return (self._outcome.finished_at - self._outcome.started_at).total_seconds()

    def start(self) -> None:
        self._started = True
        self._outcome.started_at = datetime.now(timezone.utc)

    def is_started(self) -> bool:
        return self._started

    def append_stdout(self, chunk: str) -> None:
        self._outcome.stdout += chunk

    def append_stderr(self, chunk: str) -> None:
        self._outcome.stderr += chunk

    def set_exit_status(self, code: int) -> None:
        """Record the exit status, then raise CommandFailed if the policy says so.

        The status is stored before raising, so a caller catching the error
        still sees a complete command.
        """
        code = int(code)
        self._outcome.record_exit_status(code)
        if code != 0 and self._raise_on_non_zero_exit:
            message = failure_message(self.name, self.stdout, self.stderr)
            logger.error("command %s exited with status %d", self._id, code)
            raise CommandFailed(message, command=self, exit_status=code)
        logger.log(self._verbosity, "command %s finished with exit status %d", self._id, code)

    def is_complete(self) -> bool:
        return self._outcome.exit_status is not None

    def is_successful(self) -> bool:
        return self._outcome.exit_status == 0

    def is_failed(self) -> bool:
        return self.is_complete() and self._outcome.exit_status != 0

    @property
    def success(self) -> bool:
        return self.is_successful()

    @property
    def failure(self) -> bool:
        return self.is_failed()

    def to_dict(self, config: Settings | None = None) -> dict[str, Any]:
        """Plain-data snapshot for logging and JSON output."""
        return {
            "id": self._id,
            "command": self.to_command(config),
            "name": self.name,
            "args": list(self._args),
            "options": self._options.model_dump(exclude_none=True, exclude={"host"}),
            "host": None if self.host is None else str(self.host),
            "verbosity": int(self._verbosity),
            "exit_status": self.exit_status,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "started": self._started,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "runtime": self.runtime,
            "complete": self.is_complete(),
            "successful": self.is_successful(),
            "failed": self.is_failed(),
        }
