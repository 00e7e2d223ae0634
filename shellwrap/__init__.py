"""
shellwrap: compile a described shell invocation into one command line,
and track how it turned out.
"""

from shellwrap._verbosity import Verbosity, resolve_verbosity
from shellwrap.command import Command, CommandOptions, CommandOutcome
from shellwrap.compiler import BUILTINS, compile_command
from shellwrap.config import Settings, configure, get_settings, load_config, reset_settings
from shellwrap.errors import CommandFailed, CommandTimeout, InvalidArguments, ShellwrapError

__all__ = [
    "Command",
    "CommandOptions",
    "CommandOutcome",
    "compile_command",
    "BUILTINS",
    "Settings",
    "configure",
    "get_settings",
    "load_config",
    "reset_settings",
    "Verbosity",
    "resolve_verbosity",
    "ShellwrapError",
    "InvalidArguments",
    "CommandFailed",
    "CommandTimeout",
]
