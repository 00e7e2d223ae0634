"""Render a Command into one literal shell command line.

Stages, innermost first:

1. script body collapsed to a single line
2. executable mapped through ``/usr/bin/env`` (or the configured command map)
3. ``nohup ... > /dev/null &`` when backgrounded
4. ``sg GROUP -c \\"...\\"``  (escaped quotes, always)
5. ``sudo su USER -c "..."``  (plain quotes, always)
6. ``( KEY=value ... )`` environment assignment
7. ``umask MASK && ...``
8. ``cd DIR && ...``

Rendering is pure: it reads the command and the settings and writes neither.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping

from shellwrap.config import Settings, get_settings

if TYPE_CHECKING:
    from shellwrap.command import Command

LAUNCHER = "/usr/bin/env"

# Reserved words and builtins that cannot be exec'd through /usr/bin/env
BUILTINS: frozenset[str] = frozenset({
    "if", "then", "else", "elif", "fi", "case", "esac",
    "for", "while", "until", "do", "done", "select", "function",
    "time", "test", "[", "[[", "{", "!",
    "cd", "exit", "export", "unset", "set", "source", ".",
    "alias", "eval", "exec", "umask", "ulimit", "wait", "trap",
    "return", "shift", "read",
})


def normalize_script(body: str) -> str:
    """Collapse a multi-line script body to ``line; line; line``."""
    lines = (line.strip() for line in body.splitlines())
    return "; ".join(line for line in lines if line)


def is_builtin(base: str) -> bool:
    parts = base.split(maxsplit=1)
    return bool(parts) and parts[0] in BUILTINS


def map_command(base: str, args: Iterable[str], command_map: Mapping[str, str] | None = None) -> str:
    """Stage 2: prefix the launcher unless the first token is a builtin."""
    words = [base, *args]
    if is_builtin(base):
        return " ".join(words)
    head, _, rest = base.partition(" ")
    if command_map and head in command_map:
        mapped = command_map[head]
        return " ".join([f"{mapped} {rest}".rstrip(), *args])
    return " ".join([LAUNCHER, *words])


def in_background(cmd: str, enabled: bool) -> str:
    if not enabled:
        return cmd
    return f"nohup {cmd} > /dev/null &"


def as_group(cmd: str, group: str | None) -> str:
    # Escaped quotes are emitted even without an enclosing user wrap
    if not group:
        return cmd
    return f'sg {group} -c \\"{cmd}\\"'


def as_user(cmd: str, user: str | None) -> str:
    # Plain quotes, even around an already-quoted group wrap
    if not user:
        return cmd
    return f'sudo su {user} -c "{cmd}"'


def merge_environment(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, str]:
    """Merge two environments by upper-cased key.

    Overridden default keys keep their position; new keys are appended.
    """
    merged: dict[str, str] = {}
    for source in (defaults, overrides):
        for key, value in source.items():
            merged[str(key).upper()] = str(value)
    return merged


def with_environment(cmd: str, environment: Mapping[str, str]) -> str:
    if not environment:
        return cmd
    assignments = " ".join(f"{key}={value}" for key, value in environment.items())
    return f"( {assignments} {cmd} )"


def with_umask(cmd: str, umask: str | None) -> str:
    if not umask:
        return cmd
    return f"umask {umask} && {cmd}"


def within(cmd: str, directory: str | None) -> str:
    if not directory:
        return cmd
    return f"cd {directory} && {cmd}"


def compile_command(command: Command, config: Settings | None = None) -> str:
    """Render *command* against *config* (the process-wide settings when omitted)."""
    cfg = config if config is not None else get_settings()
    opts = command.options

    rendered = map_command(command.base, command.args, cfg.command_map)
    rendered = in_background(rendered, opts.run_in_background)
    rendered = as_group(rendered, opts.group)
    rendered = as_user(rendered, opts.user)
    rendered = with_environment(rendered, merge_environment(cfg.default_env, opts.environment))
    rendered = with_umask(rendered, opts.umask or cfg.umask)
    rendered = within(rendered, opts.working_directory)
    return rendered
