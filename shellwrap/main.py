import asyncio
import json
import logging
from typing import Any

import typer

from shellwrap.backend import LocalBackend, TIMEOUT_EXIT_STATUS
from shellwrap.command import Command
from shellwrap.config import get_settings
from shellwrap.display import display_command, display_error, display_output, set_theme
from shellwrap.errors import CommandFailed, CommandTimeout, InvalidArguments

app = typer.Typer(
    help="shellwrap - compile and run wrapped shell commands",
    context_settings={"help_option_names": ["--help", "-h"]},
    no_args_is_help=True,
)

# Exit code for usage errors (matches click's own usage-error code)
USAGE_EXIT_CODE = 2


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", "-L", help="Logging level for shellwrap internals"),
):
    """Render shell invocations with directory, umask, env, sudo/sg and nohup wrapping."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


def _parse_env(pairs: list[str] | None) -> dict[str, str]:
    environment: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidArguments(f"--env expects KEY=VALUE, got '{pair}'")
        environment[key] = value
    return environment


def _build_command(executable: str, args: list[str] | None, **options: Any) -> Command:
    """Build a Command from CLI flags; flags left unset fall back to settings."""
    environment = _parse_env(options.pop("env", None))
    if environment:
        options["environment"] = environment
    present = {k: v for k, v in options.items() if v is not None}
    return Command(executable, *(args or []), **present)


@app.command()
def render(
    executable: str = typer.Argument(..., help="Executable, builtin, or script body"),
    args: list[str] = typer.Argument(None, help="Arguments (put '--' before ones starting with '-')"),
    directory: str = typer.Option(None, "--in", "-d", help="Working directory"),
    env: list[str] = typer.Option(None, "--env", "-e", help="KEY=VALUE, repeatable"),
    user: str = typer.Option(None, "--user", "-u", help="Run as this user via sudo su"),
    group: str = typer.Option(None, "--group", "-g", help="Run under this group via sg"),
    background: bool = typer.Option(False, "--background", "-b", help="Detach with nohup"),
    umask: str = typer.Option(None, "--umask", help="Octal umask, overrides the configured one"),
    verbosity: str = typer.Option(None, "--verbosity", "-v", help="Level name or number"),
    as_json: bool = typer.Option(False, "--json", help="Print the full command record as JSON"),
):
    """Print the compiled command line."""
    try:
        command = _build_command(
            executable, args,
            working_directory=directory, env=env, user=user, group=group,
            run_in_background=background, umask=umask, verbosity=verbosity,
        )
    except InvalidArguments as e:
        display_error(str(e), hint="Check the option values and try again.")
        raise typer.Exit(code=USAGE_EXIT_CODE)

    if as_json:
        typer.echo(json.dumps(command.to_dict(), indent=2))
    else:
        typer.echo(command.to_command())


@app.command()
def run(
    executable: str = typer.Argument(..., help="Executable, builtin, or script body"),
    args: list[str] = typer.Argument(None, help="Arguments (put '--' before ones starting with '-')"),
    directory: str = typer.Option(None, "--in", "-d", help="Working directory"),
    env: list[str] = typer.Option(None, "--env", "-e", help="KEY=VALUE, repeatable"),
    user: str = typer.Option(None, "--user", "-u", help="Run as this user via sudo su"),
    group: str = typer.Option(None, "--group", "-g", help="Run under this group via sg"),
    background: bool = typer.Option(False, "--background", "-b", help="Detach with nohup"),
    umask: str = typer.Option(None, "--umask", help="Octal umask, overrides the configured one"),
    verbosity: str = typer.Option(None, "--verbosity", "-v", help="Level name or number"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Kill the command after this many seconds"),
    no_raise: bool = typer.Option(False, "--no-raise", help="Report a non-zero exit instead of failing"),
):
    """Run the compiled command locally and exit with its status."""
    set_theme()
    try:
        command = _build_command(
            executable, args,
            working_directory=directory, env=env, user=user, group=group,
            run_in_background=background, umask=umask, verbosity=verbosity,
            raise_on_non_zero_exit=False if no_raise else None,
        )
    except InvalidArguments as e:
        display_error(str(e), hint="Check the option values and try again.")
        raise typer.Exit(code=USAGE_EXIT_CODE)

    display_command(command)
    try:
        asyncio.run(LocalBackend().execute(command, timeout=timeout))
    except CommandTimeout as e:
        display_output(command)
        display_error(str(e), hint="Raise --timeout or background the command.")
        raise typer.Exit(code=TIMEOUT_EXIT_STATUS)
    except CommandFailed as e:
        display_error(str(e).rstrip(), hint=f"{command.name} exited {e.exit_status}")
        raise typer.Exit(code=e.exit_status or 1)

    display_output(command)
    raise typer.Exit(code=command.exit_status or 0)


@app.command()
def config():
    """Show the effective settings as JSON."""
    typer.echo(get_settings().model_dump_json(indent=2))


if __name__ == "__main__":
    app()
