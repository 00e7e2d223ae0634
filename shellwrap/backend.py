"""Local backend: run a rendered Command under ``sh -c`` and record its outcome.

Output is streamed into the command in chunks as it arrives. The exit
status is taken when sh exits, not when every pipe closes, so a
backgrounded job does not hold execute() open. The status is assigned
last, so CommandFailed surfaces from execute().
"""

import asyncio
import codecs
import logging
import os
import signal
from typing import Callable

from shellwrap.command import Command
from shellwrap.config import Settings
from shellwrap.errors import CommandTimeout

logger = logging.getLogger(__name__)

# Exit status recorded for a command killed on timeout (matches coreutils `timeout`)
TIMEOUT_EXIT_STATUS = 124
_CHUNK_SIZE = 4096
_POLL_INTERVAL = 0.05
# A nohup'd child inherits the stderr pipe; stop reading this long after sh exits
_DRAIN_TIMEOUT = 0.5


async def _wait_for_exit(proc: asyncio.subprocess.Process) -> int:
    """Wait for the shell itself to exit.

    Process.wait() may also wait for the pipes to close, which a
    backgrounded child keeps open; returncode is set on exit alone.
    """
    while proc.returncode is None:
        await asyncio.sleep(_POLL_INTERVAL)
    return proc.returncode


async def kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill process and all children via process group.

    Sends SIGTERM first, waits 200ms, then SIGKILL if still alive.
    """
    if proc.returncode is not None:
        return
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGTERM)
    except (ProcessLookupError, PermissionError):
        pass
    try:
        await asyncio.wait_for(_wait_for_exit(proc), timeout=0.2)
    except asyncio.TimeoutError:
        try:
            os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        await _wait_for_exit(proc)


async def _pump(stream: asyncio.StreamReader | None, sink: Callable[[str], None]) -> None:
    if stream is None:
        return
    # Incremental decode: a chunk boundary may split a multi-byte character
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            tail = decoder.decode(b"", final=True)
            if tail:
                sink(tail)
            return
        text = decoder.decode(chunk)
        if text:
            sink(text)


async def _drain(pumps: list[asyncio.Task]) -> None:
    """Give the pumps a moment to reach EOF, then cancel any still blocked."""
    _, pending = await asyncio.wait(pumps, timeout=_DRAIN_TIMEOUT)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pumps, return_exceptions=True)


class LocalBackend:
    """Executes commands on this machine through ``sh -c``."""

    def __init__(self, workspace_dir: str | None = None, config: Settings | None = None):
        self.workspace_dir = workspace_dir or os.getcwd()
        self.config = config

    async def execute(self, command: Command, timeout: float | None = None) -> Command:
        """Run *command* until its shell exits and return it.

        Raises CommandFailed on a non-zero exit when the command's policy
        asks for it. On timeout the process group is killed and the command
        completes with status 124; CommandTimeout is raised if the policy
        did not already raise CommandFailed.
        """
        rendered = command.to_command(self.config)
        logger.log(command.verbosity, "[%s] running: %s", command.id, rendered)
        command.start()
        proc = await asyncio.create_subprocess_exec(
            "sh", "-c", rendered,
            cwd=self.workspace_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        pumps = [
            asyncio.create_task(_pump(proc.stdout, command.append_stdout)),
            asyncio.create_task(_pump(proc.stderr, command.append_stderr)),
        ]
        try:
            returncode = await asyncio.wait_for(_wait_for_exit(proc), timeout=timeout)
        except asyncio.TimeoutError:
            await kill_process_tree(proc)
            await _drain(pumps)
            logger.warning("[%s] timed out after %ss: %s", command.id, timeout, rendered)
            command.set_exit_status(TIMEOUT_EXIT_STATUS)
            raise CommandTimeout(f"Command timed out after {timeout}s: {rendered}", command=command)

        await _drain(pumps)
        command.set_exit_status(returncode)
        return command
