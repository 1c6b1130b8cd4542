"""Shell command execution for the collectors."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import psutil

from sysdash.models import NOT_AVAILABLE

logger = logging.getLogger(__name__)

# Returned in place of output whenever a command cannot be run to completion.
UNAVAILABLE = NOT_AVAILABLE

DEFAULT_TIMEOUT = 5.0

CommandRunner = Callable[[str], Awaitable[str]]


def is_unavailable(output: str) -> bool:
    """Check whether command output carries no data."""
    return not output or output == UNAVAILABLE


async def run_command(command: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Run a shell command and return its stripped standard output.

    Standard error is discarded. Spawn errors, non-zero exit codes and
    timeouts all yield UNAVAILABLE instead of raising.

    Args:
        command: Command line passed to the shell.
        timeout: Seconds to wait before the command is killed.
    """
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        logger.debug("Could not spawn %r: %s", command, exc)
        return UNAVAILABLE

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("Command %r timed out after %ss", command, timeout)
        await _kill_tree(proc)
        return UNAVAILABLE

    if proc.returncode != 0:
        logger.debug("Command %r exited with status %s", command, proc.returncode)
        return UNAVAILABLE

    return stdout.decode(errors="replace").strip()


async def _kill_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and every process it spawned (pipelines included)."""
    try:
        children = psutil.Process(proc.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    for child in children:
        try:
            child.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


def make_runner(timeout: float = DEFAULT_TIMEOUT) -> CommandRunner:
    """Return a CommandRunner bound to the given timeout."""

    async def run(command: str) -> str:
        return await run_command(command, timeout=timeout)

    return run
