"""Tests for the shell command runner."""

import time

import pytest

from sysdash.runner import UNAVAILABLE, is_unavailable, make_runner, run_command


@pytest.mark.asyncio
async def test_output_is_stripped():
    """Test that stdout is captured and whitespace trimmed."""
    assert await run_command("printf '  hello world \\n\\n'") == "hello world"


@pytest.mark.asyncio
async def test_pipelines_run_through_the_shell():
    assert await run_command("printf 'a\\nb\\nc\\n' | grep b") == "b"


@pytest.mark.asyncio
async def test_stderr_is_discarded():
    assert await run_command("echo out; echo err 1>&2") == "out"


@pytest.mark.asyncio
async def test_non_zero_exit_is_unavailable():
    assert await run_command("echo partial; exit 3") == UNAVAILABLE


@pytest.mark.asyncio
async def test_missing_command_is_unavailable():
    assert await run_command("definitely-not-a-real-command-sysdash") == UNAVAILABLE


@pytest.mark.asyncio
async def test_timeout_is_unavailable():
    """Test that a hanging command is killed after the timeout."""
    start = time.monotonic()
    result = await run_command("sleep 10 | cat", timeout=0.3)
    elapsed = time.monotonic() - start

    assert result == UNAVAILABLE
    assert elapsed < 5.0


@pytest.mark.asyncio
async def test_make_runner_binds_timeout():
    run = make_runner(timeout=0.3)
    assert await run("sleep 10") == UNAVAILABLE
    assert await run("echo ok") == "ok"


def test_is_unavailable():
    assert is_unavailable(UNAVAILABLE)
    assert is_unavailable("")
    assert not is_unavailable("16.0 GB")
