"""Tests for the async subprocess runner, using real processes."""

import sys

import pytest

from repo_polisher.exceptions import CommandFailedError, CommandNotFoundError, CommandTimeoutError
from repo_polisher.utils.async_subprocess import CommandResult, run_command


@pytest.mark.asyncio
async def test_captures_stdout() -> None:
    result = await run_command(sys.executable, "-c", "print('hello')")

    assert result.ok
    assert result.stdout.strip() == "hello"
    assert result.stderr == ""


@pytest.mark.asyncio
async def test_captures_stderr_and_exit_code() -> None:
    result = await run_command(sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)")

    assert not result.ok
    assert result.returncode == 3
    assert result.stderr == "boom"


@pytest.mark.asyncio
async def test_check_raises_on_failure() -> None:
    with pytest.raises(CommandFailedError) as exc_info:
        await run_command(sys.executable, "-c", "import sys; sys.exit(1)", check=True)

    assert exc_info.value.result.returncode == 1


@pytest.mark.asyncio
async def test_timeout_kills_process() -> None:
    with pytest.raises(CommandTimeoutError, match="timed out after 0.2s"):
        await run_command(sys.executable, "-c", "import time; time.sleep(10)", timeout=0.2)


@pytest.mark.asyncio
async def test_missing_executable() -> None:
    with pytest.raises(CommandNotFoundError, match="definitely-not-a-real-binary"):
        await run_command("definitely-not-a-real-binary-xyz")


@pytest.mark.asyncio
async def test_cwd_and_env(tmp_path) -> None:
    result = await run_command(
        sys.executable,
        "-c",
        "import os; print(os.getcwd()); print(os.environ['POLISHER_TEST'])",
        cwd=tmp_path,
        env={"POLISHER_TEST": "value"},
    )

    cwd, value = result.stdout.split()
    assert cwd == str(tmp_path.resolve())
    assert value == "value"


def test_result_output_and_display() -> None:
    result = CommandResult(
        args=("git", "push", "-u", "origin", "main"),
        stdout=" out \n",
        stderr="\nerr\n",
        returncode=1,
    )

    assert result.output == "out\nerr"
    assert result.display == "git push -u"
