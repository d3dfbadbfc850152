"""Async subprocess utilities.

Every git and gh invocation in repo-polisher goes through ``run_command`` so
that output capture, decoding, timeouts and failure reporting behave the same
way everywhere.

Key Features:
    - Non-blocking execution compatible with asyncio
    - Configurable timeout with automatic process cleanup
    - Optional environment override (used for the gh CLI PATH tweaks)
    - Structured ``CommandResult`` instead of a bare tuple

Example:
    >>> from repo_polisher.utils.async_subprocess import run_command
    >>> result = await run_command("git", "status", cwd="/repo")
    >>> if result.ok:
    ...     print(result.stdout)

Thread Safety:
    Each call creates an independent subprocess with no shared state, so the
    function is safe to call concurrently from multiple async tasks.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from repo_polisher.exceptions import (
    CommandFailedError,
    CommandNotFoundError,
    CommandTimeoutError,
)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of a finished subprocess.

    Attributes:
        args: Command and arguments as executed
        stdout: Decoded standard output (the data channel)
        stderr: Decoded standard error (the error channel)
        returncode: Process exit code
    """

    args: tuple[str, ...]
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Return stdout and stderr combined, for error messages and matching."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @property
    def display(self) -> str:
        return " ".join(self.args[:3])


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    check: bool = False,
) -> CommandResult:
    """Run a command asynchronously without shell interpolation.

    Args:
        *args: Command and arguments as separate strings, e.g.
            ``"git", "push", "origin", "fix/typos"``.
        cwd: Working directory for the command. None uses the current
            working directory of the parent process.
        env: Complete environment for the child process. None inherits the
            parent's environment.
        timeout: Maximum seconds to wait. The process is killed when the
            timeout is exceeded. None waits indefinitely.
        check: If True, raise CommandFailedError on a non-zero exit code.

    Returns:
        CommandResult with decoded output (UTF-8, invalid bytes replaced).

    Raises:
        CommandFailedError: If check=True and the command exits non-zero.
        CommandTimeoutError: If the timeout is exceeded.
        CommandNotFoundError: If the executable does not exist.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CommandNotFoundError(args[0]) from e

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout,
        )
    except TimeoutError as e:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(tuple(args), timeout or 0.0) from e

    result = CommandResult(
        args=tuple(args),
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
        returncode=process.returncode or 0,
    )

    if check and not result.ok:
        raise CommandFailedError(result)

    return result
