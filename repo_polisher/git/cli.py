"""Thin async wrapper around the git command line.

Each method maps to one git invocation. Commands whose failure is always
fatal run with ``check=True`` and raise CommandFailedError. ``push`` returns
its CommandResult unchecked so the publisher can classify the failure and
decide on fork-fallback.
"""

import os
from pathlib import Path

import structlog

from repo_polisher.utils.async_subprocess import CommandResult, run_command

log = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 120.0


class GitCli:
    """Run git commands inside one working directory.

    Attributes:
        cwd: Working directory of every command
        timeout: Timeout in seconds for local commands
        network_timeout: Timeout in seconds for clone, fetch and push
    """

    def __init__(
        self,
        cwd: str | Path,
        timeout: float = DEFAULT_TIMEOUT,
        network_timeout: float | None = None,
        executable: str = "git",
    ) -> None:
        self.cwd = Path(cwd)
        self.timeout = timeout
        self.network_timeout = network_timeout or timeout
        self.executable = executable
        # Never block on an interactive credential prompt.
        self._env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    async def _run(self, *args: str, check: bool = True, network: bool = False) -> CommandResult:
        log.debug("git_command", args=args, cwd=str(self.cwd))
        return await run_command(
            self.executable,
            *args,
            cwd=self.cwd,
            env=self._env,
            timeout=self.network_timeout if network else self.timeout,
            check=check,
        )

    async def get_remote_url(self, name: str = "origin") -> str:
        result = await self._run("remote", "get-url", name)
        return result.stdout.strip()

    async def remote_names(self) -> list[str]:
        result = await self._run("remote")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def ensure_remote(self, name: str, url: str) -> None:
        """Point remote ``name`` at ``url``, updating it if it already exists."""
        if name in await self.remote_names():
            await self._run("remote", "set-url", name, url)
            log.info("remote_updated", remote=name, url=url)
        else:
            await self._run("remote", "add", name, url)
            log.info("remote_added", remote=name, url=url)

    async def checkout_new_branch(self, branch: str, start_point: str | None = None) -> None:
        """Create and check out ``branch``, resetting it if it already exists."""
        args = ["checkout", "-B", branch]
        if start_point:
            args.append(start_point)
        await self._run(*args)

    async def checkout_force(self, branch: str, start_point: str) -> None:
        await self._run("checkout", "--force", "-B", branch, start_point)

    async def stage_all(self) -> None:
        await self._run("add", "-A")

    async def commit(self, message: str, *paragraphs: str) -> None:
        args = ["commit", "-m", message]
        for paragraph in paragraphs:
            args.extend(["-m", paragraph])
        await self._run(*args)

    async def push(self, remote: str, branch: str) -> CommandResult:
        """Push ``branch`` to ``remote`` and set upstream. Never raises on exit code."""
        return await self._run("push", "-u", remote, branch, check=False, network=True)

    async def fetch(self, remote: str, ref: str | None = None, depth: int | None = None) -> None:
        args = ["fetch"]
        if depth:
            args.append(f"--depth={depth}")
        args.append(remote)
        if ref:
            args.append(ref)
        await self._run(*args, network=True)

    async def clean(self) -> None:
        await self._run("clean", "-fd")

    async def clone(self, url: str, destination: str | Path, depth: int | None = 1) -> None:
        """Clone ``url`` into ``destination`` as a single-branch checkout.

        Runs from ``cwd``, which should be the destination's parent directory.
        """
        args = ["clone", "--single-branch"]
        if depth:
            args.append(f"--depth={depth}")
        args.extend([url, str(destination)])
        await self._run(*args, network=True)
