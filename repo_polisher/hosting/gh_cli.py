"""Async wrapper around the gh (GitHub CLI) executable.

stdout is the data channel (URLs, usernames), stderr the error channel, and
the exit code decides success. Pull request creation returns its raw
CommandResult so the publisher can report partial failures verbatim.
"""

import re
from pathlib import Path

import structlog

from repo_polisher.exceptions import CommandFailedError, ExternalServiceError
from repo_polisher.git.models import RepositorySlug
from repo_polisher.hosting.gh_env import GhEnvironment
from repo_polisher.utils.async_subprocess import CommandResult, run_command

log = structlog.get_logger(__name__)

PR_URL_PATTERN = re.compile(r"https://[\w.-]+(?::\d+)?/[\w.-]+/[\w.-]+/pull/(\d+)")

VERSION_PATTERN = re.compile(r"gh version ([\d.]+)")

FORK_EXISTS_MARKER = "already exists"


def parse_pr_url(text: str) -> tuple[str, int] | None:
    """Find the first pull request URL in CLI output.

    Returns:
        Tuple of (url, number), or None when no URL is present.
    """
    match = PR_URL_PATTERN.search(text)
    if not match:
        return None
    return match.group(0), int(match.group(1))


class GhCli:
    """Run gh commands with a resolved executable and environment."""

    def __init__(
        self,
        environment: GhEnvironment | None = None,
        timeout: float = 120.0,
        network_timeout: float | None = None,
    ) -> None:
        self.environment = environment or GhEnvironment()
        self.timeout = timeout
        self.network_timeout = network_timeout or timeout

    async def _run(
        self,
        *args: str,
        cwd: str | Path | None = None,
        check: bool = False,
        network: bool = True,
    ) -> CommandResult:
        log.debug("gh_command", args=args)
        return await run_command(
            self.environment.command,
            *args,
            cwd=cwd,
            env=self.environment.env,
            timeout=self.network_timeout if network else self.timeout,
            check=check,
        )

    async def version(self) -> str | None:
        """Return the installed gh version, or None when gh does not run."""
        result = await self._run("--version", network=False)
        if not result.ok:
            return None
        match = VERSION_PATTERN.search(result.stdout)
        return match.group(1) if match else result.stdout.strip() or None

    async def auth_status(self) -> CommandResult:
        return await self._run("auth", "status")

    async def current_user(self, cwd: str | Path | None = None, host: str | None = None) -> str:
        """Return the login of the authenticated account on ``host``.

        Raises:
            CommandFailedError: If gh cannot read the user
            ExternalServiceError: If gh printed no login
        """
        args = ["api", "user", "-q", ".login"]
        if host:
            args.extend(["--hostname", host])
        result = await self._run(*args, cwd=cwd, check=True)
        login = result.stdout.strip()
        if not login:
            raise ExternalServiceError("gh returned an empty username")
        return login

    async def fork_repo(self, slug: RepositorySlug, cwd: str | Path | None = None) -> bool:
        """Fork ``slug`` under the authenticated account.

        Returns:
            True when a fork was created, False when it already existed.

        Raises:
            CommandFailedError: If forking failed for any other reason
        """
        result = await self._run(
            "repo",
            "fork",
            slug.gh_repo,
            "--clone=false",
            "--remote=false",
            cwd=cwd,
        )
        if FORK_EXISTS_MARKER in result.output.lower():
            log.info("fork_reused", repo=slug.full_name)
            return False
        if not result.ok:
            raise CommandFailedError(result)
        log.info("fork_created", repo=slug.full_name)
        return True

    async def create_pull_request(
        self,
        slug: RepositorySlug,
        title: str,
        body: str,
        base: str,
        head: str | None = None,
        cwd: str | Path | None = None,
    ) -> CommandResult:
        """Open a pull request against ``slug``. Never raises on exit code."""
        args = [
            "pr",
            "create",
            "--repo",
            slug.gh_repo,
            "--title",
            title,
            "--body",
            body,
            "--base",
            base,
        ]
        if head:
            args.extend(["--head", head])
        return await self._run(*args, cwd=cwd)
