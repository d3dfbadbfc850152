"""Detection of the available submission method.

The gh CLI is the only automated way to publish a draft. When it is missing
or not logged in, drafts can still be marked submitted with the ``local``
method after the user applied the changes themselves.
"""

from dataclasses import dataclass

import structlog

from repo_polisher.enums import SubmitMethod
from repo_polisher.exceptions import CommandError, ExternalServiceError
from repo_polisher.hosting.gh_cli import GhCli

log = structlog.get_logger(__name__)


@dataclass
class AuthStatus:
    """State of the gh CLI on this machine."""

    installed: bool = False
    version: str | None = None
    authenticated: bool = False
    username: str | None = None

    @property
    def recommended(self) -> SubmitMethod:
        if self.installed and self.authenticated:
            return SubmitMethod.GH_CLI
        return SubmitMethod.LOCAL


class AuthChecker:
    """Check whether gh is installed and authenticated."""

    def __init__(self, gh: GhCli) -> None:
        self.gh = gh

    async def check(self) -> AuthStatus:
        status = AuthStatus()

        try:
            status.version = await self.gh.version()
        except CommandError as e:
            log.debug("gh_version_failed", error=e.message)
            return status

        if status.version is None:
            return status
        status.installed = True

        try:
            auth = await self.gh.auth_status()
        except CommandError as e:
            log.debug("gh_auth_status_failed", error=e.message)
            return status

        # Older gh releases exit non-zero when any configured host is logged out.
        if auth.ok or "Logged in" in auth.output:
            status.authenticated = True
            try:
                status.username = await self.gh.current_user()
            except (CommandError, ExternalServiceError) as e:
                log.warning("gh_username_unavailable", error=e.message)

        log.info(
            "gh_auth_checked",
            installed=status.installed,
            authenticated=status.authenticated,
            username=status.username,
        )
        return status
