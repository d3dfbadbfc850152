"""Resolve a working checkout for a project.

Local projects are used in place. GitHub projects are cloned once into a
cache directory laid out as ``<cache_dir>/<owner>/<repo>`` and, when refresh
is enabled, reset to the tip of the base branch before every use.
"""

import shutil
from collections.abc import Callable
from pathlib import Path

import structlog

from repo_polisher.config.settings import CheckoutConfig, PublishConfig
from repo_polisher.enums import ProjectSource
from repo_polisher.exceptions import CheckoutError, CommandError, ConfigurationError
from repo_polisher.git.cli import GitCli
from repo_polisher.git.discovery import GitDiscovery
from repo_polisher.git.exceptions import GitDiscoveryError, InvalidGitUrlError
from repo_polisher.git.parser import parse_remote_url
from repo_polisher.models.domain import Project

log = structlog.get_logger(__name__)

GitFactory = Callable[[Path], GitCli]


class CheckoutProvider:
    """Hand out working checkouts for projects."""

    def __init__(
        self,
        config: CheckoutConfig | None = None,
        publish_config: PublishConfig | None = None,
        git_factory: GitFactory | None = None,
    ) -> None:
        self.config = config or CheckoutConfig()
        self.publish_config = publish_config or PublishConfig()
        self._git_factory = git_factory or self._default_git

    def _default_git(self, cwd: Path) -> GitCli:
        return GitCli(
            cwd,
            timeout=self.publish_config.command_timeout,
            network_timeout=self.config.clone_timeout,
        )

    async def resolve(self, project: Project, base_branch: str | None = None) -> Path:
        """Return the root of the working tree for ``project``.

        Local projects must have a GitHub remote; the publisher resolves the
        upstream repository from the checkout's ``origin`` itself.

        Raises:
            CheckoutError: If the working tree cannot be produced
            ConfigurationError: If the project lacks the data to locate it
        """
        if project.source == ProjectSource.LOCAL:
            return self._resolve_local(project)
        return await self._resolve_github(project, base_branch or self.publish_config.base_branch)

    def cache_path(self, owner: str, repo: str) -> Path:
        return Path(self.config.cache_dir).expanduser() / owner / repo

    def _resolve_local(self, project: Project) -> Path:
        if not project.local_path:
            raise ConfigurationError(f"Local project {project.id} has no path")

        path = Path(project.local_path).expanduser()
        if not path.is_dir():
            raise CheckoutError(f"Local project path does not exist: {path}")

        remote_url = project.local_git_remote
        if not remote_url:
            try:
                remote_url = GitDiscovery(path).origin_url()
            except GitDiscoveryError as e:
                raise ConfigurationError(f"Cannot determine GitHub remote for {path}: {e.message}") from e

        try:
            slug = parse_remote_url(remote_url)
        except InvalidGitUrlError as e:
            raise ConfigurationError(f"Remote is not a GitHub repository: {remote_url}") from e

        log.debug("local_checkout_resolved", path=str(path), repo=slug.full_name)
        return path

    async def _resolve_github(self, project: Project, base_branch: str) -> Path:
        if not (project.github_owner and project.github_repo and project.github_url):
            raise ConfigurationError(f"GitHub project {project.id} is missing owner, repo or URL")

        path = self.cache_path(project.github_owner, project.github_repo)

        if path.exists() and not path.is_dir():
            log.warning("cache_path_not_directory", path=str(path))
            path.unlink()

        if not path.is_dir():
            await self._clone(project.github_url, path)
        elif self.config.refresh:
            await self._refresh(path, base_branch)

        return path

    async def _clone(self, url: str, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        git = self._git_factory(path.parent)
        try:
            await git.clone(url, path, depth=self.config.clone_depth)
        except CommandError as e:
            # A concurrent clone may have won the race.
            if path.is_dir() and (path / ".git").exists():
                log.warning("clone_failed_but_present", path=str(path), error=e.message)
                return
            if path.exists():
                shutil.rmtree(path, ignore_errors=True)
            raise CheckoutError(f"Failed to clone {url}: {e.message}") from e

        log.info("repository_cloned", url=url, path=str(path))

    async def _refresh(self, path: Path, base_branch: str) -> None:
        git = self._git_factory(path)
        try:
            await git.fetch("origin", base_branch, depth=self.config.clone_depth)
            await git.checkout_force(base_branch, "FETCH_HEAD")
            await git.clean()
        except CommandError as e:
            log.warning("cache_refresh_failed", path=str(path), error=e.message)
            return

        log.info("cache_refreshed", path=str(path), branch=base_branch)
