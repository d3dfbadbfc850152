"""Remote discovery for local checkouts.

Local projects may be registered without a stored remote URL. GitDiscovery
reads the configured remotes straight from the repository with GitPython so
the checkout provider can still resolve the upstream owner/repo.

Example:
    >>> from repo_polisher.git.discovery import GitDiscovery
    >>> discovery = GitDiscovery("/path/to/checkout")
    >>> discovery.origin_url()
    'git@github.com:owner/repo.git'
"""

from pathlib import Path

import git
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from repo_polisher.git.exceptions import NoRemotesError, NotGitRepositoryError
from repo_polisher.git.models import GitRemote
from repo_polisher.git.parser import url_type


class GitDiscovery:
    """Reads remote configuration from a local Git repository.

    The git.Repo object is opened lazily on first use and cached.

    Attributes:
        repo_path: Resolved absolute path to the repository.
    """

    PREFERRED_REMOTES = ["origin", "upstream"]

    def __init__(self, repo_path: str | Path = ".") -> None:
        self.repo_path = Path(repo_path).resolve()
        self._repo: git.Repo | None = None

    def _get_repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise NotGitRepositoryError(str(self.repo_path)) from e

        return self._repo

    def list_remotes(self) -> list[GitRemote]:
        """List all configured Git remotes.

        Raises:
            NotGitRepositoryError: If the path is not within a Git repository.
        """
        repo = self._get_repo()
        return [GitRemote(name=remote.name, url=remote.url, url_type=url_type(remote.url)) for remote in repo.remotes]

    def get_remote(self) -> GitRemote:
        """Pick the upstream remote: origin, then upstream, then the first one.

        Raises:
            NotGitRepositoryError: If the path is not within a Git repository.
            NoRemotesError: If no remotes are configured.
        """
        remotes = self.list_remotes()
        if not remotes:
            raise NoRemotesError()

        for preferred in self.PREFERRED_REMOTES:
            for remote in remotes:
                if remote.name == preferred:
                    return remote

        return remotes[0]

    def origin_url(self) -> str:
        """Return the URL of the preferred remote."""
        return self.get_remote().url
