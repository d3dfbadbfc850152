"""Git repository data models.

Example:
    >>> from repo_polisher.git.models import RepositorySlug
    >>> slug = RepositorySlug(host="github.com", owner="octo", repo="hello")
    >>> slug.full_name
    'octo/hello'
    >>> slug.https_url_for("me")
    'https://github.com/me/hello.git'
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, field_validator

DEFAULT_HOST = "github.com"


@dataclass(frozen=True)
class GitRemote:
    """Represents a Git remote configuration.

    Attributes:
        name: Remote name (e.g., 'origin', 'fork')
        url: Raw URL from git config
        url_type: Whether SSH or HTTPS format
    """

    name: str
    url: str
    url_type: Literal["ssh", "https", "unknown"]


class RepositorySlug(BaseModel):
    """Hosting-service identity of a repository.

    Attributes:
        host: Hostname of the hosting service (e.g., github.com)
        owner: Repository owner/organization
        repo: Repository name (without .git suffix)
    """

    model_config = {"frozen": True}

    host: str = DEFAULT_HOST
    owner: str
    repo: str

    @field_validator("owner", "repo")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Owner and repo must not be empty")
        return v.strip()

    @field_validator("repo")
    @classmethod
    def validate_no_git_suffix(cls, v: str) -> str:
        return v.removesuffix(".git")

    @property
    def full_name(self) -> str:
        """Return owner/repo format."""
        return f"{self.owner}/{self.repo}"

    @property
    def gh_repo(self) -> str:
        """Return the repository argument for gh, qualified by host off github.com."""
        if self.host == DEFAULT_HOST:
            return self.full_name
        return f"{self.host}/{self.full_name}"

    def https_url_for(self, owner: str) -> str:
        """Build the HTTPS clone URL of this repository under another owner.

        Used for fork remotes: the fork keeps the repository name but lives
        under the authenticated user's account.
        """
        return f"https://{self.host}/{owner}/{self.repo}.git"
