"""Git command-line access, remote URL parsing and failure classification.

Example:
    >>> from repo_polisher.git import GitCli, parse_remote_url
    >>> git = GitCli("/path/to/checkout")
    >>> slug = parse_remote_url(await git.get_remote_url("origin"))
    >>> slug.full_name
    'owner/repo'
"""

from repo_polisher.git.classify import classify_failure, classify_message
from repo_polisher.git.cli import GitCli
from repo_polisher.git.discovery import GitDiscovery
from repo_polisher.git.exceptions import (
    GitDiscoveryError,
    InvalidGitUrlError,
    NoRemotesError,
    NotGitRepositoryError,
)
from repo_polisher.git.models import GitRemote, RepositorySlug
from repo_polisher.git.parser import parse_remote_url

__all__ = [
    "GitCli",
    "GitDiscovery",
    "parse_remote_url",
    "classify_failure",
    "classify_message",
    "GitRemote",
    "RepositorySlug",
    "GitDiscoveryError",
    "InvalidGitUrlError",
    "NoRemotesError",
    "NotGitRepositoryError",
]
