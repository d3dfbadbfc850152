"""Hosting-service access through the gh CLI."""

from repo_polisher.hosting.auth import AuthChecker, AuthStatus
from repo_polisher.hosting.gh_cli import GhCli, parse_pr_url
from repo_polisher.hosting.gh_env import GhEnvironment

__all__ = ["AuthChecker", "AuthStatus", "GhCli", "GhEnvironment", "parse_pr_url"]
