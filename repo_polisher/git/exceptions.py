"""Git discovery exceptions.

All exceptions inherit from GitDiscoveryError and carry an optional hint that
is appended to the message when printed.

Example:
    >>> from repo_polisher.git.exceptions import NotGitRepositoryError
    >>> raise NotGitRepositoryError("/tmp/not-a-repo")
    Traceback (most recent call last):
        ...
    NotGitRepositoryError: Not a Git repository: /tmp/not-a-repo

    Hint: Run 'git init' or point the project at a Git checkout.
"""

from repo_polisher.exceptions import GitOperationError


class GitDiscoveryError(GitOperationError):
    """Base exception for Git discovery errors.

    Attributes:
        message: Error message
        hint: Optional hint for resolution
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class NotGitRepositoryError(GitDiscoveryError):
    """Raised when a directory is not inside a Git repository."""

    def __init__(self, path: str) -> None:
        super().__init__(
            message=f"Not a Git repository: {path}",
            hint="Run 'git init' or point the project at a Git checkout.",
        )
        self.path = path


class NoRemotesError(GitDiscoveryError):
    """Raised when a repository has no remotes configured."""

    def __init__(self) -> None:
        super().__init__(
            message="No Git remotes configured in this repository",
            hint="Add a remote with: git remote add origin <url>",
        )


class InvalidGitUrlError(GitDiscoveryError):
    """Raised when a remote URL cannot be parsed into owner/repo.

    Attributes:
        url: The invalid URL
    """

    def __init__(self, url: str, reason: str | None = None) -> None:
        msg = f"Invalid Git URL format: {url}"
        if reason:
            msg += f" ({reason})"

        super().__init__(
            message=msg,
            hint=(
                "Expected formats:\n"
                "  - git@github.com:owner/repo.git\n"
                "  - https://github.com/owner/repo.git"
            ),
        )
        self.url = url
