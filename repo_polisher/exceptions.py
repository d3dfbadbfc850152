"""Custom exception hierarchy for repo-polisher.

Exception Hierarchy:
    RepoPolisherError (base)
    ├── ConfigurationError
    │   ├── DraftNotFoundError
    │   ├── ProjectNotFoundError
    │   ├── NothingToApplyError
    │   └── NoFixesAppliedError
    ├── GitOperationError
    │   ├── GitDiscoveryError (see repo_polisher.git.exceptions)
    │   └── CheckoutError
    ├── CommandError
    │   ├── CommandFailedError
    │   ├── CommandTimeoutError
    │   └── CommandNotFoundError
    ├── PublishError
    └── ExternalServiceError

Configuration errors are safe to retry after user action and never leave
partially written state behind. Publish and checkout errors abort a
submission before anything is persisted, so the draft stays resubmittable.

Example Usage:
    >>> from repo_polisher.exceptions import DraftNotFoundError
    >>> try:
    ...     await coordinator.submit_draft("missing")
    ... except DraftNotFoundError as e:
    ...     print(e.message)
    Draft not found: missing
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repo_polisher.enums import FailureKind, PublishStage
    from repo_polisher.utils.async_subprocess import CommandResult


class RepoPolisherError(Exception):
    """Base exception for all repo-polisher errors.

    Attributes:
        message: Human-readable error description, suitable for direct display
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(RepoPolisherError):
    """Invalid configuration or user input.

    Examples:
        - Configuration file not found or invalid
        - Draft or project not found
        - Nothing selected that can be applied
    """

    pass


class DraftNotFoundError(ConfigurationError):
    """The requested PR draft does not exist."""

    def __init__(self, draft_id: str) -> None:
        super().__init__(f"Draft not found: {draft_id}")
        self.draft_id = draft_id


class ProjectNotFoundError(ConfigurationError):
    """The project owning a draft does not exist."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class NothingToApplyError(ConfigurationError):
    """None of the selected issues carries an auto-fix."""

    pass


class NoFixesAppliedError(ConfigurationError):
    """Every fixable issue was skipped while patching the checkout.

    Attributes:
        warnings: Reasons collected for every skipped issue
    """

    def __init__(self, warnings: list[str] | None = None) -> None:
        self.warnings = list(warnings or [])
        message = "No fixes were applied; working tree is already clean."
        if self.warnings:
            message = f"{message} {self.warnings[0]}"
        super().__init__(message)


class GitOperationError(RepoPolisherError):
    """Git operation errors.

    Raised when a git command fails (clone, checkout, commit, remote
    handling) or repository state is invalid.
    """

    pass


class CheckoutError(GitOperationError):
    """A working checkout for a project could not be resolved."""

    pass


class CommandError(RepoPolisherError):
    """Base class for subprocess execution failures."""

    pass


class CommandFailedError(CommandError):
    """A subprocess exited with a non-zero status.

    Attributes:
        result: Captured output and exit code of the failed command
        kind: Classified failure kind
    """

    def __init__(self, result: CommandResult, kind: FailureKind | None = None) -> None:
        from repo_polisher.git.classify import classify_failure

        self.result = result
        self.kind = kind or classify_failure(result)
        detail = result.output.strip() or f"exit code {result.returncode}"
        super().__init__(f"Command '{result.display}' failed: {detail}")


class CommandTimeoutError(CommandError):
    """A subprocess exceeded its timeout and was killed."""

    def __init__(self, args: tuple[str, ...], timeout: float) -> None:
        self.args_ = args
        self.timeout = timeout
        super().__init__(f"Command '{' '.join(args)}' timed out after {timeout}s")


class CommandNotFoundError(CommandError):
    """The executable for a subprocess could not be found."""

    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(f"Executable not found: {executable}")


class PublishError(RepoPolisherError):
    """Fatal failure while publishing a draft.

    Attributes:
        stage: Last stage the publisher reached before failing
        kind: Classified failure kind of the underlying command, if any
    """

    def __init__(
        self,
        message: str,
        stage: PublishStage | None = None,
        kind: FailureKind | None = None,
    ) -> None:
        self.stage = stage
        self.kind = kind
        super().__init__(message)


class ExternalServiceError(RepoPolisherError):
    """The hosting CLI is unavailable or returned unusable output."""

    pass
