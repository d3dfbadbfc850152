"""Enumerations for repo-polisher records and publishing."""

from enum import Enum


class ProjectSource(str, Enum):
    """Where a tracked project lives."""

    GITHUB = "github"
    LOCAL = "local"

    def __str__(self) -> str:
        return self.value


class AnalysisType(str, Enum):
    """Kind of analysis that produced an issue."""

    TYPO = "typo"
    LINT = "lint"
    AI = "ai"

    def __str__(self) -> str:
        return self.value


class AnalysisStatus(str, Enum):
    """Lifecycle of a detection run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class IssueStatus(str, Enum):
    """Lifecycle of a detected issue.

    open -> included (selected into a draft) -> fixed (applied and published).
    A failed application or a deleted draft returns the issue to open.
    """

    OPEN = "open"
    INCLUDED = "included"
    IGNORED = "ignored"
    FIXED = "fixed"

    def __str__(self) -> str:
        return self.value


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __str__(self) -> str:
        return self.value


class DraftStatus(str, Enum):
    """Lifecycle of a pull-request draft."""

    DRAFT = "draft"
    READY = "ready"
    SUBMITTED = "submitted"
    MERGED = "merged"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_editable(self) -> bool:
        """Check if title, body and status may still change."""
        return self in (DraftStatus.DRAFT, DraftStatus.READY)


class SubmitMethod(str, Enum):
    """How a draft is submitted.

    - gh-cli: apply fixes in a checkout and open a PR through the gh CLI
    - local: the user applied the changes themselves; only record submission
    """

    GH_CLI = "gh-cli"
    LOCAL = "local"

    def __str__(self) -> str:
        return self.value


class FailureKind(str, Enum):
    """Closed classification of subprocess failures."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    GENERIC = "generic"

    def __str__(self) -> str:
        return self.value


class PublishStage(str, Enum):
    """Stages of a single publish attempt.

    START -> BRANCH_CREATED -> COMMITTED -> PUSH_ATTEMPTED
    -> (PUSHED_DIRECT | FORK_RESOLVED -> PUSHED_VIA_FORK)
    -> PR_CREATED -> DONE, with ERROR reachable from any stage.
    """

    START = "start"
    BRANCH_CREATED = "branch_created"
    COMMITTED = "committed"
    PUSH_ATTEMPTED = "push_attempted"
    PUSHED_DIRECT = "pushed_direct"
    FORK_RESOLVED = "fork_resolved"
    PUSHED_VIA_FORK = "pushed_via_fork"
    PR_CREATED = "pr_created"
    DONE = "done"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value
