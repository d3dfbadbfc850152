"""
Domain models for repo-polisher.

Persisted records (projects, analysis tasks, issues, PR drafts) are Pydantic
models so they round-trip through the JSON store with validation. Outcomes
returned by the patch applier, publisher and coordinator are plain
dataclasses; they are never persisted.

Example:
    Creating an issue from detector output::

        issue = Issue(
            id="iss-1",
            task_id="task-1",
            project_id="proj-1",
            file_path="src/a.ts",
            line=10,
            column=5,
            message="Possible typo: teh",
            original="teh",
            suggestion="the",
            context="// teh quick fox",
        )
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from repo_polisher.enums import (
    AnalysisStatus,
    AnalysisType,
    DraftStatus,
    IssueStatus,
    ProjectSource,
    PublishStage,
    Severity,
    SubmitMethod,
)
from repo_polisher.exceptions import NoFixesAppliedError


def utcnow() -> datetime:
    return datetime.now(UTC)


class Project(BaseModel):
    """A tracked repository: either a GitHub remote or a local checkout."""

    id: str
    source: ProjectSource
    name: str
    description: str | None = None

    github_owner: str | None = None
    github_repo: str | None = None
    github_url: str | None = None
    """Clone URL of a GitHub project."""

    local_path: str | None = None
    local_git_remote: str | None = None
    """Remote URL recorded when the local project was registered."""

    issues_found: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class AnalysisTask(BaseModel):
    """One run of the detection engine over a project."""

    id: str
    project_id: str
    type: AnalysisType = AnalysisType.TYPO
    status: AnalysisStatus = AnalysisStatus.PENDING
    issues_found: int = 0
    files_scanned: int = 0
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class Issue(BaseModel):
    """One textual defect reported by the detection engine."""

    id: str
    task_id: str
    project_id: str
    type: AnalysisType = AnalysisType.TYPO
    file_path: str
    """Path relative to the repository root."""

    line: int
    """1-based line number at detection time. May be stale at publish time."""

    column: int = 1
    """1-based character offset within the line."""

    message: str = ""
    severity: Severity = Severity.WARNING
    original: str | None = None
    suggestion: str | None = None
    context: str | None = None
    """Full text of the line the issue was found on, used to relocate it."""

    confidence: float | None = None
    status: IssueStatus = IssueStatus.OPEN
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_fixable(self) -> bool:
        """Check if the issue carries everything needed for an auto-fix."""
        return bool(self.file_path and self.original and self.suggestion)


class PRFile(BaseModel):
    """Informational summary of one file touched by a draft."""

    path: str
    additions: int = 0
    deletions: int = 0
    patch: str = ""


class PRDraft(BaseModel):
    """A pull request prepared locally before it is published."""

    id: str
    project_id: str
    title: str
    body: str
    branch: str
    base_branch: str = "main"
    issue_ids: list[str] = Field(default_factory=list)
    files: list[PRFile] = Field(default_factory=list)
    status: DraftStatus = DraftStatus.DRAFT
    pr_url: str | None = None
    pr_number: int | None = None
    submit_method: SubmitMethod | None = None
    submitted_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


@dataclass
class ApplyResult:
    """Outcome of applying fixes to a checkout.

    Attributes:
        applied_issue_ids: Issues whose text was located and rewritten
        warnings: One human-readable reason per skipped issue or file
    """

    applied_issue_ids: set[str] = field(default_factory=set)
    warnings: list[str] = field(default_factory=list)

    def require_applied(self) -> "ApplyResult":
        """Raise NoFixesAppliedError when nothing was applied."""
        if not self.applied_issue_ids:
            raise NoFixesAppliedError(self.warnings)
        return self


@dataclass
class PublishResult:
    """Outcome of publishing a draft.

    ``success`` is False only for the partial failure where the branch was
    pushed but no pull request could be created; fatal failures raise.
    """

    success: bool
    pr_url: str | None = None
    pr_number: int | None = None
    error: str | None = None
    head: str | None = None
    pushed_via_fork: bool = False
    stage: PublishStage = PublishStage.START


@dataclass
class SubmitOutcome:
    """Result of submitting a draft, suitable for direct display."""

    success: bool
    message: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    applied_issue_ids: list[str] = field(default_factory=list)
    reopened_issue_ids: list[str] = field(default_factory=list)
