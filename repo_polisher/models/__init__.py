"""Domain models for repo-polisher.

Key Models:
    - Project: Tracked repository (GitHub remote or local path)
    - AnalysisTask: One detection run
    - Issue: Detected textual defect with an optional auto-fix
    - PRDraft: Pull request prepared locally

Outcomes:
    - ApplyResult, PublishResult, SubmitOutcome
"""

from repo_polisher.models.domain import (
    AnalysisTask,
    ApplyResult,
    Issue,
    PRDraft,
    PRFile,
    Project,
    PublishResult,
    SubmitOutcome,
)

__all__ = [
    "Project",
    "AnalysisTask",
    "Issue",
    "PRDraft",
    "PRFile",
    "ApplyResult",
    "PublishResult",
    "SubmitOutcome",
]
