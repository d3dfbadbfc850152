"""
Abstract persistence interface.

The coordinator and CLI only talk to a PolisherStore. The JSON store in
``repo_polisher.store.json_store`` is the bundled implementation; any other
backend only has to fulfill this contract.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from repo_polisher.enums import IssueStatus
from repo_polisher.models.domain import AnalysisTask, Issue, PRDraft, Project


class PolisherStore(ABC):
    """Abstract base class for persistence backends.

    All methods are async. Getters return None for unknown ids instead of
    raising; callers decide which missing record is an error.
    """

    @abstractmethod
    async def get_project(self, project_id: str) -> Project | None:
        pass

    @abstractmethod
    async def save_project(self, project: Project) -> Project:
        """Insert or replace a project."""
        pass

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        pass

    @abstractmethod
    async def get_task(self, task_id: str) -> AnalysisTask | None:
        pass

    @abstractmethod
    async def save_task(self, task: AnalysisTask) -> AnalysisTask:
        pass

    @abstractmethod
    async def get_issue(self, issue_id: str) -> Issue | None:
        pass

    @abstractmethod
    async def save_issues(self, issues: Iterable[Issue]) -> None:
        """Insert or replace issues in one write."""
        pass

    @abstractmethod
    async def list_issues(
        self,
        project_id: str | None = None,
        status: IssueStatus | None = None,
        issue_ids: Iterable[str] | None = None,
    ) -> list[Issue]:
        """List issues, optionally filtered.

        Args:
            project_id: Only issues of this project
            status: Only issues in this status
            issue_ids: Only issues with these ids

        Returns:
            Matching issues ordered by file path, then line.
        """
        pass

    @abstractmethod
    async def set_issue_status(self, issue_ids: Iterable[str], status: IssueStatus) -> list[str]:
        """Move issues to ``status``.

        Returns:
            Ids that were found and updated. Unknown ids are ignored.
        """
        pass

    @abstractmethod
    async def get_draft(self, draft_id: str) -> PRDraft | None:
        pass

    @abstractmethod
    async def save_draft(self, draft: PRDraft) -> PRDraft:
        pass

    @abstractmethod
    async def list_drafts(self, project_id: str | None = None) -> list[PRDraft]:
        """List drafts, newest first."""
        pass

    @abstractmethod
    async def delete_draft(self, draft_id: str) -> bool:
        """Remove a draft. Returns False when it did not exist."""
        pass
