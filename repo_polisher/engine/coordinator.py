"""
Draft lifecycle and submission coordination.

The SubmissionCoordinator is the only component that changes issue and draft
status. The patch applier and publisher return outcomes; the coordinator
writes to the store only after observing a definitive one:

    create_draft   open issues       -> included
    delete_draft   included issues   -> open
    submit_draft   applied issues    -> fixed
                   unapplied issues  -> open
                   draft             -> submitted

Any exception raised while resolving the checkout, applying fixes or
publishing leaves the store untouched, so the draft can be resubmitted.
"""

import asyncio
import time
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from repo_polisher.config.settings import PolisherSettings
from repo_polisher.engine.checkout import CheckoutProvider
from repo_polisher.engine.patch_applier import PatchApplier
from repo_polisher.engine.publisher import PullRequestPublisher
from repo_polisher.enums import AnalysisStatus, DraftStatus, IssueStatus, SubmitMethod
from repo_polisher.exceptions import ConfigurationError, DraftNotFoundError, ProjectNotFoundError
from repo_polisher.models.domain import AnalysisTask, Issue, PRDraft, PRFile, Project, SubmitOutcome, utcnow
from repo_polisher.store.base import PolisherStore

log = structlog.get_logger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def default_title(issue_count: int) -> str:
    return f"fix: correct {issue_count} typo(s) in codebase"


def default_body(issues: Sequence[Issue], limit: int, attribution: str) -> str:
    """Render the Markdown body listing the changes of a draft."""
    lines = ["## Summary", "", f"This PR fixes {len(issues)} typo(s) found in the codebase.", "", "## Changes", ""]
    for issue in issues[:limit]:
        lines.append(f"- `{issue.file_path}:{issue.line}`: `{issue.original}` → `{issue.suggestion}`")
    if len(issues) > limit:
        lines.append(f"- ... and {len(issues) - limit} more")
    lines.extend(["", "---", f"*{attribution}*"])
    return "\n".join(lines)


def summarize_files(issues: Iterable[Issue]) -> list[PRFile]:
    """Count one changed line per issue, grouped by file."""
    counts: dict[str, int] = {}
    for issue in issues:
        counts[issue.file_path] = counts.get(issue.file_path, 0) + 1
    return [PRFile(path=path, additions=count, deletions=count) for path, count in sorted(counts.items())]


class SubmissionCoordinator:
    """Own every issue and draft status transition.

    Attributes:
        store: Persistence backend
        checkouts: Provider of working checkouts
        publisher: Branch/commit/push/PR publisher
        applier: Patch applier used on the checkout
        settings: Application settings
    """

    def __init__(
        self,
        store: PolisherStore,
        checkouts: CheckoutProvider,
        publisher: PullRequestPublisher,
        settings: PolisherSettings | None = None,
        applier: PatchApplier | None = None,
    ) -> None:
        self.store = store
        self.checkouts = checkouts
        self.publisher = publisher
        self.settings = settings or PolisherSettings()
        self.applier = applier or PatchApplier()
        # Serializes draft selection, edits and submissions within a project
        self._project_locks: dict[str, asyncio.Lock] = {}

    def _project_lock(self, project_id: str) -> asyncio.Lock:
        if project_id not in self._project_locks:
            self._project_locks[project_id] = asyncio.Lock()
        return self._project_locks[project_id]

    async def _require_draft(self, draft_id: str) -> PRDraft:
        draft = await self.store.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    async def _require_project(self, project_id: str) -> Project:
        project = await self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def import_issues(self, project_id: str, findings: Sequence[dict[str, Any]]) -> AnalysisTask:
        """Record detector findings as open issues under a new analysis task.

        Args:
            project_id: Project the findings belong to
            findings: Issue fields as emitted by the detection engine; ``id``
                is generated when missing

        Raises:
            ProjectNotFoundError: If the project does not exist
            ConfigurationError: If a finding is not a valid issue
        """
        project = await self._require_project(project_id)
        task = AnalysisTask(id=new_id(), project_id=project.id, status=AnalysisStatus.RUNNING)

        issues = []
        for finding in findings:
            data = {"id": new_id(), **finding, "task_id": task.id, "project_id": project.id}
            data["status"] = IssueStatus.OPEN
            try:
                issues.append(Issue.model_validate(data))
            except ValueError as e:
                raise ConfigurationError(f"Invalid finding: {e}") from e

        await self.store.save_issues(issues)

        task.status = AnalysisStatus.COMPLETED
        task.issues_found = len(issues)
        task.files_scanned = len({issue.file_path for issue in issues})
        task.completed_at = utcnow()
        await self.store.save_task(task)

        project.issues_found += len(issues)
        project.updated_at = utcnow()
        await self.store.save_project(project)

        log.info("issues_imported", project_id=project.id, task_id=task.id, count=len(issues))
        return task

    async def create_draft(
        self,
        project_id: str,
        issue_ids: Sequence[str],
        title: str | None = None,
        body: str | None = None,
    ) -> PRDraft:
        """Create a draft from the open issues among ``issue_ids``.

        The draft keeps the issues in the order they were selected. Selection
        and the move to ``included`` run under the project lock, so an issue
        can only be picked up by one draft.

        Raises:
            ProjectNotFoundError: If the project does not exist
            ConfigurationError: If none of the ids is an open issue of the project
        """
        project = await self._require_project(project_id)
        async with self._project_lock(project.id):
            return await self._create_draft(project, issue_ids, title, body)

    async def _create_draft(
        self,
        project: Project,
        issue_ids: Sequence[str],
        title: str | None,
        body: str | None,
    ) -> PRDraft:
        candidates = await self.store.list_issues(project_id=project.id, status=IssueStatus.OPEN, issue_ids=issue_ids)
        if not candidates:
            raise ConfigurationError("No open issues selected for this draft.")

        position: dict[str, int] = {}
        for index, issue_id in enumerate(issue_ids):
            position.setdefault(issue_id, index)
        candidates.sort(key=lambda issue: position[issue.id])

        publish = self.settings.publish
        draft = PRDraft(
            id=new_id(),
            project_id=project.id,
            title=title or default_title(len(candidates)),
            body=body or default_body(candidates, publish.body_issue_limit, publish.attribution),
            branch=f"{publish.branch_prefix}-{int(time.time() * 1000)}",
            base_branch=publish.base_branch,
            issue_ids=[issue.id for issue in candidates],
            files=summarize_files(candidates),
        )
        await self.store.save_draft(draft)
        await self.store.set_issue_status(draft.issue_ids, IssueStatus.INCLUDED)

        log.info("draft_created", draft_id=draft.id, project_id=project.id, issues=len(draft.issue_ids))
        return draft

    async def get_draft(self, draft_id: str) -> PRDraft:
        return await self._require_draft(draft_id)

    async def list_drafts(self, project_id: str | None = None) -> list[PRDraft]:
        return await self.store.list_drafts(project_id)

    async def update_draft(
        self,
        draft_id: str,
        title: str | None = None,
        body: str | None = None,
        status: DraftStatus | None = None,
    ) -> PRDraft:
        """Edit a draft that has not been submitted yet.

        Raises:
            DraftNotFoundError: If the draft does not exist
            ConfigurationError: If the draft is no longer editable or the
                requested status is not draft or ready
        """
        if status is not None and not status.is_editable:
            raise ConfigurationError(f"Cannot set draft status to {status}; use submit instead.")

        draft = await self._require_draft(draft_id)
        async with self._project_lock(draft.project_id):
            draft = await self._require_draft(draft_id)
            if not draft.status.is_editable:
                raise ConfigurationError(f"Draft {draft_id} is {draft.status} and can no longer be edited.")

            if title is not None:
                draft.title = title
            if body is not None:
                draft.body = body
            if status is not None:
                draft.status = status

            await self.store.save_draft(draft)
        log.info("draft_updated", draft_id=draft.id, status=str(draft.status))
        return draft

    async def delete_draft(self, draft_id: str) -> list[str]:
        """Delete a draft and return its still-included issues to open.

        Returns:
            Ids of the issues that were reopened.
        """
        draft = await self._require_draft(draft_id)
        async with self._project_lock(draft.project_id):
            draft = await self._require_draft(draft_id)
            included = await self.store.list_issues(issue_ids=draft.issue_ids, status=IssueStatus.INCLUDED)
            reopened = await self.store.set_issue_status([issue.id for issue in included], IssueStatus.OPEN)
            await self.store.delete_draft(draft.id)

        log.info("draft_deleted", draft_id=draft.id, reopened=len(reopened))
        return reopened

    async def submit_draft(self, draft_id: str, method: SubmitMethod = SubmitMethod.GH_CLI) -> SubmitOutcome:
        """Submit a draft as a pull request, or mark it submitted locally.

        Args:
            draft_id: Draft to submit
            method: ``gh-cli`` publishes through git and gh; ``local`` only
                records that the user submitted the changes themselves

        Returns:
            SubmitOutcome. ``success`` is False when the branch was pushed but
            the pull request could not be created; nothing is persisted then.

        Raises:
            DraftNotFoundError: If the draft does not exist
            ProjectNotFoundError: If the owning project does not exist
            ConfigurationError: If the draft was already submitted or nothing
                could be applied
            CheckoutError: If no working checkout could be produced
            PublishError: On fatal publish failures
        """
        method = SubmitMethod(method)
        draft = await self._require_draft(draft_id)
        project = await self._require_project(draft.project_id)

        async with self._project_lock(project.id):
            # Re-read: another submission may have finished while we waited.
            draft = await self._require_draft(draft_id)
            if draft.status == DraftStatus.SUBMITTED:
                raise ConfigurationError(f"Draft {draft_id} has already been submitted.")

            if method == SubmitMethod.LOCAL:
                self._mark_submitted(draft, method)
                await self.store.save_draft(draft)
                log.info("draft_submitted", draft_id=draft.id, method=str(method))
                return SubmitOutcome(success=True, message="Draft marked as submitted.")

            return await self._publish_draft(project, draft)

    async def _publish_draft(self, project: Project, draft: PRDraft) -> SubmitOutcome:
        checkout_root = await self.checkouts.resolve(project, draft.base_branch)
        issues = await self.store.list_issues(issue_ids=draft.issue_ids)

        applied = (await self.applier.apply(checkout_root, issues)).require_applied()
        result = await self.publisher.publish(checkout_root, draft)

        if not result.success:
            log.warning("draft_submit_partial", draft_id=draft.id, error=result.error)
            return SubmitOutcome(
                success=False,
                message="Branch pushed but the pull request could not be created.",
                error=result.error,
                warnings=applied.warnings,
            )

        self._mark_submitted(draft, SubmitMethod.GH_CLI)
        draft.pr_url = result.pr_url
        draft.pr_number = result.pr_number
        await self.store.save_draft(draft)

        fixed = [issue_id for issue_id in draft.issue_ids if issue_id in applied.applied_issue_ids]
        unapplied = [issue_id for issue_id in draft.issue_ids if issue_id not in applied.applied_issue_ids]
        await self.store.set_issue_status(fixed, IssueStatus.FIXED)
        reopened = await self.store.set_issue_status(unapplied, IssueStatus.OPEN)

        log.info(
            "draft_submitted",
            draft_id=draft.id,
            method=str(SubmitMethod.GH_CLI),
            pr_url=result.pr_url,
            fixed=len(fixed),
            reopened=len(reopened),
        )
        return SubmitOutcome(
            success=True,
            message=f"Pull request created: {result.pr_url}" if result.pr_url else "Pull request created.",
            pr_url=result.pr_url,
            pr_number=result.pr_number,
            warnings=applied.warnings,
            applied_issue_ids=fixed,
            reopened_issue_ids=reopened,
        )

    @staticmethod
    def _mark_submitted(draft: PRDraft, method: SubmitMethod) -> None:
        now = utcnow()
        draft.status = DraftStatus.SUBMITTED
        draft.submit_method = method
        draft.submitted_at = now
        draft.updated_at = now
