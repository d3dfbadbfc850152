"""
JSON file persistence for projects, analysis tasks, issues and drafts.

Each table is one JSON document in the data directory, keyed by record id::

    data/
    ├── projects.json
    ├── tasks.json
    ├── issues.json
    └── drafts.json

Writes go to a ``.tmp`` file that is then renamed over the table file, so a
crash never leaves a half-written table. Each table has its own asyncio lock;
a read-modify-write of one table is serialized, different tables are not.

Example:
    >>> store = JsonStore("~/.repo-polisher/data")
    >>> await store.save_project(project)
    >>> await store.set_issue_status(["iss-1"], IssueStatus.FIXED)
    ['iss-1']
"""

import asyncio
import json
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

import aiofiles
import structlog
from pydantic import BaseModel, ValidationError

from repo_polisher.enums import IssueStatus
from repo_polisher.exceptions import ConfigurationError
from repo_polisher.models.domain import AnalysisTask, Issue, PRDraft, Project, utcnow
from repo_polisher.store.base import PolisherStore

log = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

Table = dict[str, dict[str, Any]]

PROJECTS = "projects"
TASKS = "tasks"
ISSUES = "issues"
DRAFTS = "drafts"


class JsonStore(PolisherStore):
    """PolisherStore backed by one JSON document per table.

    Attributes:
        data_dir: Directory holding the table files
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}
        self._locks_lock = asyncio.Lock()

    async def _get_lock(self, table: str) -> asyncio.Lock:
        async with self._locks_lock:
            if table not in self._locks:
                self._locks[table] = asyncio.Lock()
            return self._locks[table]

    def _table_path(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    async def _read_table(self, table: str) -> Table:
        """Read a table without locking. Caller must hold the table lock."""
        path = self._table_path(table)
        if not path.exists():
            return {}

        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Corrupt store table {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Corrupt store table {path}: expected an object")
        return data

    async def _write_table(self, table: str, data: Table) -> None:
        """Write a table atomically. Caller must hold the table lock."""
        path = self._table_path(table)
        tmp_path = path.with_suffix(".tmp")

        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))

        # Atomic rename - safe on POSIX when same filesystem
        tmp_path.replace(path)

    async def _load(self, table: str) -> Table:
        lock = await self._get_lock(table)
        async with lock:
            return await self._read_table(table)

    @asynccontextmanager
    async def _transaction(self, table: str) -> AsyncIterator[Table]:
        """Load a table, yield it for in-place changes and save it on success."""
        lock = await self._get_lock(table)
        async with lock:
            data = await self._read_table(table)
            try:
                yield data
            except Exception:
                log.error("store_transaction_failed", table=table)
                raise
            await self._write_table(table, data)

    @staticmethod
    def _parse(model: type[ModelT], raw: dict[str, Any] | None) -> ModelT | None:
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {model.__name__} record in store: {e}") from e

    async def _get(self, table: str, model: type[ModelT], record_id: str) -> ModelT | None:
        data = await self._load(table)
        return self._parse(model, data.get(record_id))

    async def _all(self, table: str, model: type[ModelT]) -> list[ModelT]:
        data = await self._load(table)
        return [record for raw in data.values() if (record := self._parse(model, raw)) is not None]

    async def _put(self, table: str, record_id: str, record: BaseModel) -> None:
        async with self._transaction(table) as data:
            data[record_id] = record.model_dump(mode="json")

    # Projects

    async def get_project(self, project_id: str) -> Project | None:
        return await self._get(PROJECTS, Project, project_id)

    async def save_project(self, project: Project) -> Project:
        await self._put(PROJECTS, project.id, project)
        return project

    async def list_projects(self) -> list[Project]:
        projects = await self._all(PROJECTS, Project)
        return sorted(projects, key=lambda p: p.created_at)

    # Analysis tasks

    async def get_task(self, task_id: str) -> AnalysisTask | None:
        return await self._get(TASKS, AnalysisTask, task_id)

    async def save_task(self, task: AnalysisTask) -> AnalysisTask:
        await self._put(TASKS, task.id, task)
        return task

    # Issues

    async def get_issue(self, issue_id: str) -> Issue | None:
        return await self._get(ISSUES, Issue, issue_id)

    async def save_issues(self, issues: Iterable[Issue]) -> None:
        async with self._transaction(ISSUES) as data:
            for issue in issues:
                data[issue.id] = issue.model_dump(mode="json")

    async def list_issues(
        self,
        project_id: str | None = None,
        status: IssueStatus | None = None,
        issue_ids: Iterable[str] | None = None,
    ) -> list[Issue]:
        wanted = set(issue_ids) if issue_ids is not None else None
        issues = [
            issue
            for issue in await self._all(ISSUES, Issue)
            if (project_id is None or issue.project_id == project_id)
            and (status is None or issue.status == status)
            and (wanted is None or issue.id in wanted)
        ]
        return sorted(issues, key=lambda i: (i.file_path, i.line, i.column))

    async def set_issue_status(self, issue_ids: Iterable[str], status: IssueStatus) -> list[str]:
        updated: list[str] = []
        async with self._transaction(ISSUES) as data:
            for issue_id in issue_ids:
                raw = data.get(issue_id)
                if raw is None:
                    continue
                raw["status"] = status.value
                updated.append(issue_id)

        log.debug("issue_status_updated", status=str(status), count=len(updated))
        return updated

    # Drafts

    async def get_draft(self, draft_id: str) -> PRDraft | None:
        return await self._get(DRAFTS, PRDraft, draft_id)

    async def save_draft(self, draft: PRDraft) -> PRDraft:
        draft.updated_at = utcnow()
        await self._put(DRAFTS, draft.id, draft)
        return draft

    async def list_drafts(self, project_id: str | None = None) -> list[PRDraft]:
        drafts = [d for d in await self._all(DRAFTS, PRDraft) if project_id is None or d.project_id == project_id]
        return sorted(drafts, key=lambda d: d.created_at, reverse=True)

    async def delete_draft(self, draft_id: str) -> bool:
        async with self._transaction(DRAFTS) as data:
            removed = data.pop(draft_id, None)
        return removed is not None
