"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from repo_polisher.config.settings import (
    CheckoutConfig,
    GhCliConfig,
    PolisherSettings,
    PublishConfig,
    StoreConfig,
)
from repo_polisher.enums import IssueStatus, ProjectSource
from repo_polisher.models.domain import Issue, PRDraft, Project
from repo_polisher.store.json_store import JsonStore
from repo_polisher.utils.async_subprocess import CommandResult


@pytest.fixture
def settings(tmp_path: Path) -> PolisherSettings:
    """Settings rooted in a temporary directory."""
    return PolisherSettings(
        gh=GhCliConfig(resolve_via_shell=False),
        checkout=CheckoutConfig(cache_dir=tmp_path / "cache"),
        store=StoreConfig(data_dir=tmp_path / "data"),
        publish=PublishConfig(),
    )


@pytest.fixture
def store(tmp_path: Path) -> JsonStore:
    """JsonStore with a temporary data directory."""
    return JsonStore(tmp_path / "data")


@pytest.fixture
def checkout_dir(tmp_path: Path) -> Path:
    """Empty working checkout directory."""
    path = tmp_path / "checkout"
    path.mkdir()
    return path


@pytest.fixture
def make_issue():
    """Factory for fixable issues with sensible defaults."""

    def _make(
        issue_id: str = "iss-1",
        file_path: str = "src/a.ts",
        line: int = 1,
        column: int = 1,
        original: str | None = "teh",
        suggestion: str | None = "the",
        context: str | None = None,
        status: IssueStatus = IssueStatus.OPEN,
        project_id: str = "proj-1",
    ) -> Issue:
        return Issue(
            id=issue_id,
            task_id="task-1",
            project_id=project_id,
            file_path=file_path,
            line=line,
            column=column,
            message=f"Possible typo: {original}",
            original=original,
            suggestion=suggestion,
            context=context,
            status=status,
        )

    return _make


@pytest.fixture
def local_project(checkout_dir: Path) -> Project:
    """Local project pointing at the temporary checkout."""
    return Project(
        id="proj-1",
        source=ProjectSource.LOCAL,
        name="checkout",
        local_path=str(checkout_dir),
        local_git_remote="git@github.com:octo/hello.git",
    )


@pytest.fixture
def github_project() -> Project:
    """GitHub project tracked by clone URL."""
    return Project(
        id="proj-gh",
        source=ProjectSource.GITHUB,
        name="octo/hello",
        github_owner="octo",
        github_repo="hello",
        github_url="https://github.com/octo/hello.git",
    )


@pytest.fixture
def sample_draft() -> PRDraft:
    """Draft covering two issues."""
    return PRDraft(
        id="draft-1",
        project_id="proj-1",
        title="fix: correct 2 typo(s) in codebase",
        body="Fixes typos.",
        branch="fix/typos-1700000000000",
        issue_ids=["iss-1", "iss-2"],
    )


def command_result(*args: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
    """Build a CommandResult for mocked subprocess calls."""
    return CommandResult(args=tuple(args), stdout=stdout, stderr=stderr, returncode=returncode)


@pytest.fixture
def make_result():
    """Factory fixture for CommandResult objects."""
    return command_result
