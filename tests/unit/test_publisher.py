"""Tests for the pull request publisher and its fork fallback."""

from unittest.mock import AsyncMock

import pytest

from repo_polisher.config.settings import PublishConfig
from repo_polisher.engine.publisher import FORK_REMOTE, UPSTREAM_REMOTE, PullRequestPublisher
from repo_polisher.enums import FailureKind, PublishStage
from repo_polisher.exceptions import CommandFailedError, CommandTimeoutError, PublishError
from repo_polisher.git.cli import GitCli
from repo_polisher.hosting.gh_cli import GhCli

PERMISSION_DENIED = "remote: Permission to octo/hello.git denied to me.\nfatal: unable to access"


@pytest.fixture
def git(make_result):
    git = AsyncMock(spec=GitCli)
    git.get_remote_url.return_value = "git@github.com:octo/hello.git"
    git.push.return_value = make_result("git", "push", "-u", "origin")
    return git


@pytest.fixture
def gh(make_result):
    gh = AsyncMock(spec=GhCli)
    gh.current_user.return_value = "me"
    gh.fork_repo.return_value = True
    gh.create_pull_request.return_value = make_result(
        "gh", "pr", "create", stdout="https://github.com/octo/hello/pull/42\n"
    )
    return gh


@pytest.fixture
def publisher(git, gh):
    return PullRequestPublisher(gh, PublishConfig(attribution="Generated by Tests"), git_factory=lambda root: git)


@pytest.mark.asyncio
async def test_direct_push_success(publisher, git, gh, checkout_dir, sample_draft) -> None:
    result = await publisher.publish(checkout_dir, sample_draft)

    assert result.success
    assert result.pr_url == "https://github.com/octo/hello/pull/42"
    assert result.pr_number == 42
    assert result.head == sample_draft.branch
    assert not result.pushed_via_fork
    assert result.stage is PublishStage.DONE

    git.checkout_new_branch.assert_awaited_once_with(sample_draft.branch)
    git.stage_all.assert_awaited_once()
    git.commit.assert_awaited_once_with(sample_draft.title, "Generated by Tests")
    git.push.assert_awaited_once_with(UPSTREAM_REMOTE, sample_draft.branch)
    gh.fork_repo.assert_not_called()

    kwargs = gh.create_pull_request.call_args.kwargs
    assert gh.create_pull_request.call_args.args[0].full_name == "octo/hello"
    assert kwargs["head"] is None
    assert kwargs["base"] == "main"
    assert kwargs["title"] == sample_draft.title
    assert kwargs["body"] == sample_draft.body


@pytest.mark.asyncio
async def test_permission_denied_falls_back_to_fork(publisher, git, gh, make_result, checkout_dir, sample_draft) -> None:
    git.push.side_effect = [
        make_result("git", "push", returncode=128, stderr=PERMISSION_DENIED),
        make_result("git", "push"),
    ]

    result = await publisher.publish(checkout_dir, sample_draft)

    assert result.success
    assert result.pushed_via_fork
    assert result.head == f"me:{sample_draft.branch}"
    assert [call.args for call in git.push.call_args_list] == [
        (UPSTREAM_REMOTE, sample_draft.branch),
        (FORK_REMOTE, sample_draft.branch),
    ]
    gh.fork_repo.assert_awaited_once()
    gh.current_user.assert_awaited_once_with(cwd=checkout_dir, host="github.com")
    git.ensure_remote.assert_awaited_once_with(FORK_REMOTE, "https://github.com/me/hello.git")
    assert gh.create_pull_request.call_args.kwargs["head"] == f"me:{sample_draft.branch}"


@pytest.mark.asyncio
async def test_existing_fork_is_reused(publisher, git, gh, make_result, checkout_dir, sample_draft) -> None:
    gh.fork_repo.return_value = False
    git.push.side_effect = [
        make_result("git", "push", returncode=128, stderr="The requested URL returned error: 403"),
        make_result("git", "push"),
    ]

    result = await publisher.publish(checkout_dir, sample_draft)

    assert result.success
    assert result.pushed_via_fork


@pytest.mark.asyncio
async def test_other_push_failure_does_not_fork(publisher, git, gh, make_result, checkout_dir, sample_draft) -> None:
    git.push.return_value = make_result("git", "push", returncode=1, stderr="fatal: the remote end hung up")

    with pytest.raises(PublishError) as exc_info:
        await publisher.publish(checkout_dir, sample_draft)

    assert exc_info.value.stage is PublishStage.PUSH_ATTEMPTED
    assert exc_info.value.kind is FailureKind.GENERIC
    assert "remote end hung up" in exc_info.value.message
    gh.current_user.assert_not_called()
    gh.fork_repo.assert_not_called()
    gh.create_pull_request.assert_not_called()


@pytest.mark.asyncio
async def test_fork_push_failure_reports_original_error(
    publisher, git, gh, make_result, checkout_dir, sample_draft
) -> None:
    git.push.side_effect = [
        make_result("git", "push", returncode=128, stderr=PERMISSION_DENIED),
        make_result("git", "push", returncode=128, stderr="fork push rejected"),
    ]

    with pytest.raises(PublishError) as exc_info:
        await publisher.publish(checkout_dir, sample_draft)

    assert "Permission to octo/hello.git denied" in exc_info.value.message
    assert exc_info.value.stage is PublishStage.FORK_RESOLVED
    assert git.push.await_count == 2
    gh.create_pull_request.assert_not_called()


@pytest.mark.asyncio
async def test_fork_creation_failure_is_fatal(publisher, git, gh, make_result, checkout_dir, sample_draft) -> None:
    git.push.return_value = make_result("git", "push", returncode=128, stderr=PERMISSION_DENIED)
    gh.fork_repo.side_effect = CommandFailedError(make_result("gh", "repo", "fork", returncode=1, stderr="HTTP 500"))

    with pytest.raises(PublishError, match="Fork fallback failed"):
        await publisher.publish(checkout_dir, sample_draft)

    assert git.push.await_count == 1


@pytest.mark.asyncio
async def test_pr_creation_failure_is_partial(publisher, gh, make_result, checkout_dir, sample_draft) -> None:
    gh.create_pull_request.return_value = make_result(
        "gh", "pr", "create", returncode=1, stderr="GraphQL: No commits between main and fix/typos"
    )

    result = await publisher.publish(checkout_dir, sample_draft)

    assert not result.success
    assert result.error == "GraphQL: No commits between main and fix/typos"
    assert result.pr_url is None
    assert result.stage is PublishStage.ERROR
    assert result.head == sample_draft.branch


@pytest.mark.asyncio
async def test_pr_creation_timeout_is_partial(publisher, gh, checkout_dir, sample_draft) -> None:
    gh.create_pull_request.side_effect = CommandTimeoutError(("gh", "pr", "create"), 300)

    result = await publisher.publish(checkout_dir, sample_draft)

    assert not result.success
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_pr_url_read_from_stderr(publisher, gh, make_result, checkout_dir, sample_draft) -> None:
    gh.create_pull_request.return_value = make_result(
        "gh", "pr", "create", stderr="Warning: 1 uncommitted change\nhttps://github.com/octo/hello/pull/7"
    )

    result = await publisher.publish(checkout_dir, sample_draft)

    assert result.pr_number == 7


@pytest.mark.asyncio
async def test_commit_failure_is_fatal(publisher, git, gh, make_result, checkout_dir, sample_draft) -> None:
    git.commit.side_effect = CommandFailedError(make_result("git", "commit", returncode=1, stdout="nothing to commit"))

    with pytest.raises(PublishError) as exc_info:
        await publisher.publish(checkout_dir, sample_draft)

    assert exc_info.value.stage is PublishStage.BRANCH_CREATED
    git.push.assert_not_called()


@pytest.mark.asyncio
async def test_unparsable_origin_is_fatal(publisher, git, checkout_dir, sample_draft) -> None:
    git.get_remote_url.return_value = "/srv/git/hello"

    with pytest.raises(PublishError, match="Cannot resolve upstream") as exc_info:
        await publisher.publish(checkout_dir, sample_draft)

    assert exc_info.value.stage is PublishStage.START
    git.checkout_new_branch.assert_not_called()
