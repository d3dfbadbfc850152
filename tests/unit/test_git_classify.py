"""Tests for failed command classification."""

import pytest

from repo_polisher.enums import FailureKind
from repo_polisher.exceptions import CommandFailedError
from repo_polisher.git.classify import classify_failure, classify_message
from repo_polisher.utils.async_subprocess import CommandResult


def command_result(*args: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=tuple(args), stdout=stdout, stderr=stderr, returncode=returncode)


class TestClassifyMessage:
    @pytest.mark.parametrize(
        "text",
        [
            "remote: Permission to octo/hello.git denied to someone.",
            "fatal: unable to access 'https://github.com/octo/hello.git/': The requested URL returned error: 403",
            "ERROR: Access denied",
        ],
    )
    def test_permission_denied(self, text: str) -> None:
        assert classify_message(text) is FailureKind.PERMISSION_DENIED

    @pytest.mark.parametrize(
        "text",
        ["remote: Repository not found.", "HTTP 404", "branch does not exist"],
    )
    def test_not_found(self, text: str) -> None:
        assert classify_message(text) is FailureKind.NOT_FOUND

    def test_generic(self) -> None:
        assert classify_message("fatal: the remote end hung up unexpectedly") is FailureKind.GENERIC

    def test_permission_checked_before_not_found(self) -> None:
        assert classify_message("403: resource not found") is FailureKind.PERMISSION_DENIED


class TestClassifyFailure:
    def test_successful_result_is_generic(self) -> None:
        assert classify_failure(command_result("git", "push")) is FailureKind.GENERIC

    def test_gh_auth_exit_code(self) -> None:
        result = command_result("/opt/homebrew/bin/gh", "repo", "fork", returncode=4, stderr="To get started...")

        assert classify_failure(result) is FailureKind.PERMISSION_DENIED

    def test_exit_code_four_from_git_uses_message(self) -> None:
        result = command_result("git", "push", returncode=4, stderr="something odd")

        assert classify_failure(result) is FailureKind.GENERIC

    def test_push_rejected_by_permissions(self) -> None:
        result = command_result(
            "git",
            "push",
            "-u",
            "origin",
            "fix/typos-1",
            returncode=128,
            stderr="remote: Permission to octo/hello.git denied to me.\nfatal: unable to access",
        )

        assert classify_failure(result) is FailureKind.PERMISSION_DENIED

    def test_command_failed_error_carries_kind(self) -> None:
        error = CommandFailedError(command_result("git", "fetch", returncode=128, stderr="Repository not found"))

        assert error.kind is FailureKind.NOT_FOUND
        assert error.message == "Command 'git fetch' failed: Repository not found"
