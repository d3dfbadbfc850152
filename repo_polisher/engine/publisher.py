"""Publish a patched checkout as a pull request.

One publish attempt walks a fixed sequence of stages:

    START -> BRANCH_CREATED -> COMMITTED -> PUSH_ATTEMPTED
          -> PUSHED_DIRECT
          -> FORK_RESOLVED -> PUSHED_VIA_FORK
          -> PR_CREATED -> DONE

Any failure before the push succeeds is fatal and raises PublishError with
the stage it happened in. A push rejected for lack of permission is retried
exactly once through a fork of the upstream repository. A failure to create
the pull request after a successful push is a partial failure: the result
ends in the ERROR stage and reports ``success=False`` with the raw CLI output.

Example:
    >>> publisher = PullRequestPublisher(GhCli(GhEnvironment.resolve()))
    >>> result = await publisher.publish(Path("/checkout"), draft)
    >>> result.pr_url
    'https://github.com/owner/repo/pull/42'
"""

from collections.abc import Callable
from pathlib import Path

import structlog

from repo_polisher.config.settings import PublishConfig
from repo_polisher.enums import FailureKind, PublishStage
from repo_polisher.exceptions import CommandError, CommandFailedError, ExternalServiceError, PublishError
from repo_polisher.git.classify import classify_failure
from repo_polisher.git.cli import GitCli
from repo_polisher.git.exceptions import InvalidGitUrlError
from repo_polisher.git.models import RepositorySlug
from repo_polisher.git.parser import parse_remote_url
from repo_polisher.hosting.gh_cli import GhCli, parse_pr_url
from repo_polisher.models.domain import PRDraft, PublishResult

log = structlog.get_logger(__name__)

UPSTREAM_REMOTE = "origin"
FORK_REMOTE = "fork"

GitFactory = Callable[[Path], GitCli]


class PullRequestPublisher:
    """Branch, commit, push and open a pull request for a draft.

    The publisher only drives git and gh; it never writes to the store.

    Attributes:
        gh: Hosting CLI wrapper
        config: Publishing configuration (attribution line, timeouts)
    """

    def __init__(
        self,
        gh: GhCli,
        config: PublishConfig | None = None,
        git_factory: GitFactory | None = None,
    ) -> None:
        self.gh = gh
        self.config = config or PublishConfig()
        self._git_factory = git_factory or self._default_git

    def _default_git(self, checkout_root: Path) -> GitCli:
        return GitCli(
            checkout_root,
            timeout=self.config.command_timeout,
            network_timeout=self.config.push_timeout,
        )

    async def publish(self, checkout_root: str | Path, draft: PRDraft) -> PublishResult:
        """Publish ``draft`` from the working tree at ``checkout_root``.

        Raises:
            PublishError: On any fatal failure up to and including the push.
        """
        root = Path(checkout_root)
        git = self._git_factory(root)
        with structlog.contextvars.bound_contextvars(draft_id=draft.id, branch=draft.branch):
            return await self._publish(git, root, draft)

    async def _publish(self, git: GitCli, root: Path, draft: PRDraft) -> PublishResult:
        stage = PublishStage.START

        try:
            upstream = await self._resolve_upstream(git)

            await git.checkout_new_branch(draft.branch)
            stage = PublishStage.BRANCH_CREATED
            log.info("branch_created")

            await git.stage_all()
            await git.commit(draft.title, self.config.attribution)
            stage = PublishStage.COMMITTED
            log.info("changes_committed")
        except CommandFailedError as e:
            log.error("publish_failed", stage=str(stage), kind=str(e.kind))
            raise PublishError(e.message, stage=stage, kind=e.kind) from e
        except CommandError as e:
            log.error("publish_failed", stage=str(stage))
            raise PublishError(e.message, stage=stage) from e

        head, pushed_via_fork = await self._push(git, root, upstream, draft.branch)
        stage = PublishStage.PUSHED_VIA_FORK if pushed_via_fork else PublishStage.PUSHED_DIRECT

        try:
            pr_output = await self.gh.create_pull_request(
                upstream,
                title=draft.title,
                body=draft.body,
                base=draft.base_branch,
                head=head if pushed_via_fork else None,
                cwd=root,
            )
        except CommandError as e:
            log.error("pr_create_failed", reached=str(stage), error=e.message)
            return PublishResult(
                success=False,
                error=e.message,
                head=head,
                pushed_via_fork=pushed_via_fork,
                stage=PublishStage.ERROR,
            )

        parsed = parse_pr_url(pr_output.stdout) or parse_pr_url(pr_output.stderr)
        if not pr_output.ok:
            log.error("pr_create_failed", reached=str(stage), returncode=pr_output.returncode)
            return PublishResult(
                success=False,
                error=pr_output.output or f"gh pr create exited with {pr_output.returncode}",
                head=head,
                pushed_via_fork=pushed_via_fork,
                stage=PublishStage.ERROR,
            )

        pr_url, pr_number = parsed if parsed else (None, None)
        if parsed is None:
            log.warning("pr_url_not_found", output=pr_output.stdout.strip())

        log.info("pull_request_created", pr_url=pr_url, pr_number=pr_number, head=head)
        return PublishResult(
            success=True,
            pr_url=pr_url,
            pr_number=pr_number,
            head=head,
            pushed_via_fork=pushed_via_fork,
            stage=PublishStage.DONE,
        )

    async def _resolve_upstream(self, git: GitCli) -> RepositorySlug:
        url = await git.get_remote_url(UPSTREAM_REMOTE)
        try:
            return parse_remote_url(url)
        except InvalidGitUrlError as e:
            raise PublishError(
                f"Cannot resolve upstream repository from remote '{UPSTREAM_REMOTE}': {url}",
                stage=PublishStage.START,
            ) from e

    async def _push(
        self,
        git: GitCli,
        root: Path,
        upstream: RepositorySlug,
        branch: str,
    ) -> tuple[str, bool]:
        """Push ``branch``, falling back to a fork when upstream denies it.

        Returns:
            Tuple of (head reference for the PR, whether the fork was used).
        """
        try:
            direct = await git.push(UPSTREAM_REMOTE, branch)
        except CommandError as e:
            raise PublishError(e.message, stage=PublishStage.PUSH_ATTEMPTED) from e

        if direct.ok:
            log.info("push_succeeded", remote=UPSTREAM_REMOTE, branch=branch)
            return branch, False

        kind = classify_failure(direct)
        original_error = direct.output or f"git push exited with {direct.returncode}"
        if kind is not FailureKind.PERMISSION_DENIED:
            log.error("push_failed", remote=UPSTREAM_REMOTE, kind=str(kind))
            raise PublishError(original_error, stage=PublishStage.PUSH_ATTEMPTED, kind=kind)

        log.info("push_permission_denied", remote=UPSTREAM_REMOTE, repo=upstream.full_name)
        user = await self._ensure_fork(git, root, upstream)

        try:
            forked = await git.push(FORK_REMOTE, branch)
        except CommandError as e:
            raise PublishError(original_error, stage=PublishStage.FORK_RESOLVED, kind=kind) from e

        if not forked.ok:
            log.error("fork_push_failed", remote=FORK_REMOTE, error=forked.output)
            raise PublishError(original_error, stage=PublishStage.FORK_RESOLVED, kind=kind)

        log.info("push_succeeded", remote=FORK_REMOTE, branch=branch, user=user)
        return f"{user}:{branch}", True

    async def _ensure_fork(self, git: GitCli, root: Path, upstream: RepositorySlug) -> str:
        """Fork ``upstream`` (or reuse the fork) and point the fork remote at it.

        Returns:
            Login of the authenticated account that owns the fork.
        """
        try:
            user = await self.gh.current_user(cwd=root, host=upstream.host)
            await self.gh.fork_repo(upstream, cwd=root)
            await git.ensure_remote(FORK_REMOTE, upstream.https_url_for(user))
        except CommandFailedError as e:
            raise PublishError(
                f"Fork fallback failed: {e.message}",
                stage=PublishStage.PUSH_ATTEMPTED,
                kind=e.kind,
            ) from e
        except (CommandError, ExternalServiceError) as e:
            raise PublishError(f"Fork fallback failed: {e.message}", stage=PublishStage.PUSH_ATTEMPTED) from e

        log.info("fork_resolved", user=user, repo=upstream.full_name)
        return user
