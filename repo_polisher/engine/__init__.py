"""Fix application and pull request publishing engine.

Key Components:
    - PatchApplier: Rewrites checkout files for a batch of issues
    - PullRequestPublisher: Branch, commit, push (with fork fallback), open PR
    - CheckoutProvider: Local path or cached shallow clone per project
    - SubmissionCoordinator: Owns every issue and draft status transition

Example:
    >>> from repo_polisher.engine import SubmissionCoordinator
    >>> coordinator = SubmissionCoordinator(store, checkouts, publisher, settings)
    >>> outcome = await coordinator.submit_draft("draft-1")
"""

from repo_polisher.engine.checkout import CheckoutProvider
from repo_polisher.engine.coordinator import SubmissionCoordinator
from repo_polisher.engine.patch_applier import PatchApplier, apply_fixes
from repo_polisher.engine.publisher import PullRequestPublisher

__all__ = [
    "CheckoutProvider",
    "PatchApplier",
    "PullRequestPublisher",
    "SubmissionCoordinator",
    "apply_fixes",
]
