"""Classification of failed git/gh commands.

Every failed subprocess is mapped once to a closed set of ``FailureKind``
values so callers branch on a type instead of scattering string checks.

Structured signals are preferred: the gh CLI exits with code 4 when
authentication is required. Neither git nor gh expose a dedicated exit code
for a push rejected by repository permissions, so the message heuristics
below remain the fallback. They match English CLI output only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from repo_polisher.enums import FailureKind

if TYPE_CHECKING:
    from repo_polisher.utils.async_subprocess import CommandResult

GH_AUTH_REQUIRED_EXIT_CODE = 4

PERMISSION_DENIED_MARKERS = ("permission to", "403", "access denied")

NOT_FOUND_MARKERS = ("not found", "404", "does not exist")


def classify_message(text: str) -> FailureKind:
    """Classify free-form error text."""
    lowered = text.lower()
    if any(marker in lowered for marker in PERMISSION_DENIED_MARKERS):
        return FailureKind.PERMISSION_DENIED
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return FailureKind.NOT_FOUND
    return FailureKind.GENERIC


def classify_failure(result: CommandResult) -> FailureKind:
    """Classify a finished command that exited non-zero.

    Args:
        result: Captured command outcome

    Returns:
        FailureKind for the failure. A successful result is GENERIC, since
        there is nothing to classify.
    """
    if result.ok:
        return FailureKind.GENERIC

    executable = result.args[0].rsplit("/", 1)[-1] if result.args else ""
    if executable.startswith("gh") and result.returncode == GH_AUTH_REQUIRED_EXIT_CODE:
        return FailureKind.PERMISSION_DENIED

    return classify_message(result.output)
