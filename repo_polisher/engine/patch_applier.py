"""Apply textual fixes to files in a working checkout.

Line numbers recorded at detection time may be stale by the time a draft is
published. Each issue is therefore located through an ordered list of
strategies, tried until one finds the original text:

    1. reported line, searching from the reported column
    2. reported line, searching the whole line
    3. context line (the line whose trimmed text equals the recorded
       context), searching from the reported column
    4. context line, searching the whole line

Only the first occurrence on the resolved line is replaced. Files keep their
line-ending style and are written at most once per call.

Example:
    >>> applier = PatchApplier()
    >>> result = await applier.apply(Path("/checkout"), issues)
    >>> result.require_applied().applied_issue_ids
    {'iss-1', 'iss-2'}
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import structlog

from repo_polisher.exceptions import NothingToApplyError
from repo_polisher.models.domain import ApplyResult, Issue

log = structlog.get_logger(__name__)

NEWLINE_PATTERN = re.compile(r"\r\n|\n")
LINE_SPLIT_PATTERN = re.compile(r"\r?\n")


def detect_newline(content: str) -> str:
    """Return the first line ending used in ``content``, defaulting to LF."""
    match = NEWLINE_PATTERN.search(content)
    return match.group(0) if match else "\n"


def find_text(line: str, target: str, column: int | None = None) -> int:
    """Find ``target`` in ``line``, starting at 1-based ``column`` when given."""
    start = max(0, column - 1) if column is not None else 0
    return line.find(target, start)


@dataclass(frozen=True)
class ReportedLineStrategy:
    """Use the line number recorded by the detector."""

    from_column: bool = True

    @property
    def name(self) -> str:
        return "reported_line_at_column" if self.from_column else "reported_line"

    def resolve_line(self, lines: Sequence[str], issue: Issue) -> int | None:
        index = issue.line - 1
        if 0 <= index < len(lines):
            return index
        return None


@dataclass(frozen=True)
class ContextLineStrategy:
    """Find the first line whose trimmed text equals the recorded context."""

    from_column: bool = True

    @property
    def name(self) -> str:
        return "context_line_at_column" if self.from_column else "context_line"

    def resolve_line(self, lines: Sequence[str], issue: Issue) -> int | None:
        context = (issue.context or "").strip()
        if not context:
            return None
        for index, line in enumerate(lines):
            if line.strip() == context:
                return index
        return None


LocationStrategy = ReportedLineStrategy | ContextLineStrategy

DEFAULT_STRATEGIES: tuple[LocationStrategy, ...] = (
    ReportedLineStrategy(from_column=True),
    ReportedLineStrategy(from_column=False),
    ContextLineStrategy(from_column=True),
    ContextLineStrategy(from_column=False),
)


@dataclass(frozen=True)
class Resolution:
    """Where an issue's original text was found.

    ``line_index`` is set whenever any strategy resolved a line, even if the
    text was not on it; ``start`` is -1 until the text is found.
    """

    line_index: int | None = None
    start: int = -1
    strategy: str | None = None

    @property
    def found(self) -> bool:
        return self.line_index is not None and self.start >= 0


def locate(
    lines: Sequence[str],
    issue: Issue,
    strategies: Sequence[LocationStrategy] = DEFAULT_STRATEGIES,
) -> Resolution:
    """Run ``strategies`` in order until one finds the original text."""
    target = issue.original or ""
    last_line: int | None = None

    for strategy in strategies:
        index = strategy.resolve_line(lines, issue)
        if index is None:
            continue
        last_line = index
        start = find_text(lines[index], target, issue.column if strategy.from_column else None)
        if start >= 0:
            return Resolution(line_index=index, start=start, strategy=strategy.name)

    return Resolution(line_index=last_line)


class PatchApplier:
    """Rewrite checkout files in place for a batch of issues.

    The applier never touches persisted state; it only reports which issues
    were applied and why the others were skipped.
    """

    def __init__(self, strategies: Sequence[LocationStrategy] = DEFAULT_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    async def apply(self, checkout_root: str | Path, issues: Sequence[Issue]) -> ApplyResult:
        """Apply every fixable issue under ``checkout_root``.

        Args:
            checkout_root: Root directory of the working checkout
            issues: Issues selected for the draft

        Returns:
            ApplyResult with applied issue ids and one warning per skip.
            An empty applied set is not raised here; callers decide with
            ``ApplyResult.require_applied()``.

        Raises:
            NothingToApplyError: If no issue was given or none carries
                both original text and a suggestion.
        """
        if not issues:
            raise NothingToApplyError("No issues selected for this draft.")

        by_file: dict[str, list[Issue]] = {}
        for issue in issues:
            if not issue.is_fixable:
                log.debug("issue_not_fixable", issue_id=issue.id)
                continue
            by_file.setdefault(issue.file_path, []).append(issue)

        if not by_file:
            raise NothingToApplyError("Selected issues do not contain auto-fix suggestions.")

        root = Path(checkout_root).resolve()
        result = ApplyResult()

        for relative_path, file_issues in by_file.items():
            await self._apply_file(root, relative_path, file_issues, result)

        log.info(
            "fixes_applied",
            applied=len(result.applied_issue_ids),
            skipped=len(result.warnings),
            files=len(by_file),
        )
        return result

    async def _apply_file(
        self,
        root: Path,
        relative_path: str,
        issues: list[Issue],
        result: ApplyResult,
    ) -> None:
        full_path = (root / relative_path).resolve()
        if not full_path.is_relative_to(root):
            result.warnings.append(f"Refusing to patch path outside checkout: {relative_path}")
            return
        if not full_path.is_file():
            result.warnings.append(f"File not found: {relative_path}")
            return

        try:
            async with aiofiles.open(full_path, encoding="utf-8", newline="") as f:
                content = await f.read()
        except UnicodeDecodeError:
            result.warnings.append(f"Cannot read {relative_path}: not valid UTF-8")
            return
        except OSError as e:
            result.warnings.append(f"Cannot read {relative_path}: {e.strerror or e}")
            return

        newline = detect_newline(content)
        lines = LINE_SPLIT_PATTERN.split(content)
        modified = False

        # Bottom-up so an edit never shifts the offsets of edits still pending.
        for issue in sorted(issues, key=lambda i: (i.line, i.column), reverse=True):
            resolution = locate(lines, issue, self.strategies)

            if resolution.line_index is None:
                result.warnings.append(f"Cannot apply fix (line missing): {issue.file_path}:{issue.line}")
                continue
            if not resolution.found:
                result.warnings.append(f'Cannot find "{issue.original}" in {issue.file_path}:{issue.line}')
                continue

            target = issue.original or ""
            line = lines[resolution.line_index]
            lines[resolution.line_index] = (
                line[: resolution.start] + (issue.suggestion or "") + line[resolution.start + len(target) :]
            )
            modified = True
            result.applied_issue_ids.add(issue.id)
            log.debug(
                "fix_applied",
                issue_id=issue.id,
                file=relative_path,
                line=resolution.line_index + 1,
                strategy=resolution.strategy,
            )

        if modified:
            try:
                async with aiofiles.open(full_path, "w", encoding="utf-8", newline="") as f:
                    await f.write(newline.join(lines))
            except OSError as e:
                for issue in issues:
                    result.applied_issue_ids.discard(issue.id)
                result.warnings.append(f"Cannot write {relative_path}: {e.strerror or e}")


async def apply_fixes(checkout_root: str | Path, issues: Sequence[Issue]) -> ApplyResult:
    """Apply ``issues`` with the default location strategies."""
    return await PatchApplier().apply(checkout_root, issues)
