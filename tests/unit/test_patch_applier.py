"""Tests for repo_polisher.engine.patch_applier."""

from pathlib import Path

import pytest

from repo_polisher.engine.patch_applier import (
    DEFAULT_STRATEGIES,
    ContextLineStrategy,
    PatchApplier,
    ReportedLineStrategy,
    apply_fixes,
    detect_newline,
    find_text,
    locate,
)
from repo_polisher.exceptions import NoFixesAppliedError, NothingToApplyError


def write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


def read(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


class TestHelpers:
    """Tests for newline detection and text search."""

    def test_detect_newline_crlf(self) -> None:
        assert detect_newline("a\r\nb\r\n") == "\r\n"

    def test_detect_newline_lf(self) -> None:
        assert detect_newline("a\nb\r\n") == "\n"

    def test_detect_newline_defaults_to_lf(self) -> None:
        assert detect_newline("single line") == "\n"

    def test_find_text_from_column(self) -> None:
        assert find_text("teh teh", "teh", column=2) == 4

    def test_find_text_whole_line(self) -> None:
        assert find_text("x teh", "teh") == 2

    def test_find_text_missing(self) -> None:
        assert find_text("nothing here", "teh", column=1) == -1


class TestStrategies:
    """Each location strategy in isolation."""

    def test_reported_line_in_bounds(self, make_issue) -> None:
        issue = make_issue(line=2)
        assert ReportedLineStrategy().resolve_line(["a", "b"], issue) == 1

    def test_reported_line_out_of_bounds(self, make_issue) -> None:
        issue = make_issue(line=5)
        assert ReportedLineStrategy().resolve_line(["a", "b"], issue) is None

    def test_context_line_matches_trimmed_text(self, make_issue) -> None:
        issue = make_issue(context="  // teh fox  ")
        lines = ["unrelated", "\t// teh fox", "// teh fox"]
        assert ContextLineStrategy().resolve_line(lines, issue) == 1

    def test_context_line_without_context(self, make_issue) -> None:
        assert ContextLineStrategy().resolve_line(["teh"], make_issue(context=None)) is None

    def test_strategy_order(self) -> None:
        names = [s.name for s in DEFAULT_STRATEGIES]
        assert names == [
            "reported_line_at_column",
            "reported_line",
            "context_line_at_column",
            "context_line",
        ]

    def test_locate_prefers_reported_column(self, make_issue) -> None:
        issue = make_issue(line=1, column=5)
        resolution = locate(["teh teh"], issue)

        assert resolution.found
        assert resolution.start == 4
        assert resolution.strategy == "reported_line_at_column"

    def test_locate_falls_back_to_whole_line(self, make_issue) -> None:
        issue = make_issue(line=1, column=10)
        resolution = locate(["teh and more"], issue)

        assert resolution.start == 0
        assert resolution.strategy == "reported_line"

    def test_locate_reports_line_without_match(self, make_issue) -> None:
        resolution = locate(["nothing"], make_issue(line=1))

        assert resolution.line_index == 0
        assert not resolution.found

    def test_locate_with_custom_strategies(self, make_issue) -> None:
        issue = make_issue(line=1, context="b teh")
        resolution = locate(["teh", "b teh"], issue, strategies=[ContextLineStrategy(from_column=False)])

        assert resolution.line_index == 1
        assert resolution.start == 2


class TestPatchApplier:
    """Tests for applying fixes to files."""

    @pytest.mark.asyncio
    async def test_applies_all_matching_issues(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "src/a.ts", "// teh quick\nconst recieve = 1;\n")
        issues = [
            make_issue("iss-1", line=1, column=4),
            make_issue("iss-2", line=2, column=7, original="recieve", suggestion="receive"),
        ]

        result = await PatchApplier().apply(checkout_dir, issues)

        assert result.applied_issue_ids == {"iss-1", "iss-2"}
        assert result.warnings == []
        assert read(path) == "// the quick\nconst receive = 1;\n"

    @pytest.mark.asyncio
    async def test_preserves_crlf(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "b.txt", "line one\r\nteh end\r\n")

        result = await apply_fixes(checkout_dir, [make_issue(file_path="b.txt", line=2)])

        assert result.applied_issue_ids == {"iss-1"}
        assert read(path) == "line one\r\nthe end\r\n"

    @pytest.mark.asyncio
    async def test_relocates_stale_line_through_context(self, checkout_dir, make_issue) -> None:
        lines = [f"line {n}" for n in range(1, 13)]
        lines[11] = "// teh quick fox"
        path = write(checkout_dir, "src/a.ts", "\n".join(lines) + "\n")
        issue = make_issue(line=10, column=4, context="// teh quick fox")

        result = await apply_fixes(checkout_dir, [issue])

        assert result.applied_issue_ids == {"iss-1"}
        assert read(path).splitlines()[11] == "// the quick fox"
        assert read(path).splitlines()[9] == "line 10"

    @pytest.mark.asyncio
    async def test_line_past_end_without_context_warns(self, checkout_dir, make_issue) -> None:
        write(checkout_dir, "src/a.ts", "only line\n")

        result = await apply_fixes(checkout_dir, [make_issue(line=40)])

        assert result.applied_issue_ids == set()
        assert result.warnings == ["Cannot apply fix (line missing): src/a.ts:40"]

    @pytest.mark.asyncio
    async def test_text_not_found_warns(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "src/a.ts", "nothing to fix\n")

        result = await apply_fixes(checkout_dir, [make_issue(line=1)])

        assert result.applied_issue_ids == set()
        assert result.warnings == ['Cannot find "teh" in src/a.ts:1']
        assert read(path) == "nothing to fix\n"

    @pytest.mark.asyncio
    async def test_second_run_is_not_double_applied(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "a.md", "teh end\n")
        issue = make_issue(file_path="a.md", original="teh", suggestion="the")

        first = await apply_fixes(checkout_dir, [issue])
        second = await apply_fixes(checkout_dir, [issue])

        assert first.applied_issue_ids == {"iss-1"}
        assert second.applied_issue_ids == set()
        assert read(path) == "the end\n"
        with pytest.raises(NoFixesAppliedError):
            second.require_applied()

    @pytest.mark.asyncio
    async def test_missing_file_does_not_stop_batch(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "present.txt", "teh\n")
        issues = [
            make_issue("iss-1", file_path="gone.txt"),
            make_issue("iss-2", file_path="present.txt"),
        ]

        result = await apply_fixes(checkout_dir, issues)

        assert result.applied_issue_ids == {"iss-2"}
        assert result.warnings == ["File not found: gone.txt"]
        assert read(path) == "the\n"

    @pytest.mark.asyncio
    async def test_same_line_edits_do_not_shift_each_other(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "a.txt", "teh recieve\n")
        issues = [
            make_issue("iss-1", file_path="a.txt", column=1),
            make_issue("iss-2", file_path="a.txt", column=5, original="recieve", suggestion="receive"),
        ]

        result = await apply_fixes(checkout_dir, issues)

        assert result.applied_issue_ids == {"iss-1", "iss-2"}
        assert read(path) == "the receive\n"

    @pytest.mark.asyncio
    async def test_replaces_only_first_occurrence(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "a.txt", "teh teh\n")

        await apply_fixes(checkout_dir, [make_issue(file_path="a.txt", column=1)])

        assert read(path) == "the teh\n"

    @pytest.mark.asyncio
    async def test_path_outside_checkout_is_refused(self, tmp_path, checkout_dir, make_issue) -> None:
        outside = write(tmp_path, "outside.txt", "teh\n")

        result = await apply_fixes(checkout_dir, [make_issue(file_path="../outside.txt")])

        assert result.applied_issue_ids == set()
        assert result.warnings == ["Refusing to patch path outside checkout: ../outside.txt"]
        assert read(outside) == "teh\n"

    @pytest.mark.asyncio
    async def test_non_utf8_file_warns(self, checkout_dir, make_issue) -> None:
        (checkout_dir / "bin.dat").write_bytes(b"\xff\xfe teh")

        result = await apply_fixes(checkout_dir, [make_issue(file_path="bin.dat")])

        assert result.warnings == ["Cannot read bin.dat: not valid UTF-8"]

    @pytest.mark.asyncio
    async def test_no_issues_raises(self, checkout_dir) -> None:
        with pytest.raises(NothingToApplyError, match="No issues selected"):
            await apply_fixes(checkout_dir, [])

    @pytest.mark.asyncio
    async def test_no_fixable_issues_raises(self, checkout_dir, make_issue) -> None:
        issues = [make_issue(suggestion=None), make_issue("iss-2", original=None)]

        with pytest.raises(NothingToApplyError, match="auto-fix suggestions"):
            await apply_fixes(checkout_dir, issues)

    @pytest.mark.asyncio
    async def test_unfixable_issues_are_dropped_silently(self, checkout_dir, make_issue) -> None:
        write(checkout_dir, "a.txt", "teh\n")
        issues = [make_issue(file_path="a.txt"), make_issue("iss-2", file_path="a.txt", suggestion=None)]

        result = await apply_fixes(checkout_dir, issues)

        assert result.applied_issue_ids == {"iss-1"}
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_file_without_trailing_newline(self, checkout_dir, make_issue) -> None:
        path = write(checkout_dir, "a.txt", "first\nteh")

        await apply_fixes(checkout_dir, [make_issue(file_path="a.txt", line=2)])

        assert read(path) == "first\nthe"
