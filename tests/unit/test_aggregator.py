"""Tests for the ResultAggregator and issue previews."""

from pathlib import Path

import pytest

from quality_gate.aggregator import ResultAggregator, preview
from quality_gate.models import (
    FileContext,
    GateStatus,
    Issue,
    ToolCategory,
    ToolResult,
    ToolStatus,
)


def make_result(
    tool: str,
    category: ToolCategory = ToolCategory.LINTER,
    status: ToolStatus = ToolStatus.RAN,
    exit_code: int | None = 0,
    issue_count: int | None = 0,
    **kwargs,
) -> ToolResult:
    """Helper to create test results."""
    return ToolResult(
        tool=tool,
        category=category,
        status=status,
        exit_code=exit_code,
        issue_count=issue_count,
        **kwargs,
    )


def make_issues(n: int) -> tuple[Issue, ...]:
    return tuple(
        Issue(message=f"problem {i}", path="app.py", line=i, column=1, code="E1")
        for i in range(1, n + 1)
    )


@pytest.fixture
def ctx() -> FileContext:
    return FileContext(path=Path("/repo/app.py"), root=Path("/repo"), language="python", mtime=0.0)


class TestAggregate:
    """Tests for verdict rules."""

    def test_no_results_pass(self) -> None:
        """Nothing applied means pass."""
        verdict = ResultAggregator().aggregate([])
        assert verdict.status is GateStatus.PASS
        assert verdict.results == ()

    def test_clean_pass(self, ctx: FileContext) -> None:
        verdict = ResultAggregator().aggregate(
            [
                make_result("ruff-format", ToolCategory.FORMATTER),
                make_result("ruff"),
            ],
            file=ctx,
        )
        assert verdict.status is GateStatus.PASS
        assert verdict.file is ctx

    def test_formatter_fix_is_formatted_pass(self) -> None:
        """A formatter fix alone never blocks."""
        verdict = ResultAggregator().aggregate(
            [
                make_result("qlty-fmt", ToolCategory.FORMATTER, fixed=True),
                make_result("qlty-check"),
            ]
        )
        assert verdict.status is GateStatus.FORMATTED_PASS
        assert verdict.fixed_tools == ["qlty-fmt"]

    def test_formatter_nonzero_exit_does_not_block(self) -> None:
        verdict = ResultAggregator().aggregate(
            [make_result("fmt", ToolCategory.FORMATTER, exit_code=1, issue_count=4)]
        )
        assert verdict.status is GateStatus.PASS

    def test_linter_issues_block(self) -> None:
        verdict = ResultAggregator().aggregate(
            [make_result("ruff", exit_code=1, issue_count=1, issues=make_issues(1))]
        )
        assert verdict.status is GateStatus.BLOCKED
        assert [r.tool for r in verdict.blocking_results] == ["ruff"]

    def test_type_checker_issues_block(self) -> None:
        verdict = ResultAggregator().aggregate(
            [make_result("tsc", ToolCategory.TYPE_CHECKER, exit_code=2, issue_count=3)]
        )
        assert verdict.status is GateStatus.BLOCKED

    def test_nonzero_exit_without_count_blocks(self) -> None:
        """Unknown count with a failing exit code still signals problems."""
        verdict = ResultAggregator().aggregate(
            [make_result("lint", exit_code=1, issue_count=None, output="bad things")]
        )
        assert verdict.status is GateStatus.BLOCKED

    def test_fixed_exit_code_does_not_block(self) -> None:
        verdict = ResultAggregator().aggregate(
            [make_result("lint", exit_code=3, fixed_exit=True, fixed=True)]
        )
        assert verdict.status is GateStatus.FORMATTED_PASS

    def test_fix_plus_issues_blocks(self) -> None:
        """Linter findings block even when a formatter also fixed the file."""
        verdict = ResultAggregator().aggregate(
            [
                make_result("fmt", ToolCategory.FORMATTER, fixed=True),
                make_result("lint", exit_code=1, issue_count=2),
            ]
        )
        assert verdict.status is GateStatus.BLOCKED
        assert verdict.fixed_tools == ["fmt"]

    @pytest.mark.parametrize("status", [ToolStatus.TIMED_OUT, ToolStatus.CRASHED])
    def test_degraded_never_blocks(self, status: ToolStatus) -> None:
        """Timed-out and crashed tools are degraded coverage, not failures."""
        verdict = ResultAggregator().aggregate(
            [
                make_result(
                    "pyright",
                    ToolCategory.TYPE_CHECKER,
                    status=status,
                    exit_code=70,
                    issue_count=None,
                ),
                make_result("ruff"),
            ]
        )
        assert verdict.status is GateStatus.PASS
        assert [r.tool for r in verdict.degraded_results] == ["pyright"]

    def test_skipped_contributes_nothing(self) -> None:
        verdict = ResultAggregator().aggregate(
            [make_result("eslint", status=ToolStatus.SKIPPED_UNAVAILABLE, exit_code=None)]
        )
        assert verdict.status is GateStatus.PASS
        assert verdict.degraded_results == []

    def test_results_order_kept(self) -> None:
        results = [make_result("a", ToolCategory.FORMATTER), make_result("b"), make_result("c")]
        verdict = ResultAggregator().aggregate(results)
        assert [r.tool for r in verdict.results] == ["a", "b", "c"]


class TestPreview:
    """Tests for bounded detail."""

    def test_bounded_to_three(self) -> None:
        """N > 3 issues show 3 entries and N-3 more."""
        result = make_result("ruff", exit_code=1, issue_count=7, issues=make_issues(7))

        shown = preview(result)

        assert shown.entries == (
            "app.py:1:1 E1 problem 1",
            "app.py:2:1 E1 problem 2",
            "app.py:3:1 E1 problem 3",
        )
        assert shown.remaining == 4

    def test_fewer_than_limit(self) -> None:
        result = make_result("ruff", exit_code=1, issue_count=2, issues=make_issues(2))
        shown = preview(result)
        assert len(shown.entries) == 2
        assert shown.remaining == 0

    def test_count_larger_than_parsed(self) -> None:
        """The remaining count follows the reported total."""
        result = make_result("pyright", exit_code=1, issue_count=10, issues=make_issues(4))
        assert preview(result).remaining == 7

    def test_raw_output_when_unparsed(self) -> None:
        """Unknown counts preview non-blank raw output lines."""
        result = make_result(
            "lint", exit_code=1, issue_count=None, output="first\n\n  second\nthird\nfourth\n"
        )

        shown = preview(result)

        assert shown.entries == ("first", "  second", "third")
        assert shown.remaining == 1

    def test_custom_limit(self) -> None:
        result = make_result("ruff", exit_code=1, issue_count=5, issues=make_issues(5))
        shown = preview(result, limit=1)
        assert len(shown.entries) == 1
        assert shown.remaining == 4


class TestVerdictSerialization:
    """Tests for GateVerdict.to_dict."""

    def test_to_dict(self, ctx: FileContext) -> None:
        verdict = ResultAggregator().aggregate(
            [
                make_result("ruff-format", ToolCategory.FORMATTER, fixed=True),
                make_result("ruff", exit_code=1, issue_count=2, severities={"error": 2}),
            ],
            file=ctx,
        )

        data = verdict.to_dict()

        assert data["status"] == "blocked"
        assert data["file"] == "app.py"
        assert [r["tool"] for r in data["results"]] == ["ruff-format", "ruff"]
        assert data["results"][0]["fixed"] is True
        assert data["results"][1] == {
            "tool": "ruff",
            "category": "linter",
            "status": "ran",
            "exit_code": 1,
            "issue_count": 2,
            "severities": {"error": 2},
            "fixed": False,
            "duration_ms": 0,
            "detail": None,
        }
