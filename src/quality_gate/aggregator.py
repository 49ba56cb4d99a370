"""
ResultAggregator - Fold per-tool results into one gate verdict.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog

from quality_gate.models import FileContext, GateStatus, GateVerdict, ToolResult

logger = structlog.get_logger()

DEFAULT_PREVIEW_LIMIT = 3


@dataclass(frozen=True)
class Preview:
    """A bounded slice of a tool's findings."""

    entries: tuple[str, ...]
    remaining: int  # findings not shown; never negative


class ResultAggregator:
    """
    Decides pass / formatted-pass / blocked from a run's ToolResults.

    Rules:
    - A linter or type-checker that ran and reported issues (or exited
      non-zero without a fixed code) blocks.
    - Formatter fixes never block; they turn pass into formatted-pass.
    - Timed-out and crashed tools are degraded coverage, never blocking.
    - Unavailable tools contribute nothing.
    """

    def aggregate(
        self, results: Iterable[ToolResult], file: FileContext | None = None
    ) -> GateVerdict:
        results = tuple(results)

        if any(r.is_blocking for r in results):
            status = GateStatus.BLOCKED
        elif any(r.fixed for r in results):
            status = GateStatus.FORMATTED_PASS
        else:
            status = GateStatus.PASS

        verdict = GateVerdict(status=status, results=results, file=file)
        logger.debug(
            "Aggregated results",
            status=status.value,
            blocking=[r.tool for r in verdict.blocking_results],
            degraded=[r.tool for r in verdict.degraded_results],
            fixed=verdict.fixed_tools,
        )
        return verdict


def preview(result: ToolResult, limit: int = DEFAULT_PREVIEW_LIMIT) -> Preview:
    """
    At most `limit` concrete entries for a result, plus how many were left out.

    Parsed issues are preferred. When the count is unknown (output could not
    be parsed) the non-blank raw output lines are used instead.
    """
    limit = max(limit, 0)

    if result.issues:
        entries = [issue.format() for issue in result.issues]
        total = max(result.issue_count or 0, len(entries))
    else:
        entries = [line.rstrip() for line in result.output.splitlines() if line.strip()]
        total = len(entries)

    shown = tuple(entries[:limit])
    return Preview(entries=shown, remaining=total - len(shown))
