"""
ReportRenderer - Human-readable summary of a gate verdict.

The report is built with rich markup and captured to a string, so the same
content renders with ANSI colors on a terminal or as plain text when color
is disabled (NO_COLOR, non-tty, or config).
"""

from __future__ import annotations

import io

from rich.console import Console
from rich.markup import escape

from quality_gate.aggregator import DEFAULT_PREVIEW_LIMIT, preview
from quality_gate.models import GateStatus, GateVerdict, ToolCategory, ToolResult

DIRECTIVE = "Resolve all issues listed above before proceeding."

SECTION_TITLES = {
    ToolCategory.LINTER: "Linter findings",
    ToolCategory.TYPE_CHECKER: "Type-checker findings",
}


class ReportRenderer:
    """Renders a GateVerdict to text."""

    def __init__(
        self,
        color: bool = False,
        max_preview: int = DEFAULT_PREVIEW_LIMIT,
        timing: bool = False,
    ) -> None:
        self.color = color
        self.max_preview = max_preview
        self.timing = timing

    def render(self, verdict: GateVerdict) -> str:
        """Render the verdict; an empty string when there is nothing to say."""
        lines: list[str] = []

        if verdict.status is GateStatus.BLOCKED:
            lines.extend(self._blocked(verdict))
        elif verdict.file is not None and verdict.results:
            lines.append(self._confirmation(verdict))

        degraded = verdict.degraded_results
        if degraded:
            notes = ", ".join(f"{r.tool} ({escape(r.detail or r.status.value)})" for r in degraded)
            lines.append(f"[yellow]⚠ Degraded coverage: {notes}[/yellow]")

        if self.timing and verdict.results:
            timings = ", ".join(f"{r.tool} {r.duration_ms}ms" for r in verdict.results)
            lines.append(f"[dim]Timing: {timings}[/dim]")

        if not lines:
            return ""
        return self._to_text(lines)

    def _confirmation(self, verdict: GateVerdict) -> str:
        name = escape(verdict.file.relpath) if verdict.file else ""
        fixed = verdict.fixed_tools
        if verdict.status is GateStatus.FORMATTED_PASS and fixed:
            return f"[green]✓ Quality gate passed: {name} (auto-fixed by {', '.join(fixed)})[/green]"
        return f"[green]✓ Quality gate passed: {name}[/green]"

    def _blocked(self, verdict: GateVerdict) -> list[str]:
        name = escape(verdict.file.relpath) if verdict.file else ""
        lines = [f"[bold red]✗ Quality gate blocked: {name}[/bold red]"]

        fixed = verdict.fixed_tools
        if fixed:
            lines.append(f"[green]Auto-fixed by {', '.join(fixed)}[/green]")

        blocking = verdict.blocking_results
        for category, title in SECTION_TITLES.items():
            section = [r for r in blocking if r.category is category]
            if not section:
                continue
            lines.append("")
            lines.append(f"[bold red]{title}:[/bold red]")
            for result in section:
                lines.extend(self._tool_lines(result))

        lines.append("")
        lines.append(f"[bold red]{DIRECTIVE}[/bold red]")
        return lines

    def _tool_lines(self, result: ToolResult) -> list[str]:
        if result.issue_count is None:
            summary = f"exit code {result.exit_code}, output not parsed"
        elif result.issue_count:
            noun = "issue" if result.issue_count == 1 else "issues"
            summary = f"{result.issue_count} {noun}"
        else:
            summary = f"exit code {result.exit_code}"

        lines = [f"  [red]{result.tool}[/red]: {summary}"]
        shown = preview(result, self.max_preview)
        lines.extend(f"    {escape(entry)}" for entry in shown.entries)
        if shown.remaining:
            lines.append(f"    ...and {shown.remaining} more")
        return lines

    def _to_text(self, lines: list[str]) -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            force_terminal=self.color,
            no_color=not self.color,
            color_system="standard" if self.color else None,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )
        for line in lines:
            console.print(line)
        return buffer.getvalue().rstrip("\n")
