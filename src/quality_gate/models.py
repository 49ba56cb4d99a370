"""
Data models for a single gate run.

Everything here is immutable: a FileContext is created once by the selector,
each ToolResult once by the runner, and the GateVerdict once by the aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ToolCategory(str, Enum):
    """Kind of quality tool. Declaration order is execution order."""

    FORMATTER = "formatter"
    LINTER = "linter"
    TYPE_CHECKER = "type-checker"

    @property
    def rank(self) -> int:
        return list(ToolCategory).index(self)


class ToolStatus(str, Enum):
    """How a tool invocation ended."""

    RAN = "ran"
    SKIPPED_UNAVAILABLE = "skipped-unavailable"
    TIMED_OUT = "timed-out"
    CRASHED = "crashed"


class GateStatus(str, Enum):
    """Overall gate outcome."""

    PASS = "pass"
    FORMATTED_PASS = "formatted-pass"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class FileContext:
    """The file under evaluation."""

    path: Path
    root: Path
    language: str
    mtime: float

    @property
    def relpath(self) -> str:
        try:
            return self.path.relative_to(self.root).as_posix()
        except ValueError:
            return self.path.as_posix()


@dataclass(frozen=True)
class DependencyCondition:
    """A dependency that must be declared in a project manifest."""

    manifest: str  # e.g. package.json, pyproject.toml
    name: str


@dataclass(frozen=True)
class ToolDescriptor:
    """How to invoke and interpret one quality tool."""

    id: str
    category: ToolCategory
    command: tuple[str, ...]  # argv template; argv[0] is the binary

    # Context conditions (checked by the classifier)
    markers: tuple[str, ...] = ()  # any-of, searched from the file's dir up to the root
    dependency: DependencyCondition | None = None
    content: str | None = None  # regex matched against the head of the file

    # Output interpretation
    parser: str = "none"
    fallback_parser: str | None = "compiler-text"
    success_codes: tuple[int, ...] = (0,)
    issue_codes: tuple[int, ...] = (1,)
    fixed_codes: tuple[int, ...] = ()

    timeout_seconds: float | None = None  # None -> gate default
    enabled: bool = True
    description: str = ""

    @property
    def binary(self) -> str:
        return self.command[0]

    def classify_exit(self, exit_code: int) -> str | None:
        """Map an exit code to success/issues/fixed, or None if unexpected."""
        if exit_code in self.fixed_codes:
            return "fixed"
        if exit_code in self.success_codes:
            return "success"
        if exit_code in self.issue_codes:
            return "issues"
        return None


@dataclass(frozen=True)
class ApplicableTool:
    """A descriptor that applies to a file, with the marker that enabled it."""

    descriptor: ToolDescriptor
    config_path: Path | None = None


@dataclass(frozen=True)
class Issue:
    """One concrete finding reported by a tool."""

    message: str
    path: str | None = None
    line: int | None = None
    column: int | None = None
    code: str | None = None
    severity: str = "error"

    def format(self) -> str:
        location = self.path or ""
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        parts = [p for p in (location, self.code, self.message) if p]
        return " ".join(parts)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of running one tool against one file."""

    tool: str
    category: ToolCategory
    status: ToolStatus
    exit_code: int | None = None
    issue_count: int | None = 0  # None: output could not be parsed
    severities: dict[str, int] = field(default_factory=dict)
    issues: tuple[Issue, ...] = ()
    output: str = ""
    fixed: bool = False
    fixed_exit: bool = False  # exit code was one of the descriptor's fixed codes
    duration_ms: int = 0
    detail: str | None = None

    @property
    def is_blocking(self) -> bool:
        """True if this result alone must block the caller."""
        if self.category is ToolCategory.FORMATTER:
            return False
        if self.status is not ToolStatus.RAN:
            return False
        if self.issue_count:
            return True
        return bool(self.exit_code) and not self.fixed_exit

    @property
    def is_degraded(self) -> bool:
        return self.status in (ToolStatus.TIMED_OUT, ToolStatus.CRASHED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tool": self.tool,
            "category": self.category.value,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "issue_count": self.issue_count,
            "severities": dict(self.severities),
            "fixed": self.fixed,
            "duration_ms": self.duration_ms,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class GateVerdict:
    """Aggregate decision for one gate run."""

    status: GateStatus
    results: tuple[ToolResult, ...] = ()
    file: FileContext | None = None
    report: str = ""
    exit_code: int = 0

    @property
    def blocking_results(self) -> list[ToolResult]:
        return [r for r in self.results if r.is_blocking]

    @property
    def degraded_results(self) -> list[ToolResult]:
        return [r for r in self.results if r.is_degraded]

    @property
    def fixed_tools(self) -> list[str]:
        return [r.tool for r in self.results if r.fixed]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "file": self.file.relpath if self.file else None,
            "exit_code": self.exit_code,
            "results": [r.to_dict() for r in self.results],
        }
