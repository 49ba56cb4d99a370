"""
Output parsers - Turn a tool's captured output into concrete issues.

Machine-readable output (JSON, SARIF) is preferred; text parsers exist for
tools that have none. A parser raises OutputParseError when the output does
not look like what it expects; the runner then tries the tool's declared
fallback parser and, failing that, records the issue count as unknown.

Informational findings (pyright "information", cfn-lint "Informational",
SARIF "note") are tallied in severities but are never issues, so they
never block.
"""

from __future__ import annotations

import json
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

from quality_gate.errors import OutputParseError
from quality_gate.models import Issue

INFO = "info"


@dataclass
class ParsedOutput:
    """Issues extracted from one tool run."""

    issues: list[Issue] = field(default_factory=list)
    issue_count: int | None = None  # None: use len(issues)
    severities: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.severities:
            self.severities = dict(Counter(issue.severity for issue in self.issues))
        self.issues = [issue for issue in self.issues if issue.severity != INFO]
        if self.issue_count is None:
            self.issue_count = len(self.issues)


Parser = Callable[[str, str], ParsedOutput]


def _load_json(text: str) -> Any:
    text = text.strip()
    if not text:
        raise OutputParseError("Expected JSON output, got nothing")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise OutputParseError(f"Invalid JSON output: {e}") from e


def _objects(value: Any, what: str) -> list[dict[str, Any]]:
    """A JSON list whose entries must all be objects."""
    if not isinstance(value, list):
        raise OutputParseError(f"{what} must be a list")
    for entry in value:
        if not isinstance(entry, dict):
            raise OutputParseError(f"{what} entries must be objects, got {type(entry).__name__}")
    return value


def _object(value: Any, what: str) -> dict[str, Any]:
    """An optional nested JSON object; null reads as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise OutputParseError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _position(value: Any, what: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise OutputParseError(f"{what} must be an integer, got {value!r}")
    return value


def parse_none(stdout: str, stderr: str) -> ParsedOutput:
    """Formatters: no issues to report."""
    return ParsedOutput()


def parse_ruff_json(stdout: str, stderr: str) -> ParsedOutput:
    """ruff check --output-format json: a list of violations."""
    issues = []
    for item in _objects(_load_json(stdout), "ruff JSON output"):
        location = _object(item.get("location"), "ruff location")
        issues.append(
            Issue(
                message=str(item.get("message", "")),
                path=item.get("filename"),
                line=_position(location.get("row"), "ruff row"),
                column=_position(location.get("column"), "ruff column"),
                code=item.get("code") or None,
                severity="error",
            )
        )
    return ParsedOutput(issues=issues)


def parse_pyright_json(stdout: str, stderr: str) -> ParsedOutput:
    """pyright --outputjson: diagnostics plus a summary."""
    data = _load_json(stdout)
    if not isinstance(data, dict) or "generalDiagnostics" not in data:
        raise OutputParseError("pyright JSON output has no generalDiagnostics")

    issues = []
    for diag in _objects(data["generalDiagnostics"], "pyright generalDiagnostics"):
        severity = str(diag.get("severity", "error"))
        start = _object(_object(diag.get("range"), "pyright range").get("start"), "pyright start")
        message = str(diag.get("message") or "")
        line = _position(start.get("line"), "pyright line")
        column = _position(start.get("character"), "pyright character")
        issues.append(
            Issue(
                message=message.splitlines()[0] if message else "",
                path=diag.get("file"),
                # pyright positions are zero-based
                line=line + 1 if line is not None else None,
                column=column + 1 if column is not None else None,
                code=diag.get("rule"),
                severity=INFO if severity == "information" else severity,
            )
        )
    return ParsedOutput(issues=issues)


def parse_eslint_json(stdout: str, stderr: str) -> ParsedOutput:
    """eslint --format json: one entry per linted file with its messages."""
    issues = []
    for file_result in _objects(_load_json(stdout), "eslint JSON output"):
        for message in _objects(file_result.get("messages", []), "eslint messages"):
            issues.append(
                Issue(
                    message=str(message.get("message", "")),
                    path=file_result.get("filePath"),
                    line=_position(message.get("line"), "eslint line"),
                    column=_position(message.get("column"), "eslint column"),
                    code=message.get("ruleId"),
                    severity="error" if message.get("severity") == 2 else "warning",
                )
            )
    return ParsedOutput(issues=issues)


def parse_cfn_lint_json(stdout: str, stderr: str) -> ParsedOutput:
    """cfn-lint --format json: a list of matches."""
    issues = []
    for match in _objects(_load_json(stdout), "cfn-lint JSON output"):
        location = _object(match.get("Location"), "cfn-lint Location")
        start = _object(location.get("Start"), "cfn-lint Start")
        level = str(match.get("Level", "Error")).lower()
        issues.append(
            Issue(
                message=str(match.get("Message", "")),
                path=match.get("Filename"),
                line=_position(start.get("LineNumber"), "cfn-lint LineNumber"),
                column=_position(start.get("ColumnNumber"), "cfn-lint ColumnNumber"),
                code=_object(match.get("Rule"), "cfn-lint Rule").get("Id"),
                severity=INFO if level.startswith("info") else level,
            )
        )
    return ParsedOutput(issues=issues)


def parse_sarif(stdout: str, stderr: str) -> ParsedOutput:
    """SARIF 2.1 log (qlty check --sarif)."""
    data = _load_json(stdout)
    if not isinstance(data, dict):
        raise OutputParseError("SARIF output must be an object")

    issues = []
    for run in _objects(data.get("runs"), "SARIF runs"):
        for result in _objects(run.get("results", []), "SARIF results"):
            location: dict[str, Any] = {}
            locations = _objects(result.get("locations", []), "SARIF locations")
            if locations:
                location = _object(locations[0].get("physicalLocation"), "SARIF physicalLocation")
            region = _object(location.get("region"), "SARIF region")
            artifact = _object(location.get("artifactLocation"), "SARIF artifactLocation")
            level = str(result.get("level", "warning"))
            issues.append(
                Issue(
                    message=str(_object(result.get("message"), "SARIF message").get("text", "")),
                    path=artifact.get("uri"),
                    line=_position(region.get("startLine"), "SARIF startLine"),
                    column=_position(region.get("startColumn"), "SARIF startColumn"),
                    code=result.get("ruleId"),
                    severity=INFO if level == "note" else level,
                )
            )
    return ParsedOutput(issues=issues)


TSC_LINE = re.compile(
    r"^(?P<path>.+?)\((?P<line>\d+),(?P<column>\d+)\): "
    r"(?P<severity>error|warning) (?P<code>TS\d+): (?P<message>.*)$"
)


def parse_tsc_text(stdout: str, stderr: str) -> ParsedOutput:
    """tsc --pretty false: `path(line,col): error TS1234: message`."""
    return _parse_lines(stdout + "\n" + stderr, TSC_LINE, "tsc")


COMPILER_LINE = re.compile(
    r"^(?P<path>[^\s:][^:]*):(?P<line>\d+)(?::(?P<column>\d+))?:?\s+(?P<message>.+)$"
)


def parse_compiler_text(stdout: str, stderr: str) -> ParsedOutput:
    """Generic `path:line[:col]: message` lines."""
    return _parse_lines(stdout + "\n" + stderr, COMPILER_LINE, "compiler")


STYLISH_LINE = re.compile(
    r"^\s+(?P<line>\d+):(?P<column>\d+)\s+(?P<severity>[Ee]rror|[Ww]arning):?\s+"
    r"(?P<message>.+?)(?:\s{2,}(?P<code>[\w@/-]+))?\s*$"
)


def parse_stylish_text(stdout: str, stderr: str) -> ParsedOutput:
    """ESLint stylish output (next lint): a path line followed by indented findings."""
    issues = []
    current_path: str | None = None
    text = stdout + "\n" + stderr
    for line in text.splitlines():
        match = STYLISH_LINE.match(line)
        if match:
            issues.append(
                Issue(
                    message=match["message"],
                    path=current_path,
                    line=int(match["line"]),
                    column=int(match["column"]),
                    code=match["code"],
                    severity=match["severity"].lower(),
                )
            )
        elif line.strip() and not line.startswith((" ", "\t")):
            current_path = line.strip()

    if not issues and _has_content(text) and not _looks_clean(text):
        raise OutputParseError("No stylish findings in non-empty output")
    return ParsedOutput(issues=issues)


def _parse_lines(text: str, pattern: re.Pattern[str], name: str) -> ParsedOutput:
    issues = []
    for line in text.splitlines():
        match = pattern.match(line.rstrip())
        if not match:
            continue
        groups = match.groupdict()
        issues.append(
            Issue(
                message=groups["message"],
                path=groups.get("path"),
                line=int(groups["line"]) if groups.get("line") else None,
                column=int(groups["column"]) if groups.get("column") else None,
                code=groups.get("code"),
                severity=groups.get("severity") or "error",
            )
        )

    if not issues and _has_content(text):
        raise OutputParseError(f"Output does not match the {name} line format")
    return ParsedOutput(issues=issues)


def _has_content(text: str) -> bool:
    return any(line.strip() for line in text.splitlines())


def _looks_clean(text: str) -> bool:
    return "no eslint warnings or errors" in text.lower()


PARSERS: dict[str, Parser] = {
    "none": parse_none,
    "ruff-json": parse_ruff_json,
    "pyright-json": parse_pyright_json,
    "eslint-json": parse_eslint_json,
    "cfn-lint-json": parse_cfn_lint_json,
    "sarif": parse_sarif,
    "tsc-text": parse_tsc_text,
    "compiler-text": parse_compiler_text,
    "stylish-text": parse_stylish_text,
}


def get_parser(name: str) -> Parser:
    """Look up a parser by registry name."""
    try:
        return PARSERS[name]
    except KeyError:
        raise OutputParseError(f"Unknown parser: {name}") from None
