"""
ToolRunner - Execute quality tools against one file and collect results.

Responsibilities:
- Resolve each tool's binary (project-local bins first, then PATH)
- Run tools sequentially: formatters, then linters, then type-checkers
- Bound every invocation with its own timeout
- Isolate failures: a missing, crashing or hanging tool never stops the rest
- Detect auto-fixes by comparing the file's digest before and after each tool
- Parse output with the tool's parser, then its fallback parser
"""

from __future__ import annotations

import hashlib
import os
import signal
import subprocess
import time
from dataclasses import replace
from pathlib import Path

import structlog

from quality_gate.errors import OutputParseError
from quality_gate.gates.parsers import ParsedOutput, get_parser
from quality_gate.models import (
    ApplicableTool,
    FileContext,
    Issue,
    ToolDescriptor,
    ToolResult,
    ToolStatus,
)
from quality_gate.registry.predicates import resolve_binary

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 10.0

# How long to wait for output after killing a timed-out tool
KILL_GRACE_SECONDS = 5.0

# Keep tool output free of ANSI codes so it stays parseable
TOOL_ENV = {"NO_COLOR": "1", "FORCE_COLOR": "0", "CLICOLOR": "0"}


class ToolRunner:
    """
    Runs the applicable tools for a file and produces one ToolResult each.
    """

    def __init__(
        self,
        root: Path,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        env: dict[str, str] | None = None,
    ) -> None:
        self.root = root
        self.default_timeout = default_timeout
        self.env = {**os.environ, **TOOL_ENV, **(env or {})}

    def run_all(self, ctx: FileContext, tools: list[ApplicableTool]) -> list[ToolResult]:
        """
        Run every tool in category order.

        Tools run one at a time so that later tools see the formatted file.
        """
        ordered = sorted(tools, key=lambda tool: tool.descriptor.category.rank)
        results: list[ToolResult] = []

        for tool in ordered:
            try:
                result = self.run_tool(ctx, tool)
            except Exception as e:
                logger.error(
                    "Tool run failed unexpectedly",
                    tool=tool.descriptor.id,
                    error=str(e),
                    exc_info=True,
                )
                result = ToolResult(
                    tool=tool.descriptor.id,
                    category=tool.descriptor.category,
                    status=ToolStatus.CRASHED,
                    issue_count=None,
                    detail=f"internal error: {e}",
                )
            results.append(result)

        return results

    def run_tool(self, ctx: FileContext, tool: ApplicableTool) -> ToolResult:
        """Run a single tool against the file."""
        descriptor = tool.descriptor

        binary = resolve_binary(descriptor.binary, self.root)
        if binary is None:
            logger.info("Tool not installed, skipping", tool=descriptor.id, binary=descriptor.binary)
            return ToolResult(
                tool=descriptor.id,
                category=descriptor.category,
                status=ToolStatus.SKIPPED_UNAVAILABLE,
                detail=f"{descriptor.binary} not found",
            )

        argv = [binary, *render_arguments(descriptor.command[1:], ctx, tool.config_path)]
        timeout = descriptor.timeout_seconds or self.default_timeout
        digest_before = file_digest(ctx.path)
        started = time.monotonic()

        logger.info("Running tool", tool=descriptor.id, command=argv, timeout=timeout)

        try:
            exit_code, stdout, stderr = self._execute(argv, timeout)
        except subprocess.TimeoutExpired as e:
            duration_ms = _elapsed_ms(started)
            logger.error("Tool timed out", tool=descriptor.id, timeout=timeout)
            return ToolResult(
                tool=descriptor.id,
                category=descriptor.category,
                status=ToolStatus.TIMED_OUT,
                issue_count=None,
                output=_join_output(_decode(e.stdout), _decode(e.stderr)),
                fixed=file_digest(ctx.path) != digest_before,
                duration_ms=duration_ms,
                detail=f"timed out after {timeout:g}s",
            )
        except FileNotFoundError:
            logger.info("Tool binary disappeared, skipping", tool=descriptor.id, binary=binary)
            return ToolResult(
                tool=descriptor.id,
                category=descriptor.category,
                status=ToolStatus.SKIPPED_UNAVAILABLE,
                detail=f"{descriptor.binary} not found",
            )
        except OSError as e:
            logger.error("Tool could not be started", tool=descriptor.id, error=str(e))
            return ToolResult(
                tool=descriptor.id,
                category=descriptor.category,
                status=ToolStatus.CRASHED,
                issue_count=None,
                duration_ms=_elapsed_ms(started),
                detail=f"could not start: {e}",
            )

        duration_ms = _elapsed_ms(started)
        fixed = file_digest(ctx.path) != digest_before
        output = _join_output(stdout, stderr)
        exit_kind = descriptor.classify_exit(exit_code)

        if exit_kind is None:
            logger.warning(
                "Tool exited unexpectedly",
                tool=descriptor.id,
                exit_code=exit_code,
            )
            return ToolResult(
                tool=descriptor.id,
                category=descriptor.category,
                status=ToolStatus.CRASHED,
                exit_code=exit_code,
                issue_count=None,
                output=output,
                fixed=fixed,
                duration_ms=duration_ms,
                detail=f"exited with code {exit_code}",
            )

        parsed = self._parse(descriptor, stdout, stderr)
        issues: tuple[Issue, ...] = ()
        issue_count: int | None = None
        severities: dict[str, int] = {}
        if parsed is not None:
            issues = tuple(self._relativize(issue) for issue in parsed.issues)
            issue_count = parsed.issue_count
            severities = dict(parsed.severities)

        logger.info(
            "Tool completed",
            tool=descriptor.id,
            exit_code=exit_code,
            issue_count=issue_count,
            fixed=fixed,
            duration_ms=duration_ms,
        )

        return ToolResult(
            tool=descriptor.id,
            category=descriptor.category,
            status=ToolStatus.RAN,
            exit_code=exit_code,
            issue_count=issue_count,
            severities=severities,
            issues=issues,
            output=output,
            fixed=fixed,
            fixed_exit=exit_kind == "fixed",
            duration_ms=duration_ms,
        )

    def _execute(self, argv: list[str], timeout: float) -> tuple[int, str, str]:
        """
        Run one tool to completion.

        The tool gets its own session so that on timeout the whole process
        group is killed, including helpers it spawned.

        Raises:
            subprocess.TimeoutExpired: With whatever output was captured
        """
        process = subprocess.Popen(
            argv,
            cwd=self.root,
            env=self.env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=True,
        )
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(process)
            try:
                stdout, stderr = process.communicate(timeout=KILL_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                # Pipes held open by a process that escaped the group
                process.wait()
                stdout, stderr = "", ""
            raise subprocess.TimeoutExpired(argv, timeout, output=stdout, stderr=stderr) from None
        return process.returncode, stdout, stderr

    def _parse(self, descriptor: ToolDescriptor, stdout: str, stderr: str) -> ParsedOutput | None:
        """Parse with the declared parser, then the fallback; None if both fail."""
        for name in (descriptor.parser, descriptor.fallback_parser):
            if name is None:
                continue
            try:
                return get_parser(name)(stdout, stderr)
            except (OutputParseError, TypeError, AttributeError, KeyError, ValueError) as e:
                logger.debug("Parser rejected output", tool=descriptor.id, parser=name, error=str(e))

        logger.warning("Could not parse tool output", tool=descriptor.id)
        return None

    def _relativize(self, issue: Issue) -> Issue:
        if not issue.path:
            return issue
        path = Path(issue.path)
        if path.is_absolute():
            try:
                return replace(issue, path=path.relative_to(self.root).as_posix())
            except ValueError:
                return issue
        return issue


def render_arguments(
    template: tuple[str, ...], ctx: FileContext, config_path: Path | None
) -> list[str]:
    """Fill {file}, {relpath}, {dir}, {root} and {config} placeholders."""
    values = {
        "file": str(ctx.path),
        "relpath": ctx.relpath,
        "dir": str(ctx.path.parent),
        "root": str(ctx.root),
        "config": str(config_path) if config_path else "",
    }
    rendered = []
    for arg in template:
        for key, value in values.items():
            arg = arg.replace("{" + key + "}", value)
        rendered.append(arg)
    return rendered


def file_digest(path: Path) -> str | None:
    """SHA-256 of the file's content, or None if it cannot be read."""
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _join_output(stdout: str | None, stderr: str | None) -> str:
    parts = [part.strip() for part in (stdout, stderr) if part and part.strip()]
    return "\n".join(parts)


def _kill_process_group(process: subprocess.Popen[str]) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Tool process group already gone", pid=process.pid)
