"""
Quality Gate CLI - Entry point invoked after each file edit.

Commands:
    run     Gate the most recently modified file (default command)
    check   Gate one explicit file
    tools   Show registered tools and their availability

Everything is written to stderr; stdout stays empty. Exit codes are
defined once in quality_gate.decision.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from quality_gate.config import GateConfig
from quality_gate.decision import ExitCode
from quality_gate.errors import QualityGateError
from quality_gate.observability import configure_logging

console = Console(stderr=True)
logger = structlog.get_logger()


@click.group(invoke_without_command=True)
@click.version_option(version="0.1.0")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory)",
)
@click.option(
    "--config",
    "-c",
    type=Path,
    envvar="QUALITY_GATE_CONFIG",
    help="Path to config file (default: .quality-gate/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def main(ctx: click.Context, root: Path | None, config: Path | None, verbose: bool) -> None:
    """Quality Gate - Format, lint and type-check the file just edited."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = (root or Path.cwd()).resolve()
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.option("--stdin", "from_stdin", is_flag=True, help="Read a hook JSON payload from stdin")
@click.pass_context
def run(ctx: click.Context, from_stdin: bool = False) -> None:
    """Gate the most recently modified file."""
    file = _payload_file(sys.stdin.read()) if from_stdin else None
    _gate(ctx, file)


@main.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def check(ctx: click.Context, path: Path) -> None:
    """Gate one explicit file."""
    _gate(ctx, path)


@main.command()
@click.argument("path", type=click.Path(path_type=Path), required=False)
@click.pass_context
def tools(ctx: click.Context, path: Path | None) -> None:
    """Show registered tools and whether they apply here."""
    from quality_gate.models import FileContext
    from quality_gate.registry import LanguageClassifier, ToolRegistry
    from quality_gate.registry.predicates import resolve_binary

    config = _load_config(ctx)
    root = config.root
    try:
        registry = ToolRegistry.load(
            tool_overrides=config.tools,
            language_overrides=config.languages,
        )
    except QualityGateError as e:
        _fail(e)

    applicable: set[str] | None = None
    if path is not None:
        target = (path if path.is_absolute() else root / path).resolve()
        classifier = LanguageClassifier(registry)
        language = classifier.language_for(target)
        applicable = set()
        if language is not None and target.is_file():
            file_ctx = FileContext(
                path=target, root=root, language=language, mtime=target.stat().st_mtime
            )
            applicable = {tool.descriptor.id for tool in classifier.classify(file_ctx)}
        label = language or "unrecognized"
        console.print(f"\n[bold blue]Tools for {escape(str(path))}[/bold blue] ({label})\n")

    table = Table(title="Quality Tools")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Description")
    table.add_column("Languages")
    table.add_column("Binary")
    if applicable is not None:
        table.add_column("Applies")

    for tool_id, descriptor in registry.tools.items():
        languages = [spec.name for spec in registry.languages.values() if tool_id in spec.tools]
        binary = resolve_binary(descriptor.binary, root)
        row = [
            tool_id,
            descriptor.category.value,
            escape(descriptor.description) or "-",
            ", ".join(languages) or "-",
            escape(binary) if binary else "[yellow]not found[/yellow]",
        ]
        style = "" if descriptor.enabled else "dim"
        if applicable is not None:
            row.append("[green]yes[/green]" if tool_id in applicable else "no")
        table.add_row(*row, style=style)

    console.print(table)


def _gate(ctx: click.Context, file: Path | None) -> None:
    """Run the gate and exit with the decided code."""
    from quality_gate.pipeline import QualityGate

    config = _load_config(ctx)
    try:
        gate = QualityGate(config)
        verdict = gate.run(file=file)
    except QualityGateError as e:
        _fail(e)

    if verdict.report:
        click.echo(verdict.report, err=True, color=True)
    sys.exit(verdict.exit_code)


def _load_config(ctx: click.Context) -> GateConfig:
    try:
        config = GateConfig.load(ctx.obj["root"], ctx.obj["config_path"]).with_env()
    except QualityGateError as e:
        _fail(e)

    if config.verbose and not ctx.obj["verbose"]:
        configure_logging(True)
    return config


def _payload_file(raw: str) -> Path | None:
    """File path named by a hook payload ({"tool_input": {"file_path": ...}})."""
    if not raw.strip():
        return None
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unreadable hook payload", error=str(e))
        return None

    tool_input = payload.get("tool_input") if isinstance(payload, dict) else None
    if not isinstance(tool_input, dict):
        return None
    file_path = tool_input.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        return None
    return Path(file_path)


def _fail(error: QualityGateError) -> NoReturn:
    console.print(f"[red]quality-gate:[/red] {escape(str(error))}")
    sys.exit(int(ExitCode.ERROR))


if __name__ == "__main__":
    main()
