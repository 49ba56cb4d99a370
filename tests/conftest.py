"""Shared fixtures: a throwaway project tree and simulated quality tools."""

import os
import sys
import textwrap
import time
from pathlib import Path
from typing import Callable, Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project root (tools live outside it, under tmp_path/bin)."""
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def write_file(project: Path) -> Callable[..., Path]:
    """
    Write a file under the project root.

    `age` backdates the modification time by that many seconds.
    """

    def _write(relpath: str, content: str = "", age: float = 0.0) -> Path:
        path = project / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        if age:
            stamp = time.time() - age
            os.utime(path, (stamp, stamp))
        return path

    return _write


@pytest.fixture
def fake_tool(tmp_path: Path) -> Callable[[str, str], list[str]]:
    """
    Create a simulated tool: a Python script run by the current interpreter.

    Returns the command prefix; append the argv template (e.g. "{file}").
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> list[str]:
        script = bin_dir / f"{name}.py"
        script.write_text(textwrap.dedent(body))
        return [sys.executable, str(script)]

    return _make


# Simulated tool bodies shared by several test modules

RUFF_LIKE = """
    import json
    import sys

    path = sys.argv[1]
    issues = []
    with open(path) as f:
        for row, line in enumerate(f, 1):
            if line.startswith("import "):
                name = line.split()[1]
                issues.append({
                    "code": "F401",
                    "message": f"`{name}` imported but unused",
                    "filename": path,
                    "location": {"row": row, "column": 8},
                })
    print(json.dumps(issues))
    sys.exit(1 if issues else 0)
"""

INDENT_FIXER = """
    import sys

    path = sys.argv[1]
    with open(path) as f:
        original = f.read()
    fixed = "\\n".join(
        "  " + line.strip() if line.startswith((" ", "\\t")) else line
        for line in original.splitlines()
    ) + "\\n"
    if fixed != original:
        with open(path, "w") as f:
            f.write(fixed)
"""

CLEAN = """
    print("[]")
"""


@pytest.fixture
def ruff_like(fake_tool: Callable[[str, str], list[str]]) -> list[str]:
    """Linter reporting every `import` line as unused (ruff JSON format)."""
    return fake_tool("ruff_like", RUFF_LIKE) + ["{file}"]


@pytest.fixture
def indent_fixer(fake_tool: Callable[[str, str], list[str]]) -> list[str]:
    """Formatter normalizing indentation to two spaces in place."""
    return fake_tool("indent_fixer", INDENT_FIXER) + ["{file}"]


@pytest.fixture
def clean_linter(fake_tool: Callable[[str, str], list[str]]) -> list[str]:
    """Linter that never finds anything (empty JSON list)."""
    return fake_tool("clean_linter", CLEAN) + ["{file}"]
