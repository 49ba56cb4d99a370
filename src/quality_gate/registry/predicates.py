"""
Availability predicates for tool descriptors.

Two halves:
- context conditions (marker files, manifest dependencies, file content),
  evaluated by the classifier to decide whether a tool applies at all
- binary resolution, evaluated by the runner right before invocation
"""

from __future__ import annotations

import json
import re
import shutil
import tomllib
from pathlib import Path
from typing import Any, Iterator

import structlog

logger = structlog.get_logger()

CONTENT_SCAN_BYTES = 64 * 1024

# Project-local tool directories searched before PATH
LOCAL_BIN_DIRS = ("node_modules/.bin", ".venv/bin", "venv/bin")


def ancestor_dirs(start: Path, root: Path) -> Iterator[Path]:
    """Yield start and each parent up to and including root."""
    current = start
    while True:
        yield current
        if current == root or current.parent == current:
            return
        try:
            current.relative_to(root)
        except ValueError:
            return
        current = current.parent


def find_marker(file_path: Path, root: Path, markers: tuple[str, ...]) -> Path | None:
    """Closest marker file at or above the file's directory (bounded by root)."""
    for directory in ancestor_dirs(file_path.parent, root):
        for marker in markers:
            candidate = directory / marker
            if candidate.exists():
                return candidate
    return None


def manifest_declares(manifest_path: Path, dependency: str) -> bool:
    """Check whether a manifest declares a dependency."""
    try:
        text = manifest_path.read_text()
    except OSError as e:
        logger.debug("Manifest unreadable", manifest=str(manifest_path), error=str(e))
        return False

    if manifest_path.name == "package.json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return False
        if not isinstance(data, dict):
            return False
        for key in ("dependencies", "devDependencies", "peerDependencies"):
            section = data.get(key)
            if isinstance(section, dict) and dependency in section:
                return True
        return False

    if manifest_path.suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError:
            return False
        return _toml_declares(data, dependency)

    # requirements.txt and friends: one requirement per line
    pattern = re.compile(rf"^\s*{re.escape(dependency)}(\s|\[|=|<|>|!|~|;|$)", re.IGNORECASE)
    return any(pattern.match(line) for line in text.splitlines())


def _toml_declares(data: dict[str, Any], dependency: str) -> bool:
    """pyproject.toml: PEP 621 dependency lists, dependency groups, or a tool table."""
    name_re = re.compile(rf"^\s*{re.escape(dependency)}(\s|\[|=|<|>|!|~|;|$)", re.IGNORECASE)

    def _in_list(values: Any) -> bool:
        return isinstance(values, list) and any(
            isinstance(v, str) and name_re.match(v) for v in values
        )

    project = data.get("project") or {}
    if _in_list(project.get("dependencies")):
        return True
    for group in (project.get("optional-dependencies") or {}).values():
        if _in_list(group):
            return True
    for group in (data.get("dependency-groups") or {}).values():
        if _in_list(group):
            return True
    return dependency in (data.get("tool") or {})


def file_contains(file_path: Path, pattern: str) -> bool:
    """Match a regex against the head of a file."""
    try:
        with open(file_path, "rb") as f:
            head = f.read(CONTENT_SCAN_BYTES)
    except OSError:
        return False
    return re.search(pattern, head.decode("utf-8", errors="replace")) is not None


def resolve_binary(name: str, root: Path) -> str | None:
    """Find a tool binary: project-local bin directories first, then PATH."""
    if Path(name).is_absolute():
        return name if shutil.which(name) else None

    for rel in LOCAL_BIN_DIRS:
        found = shutil.which(name, path=str(root / rel))
        if found:
            return found
    return shutil.which(name)
