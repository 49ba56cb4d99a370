"""
Gate Configuration - All settings for a quality gate run.

Loaded from .quality-gate/config.yaml under the project root, with
environment variable overrides applied on top.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from quality_gate.errors import ConfigError

CONFIG_RELPATH = Path(".quality-gate") / "config.yaml"

DEFAULT_EXCLUDE: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    ".venv",
    "venv",
    "__pycache__",
    "dist",
    "build",
    "out",
    ".next",
    ".nuxt",
    "coverage",
    "htmlcov",
    "target",
    "vendor",
    ".terraform",
    ".mypy_cache",
    ".ruff_cache",
    ".pytest_cache",
    ".tox",
    ".qlty",
    ".cache",
    ".quality-gate",
    "*.egg-info",
    "*.min.js",
    "*.min.css",
    "*.lock",
)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass
class GateConfig:
    """Main gate configuration."""

    # File selection
    lookback_seconds: float = 60.0
    max_depth: int = 8
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))

    # Tool execution
    tool_timeout_seconds: float = 10.0

    # Reporting
    max_preview: int = 3
    color: bool | None = None  # None: let rich detect the terminal
    timing: bool = False
    verbose: bool = False

    # Registry overrides, merged over the built-in registry
    tools: dict[str, Any] = field(default_factory=dict)
    languages: dict[str, Any] = field(default_factory=dict)

    # Paths
    root: Path = field(default_factory=Path.cwd)
    config_path: Path | None = None

    @classmethod
    def load(cls, root: Path, config_path: Path | None = None) -> GateConfig:
        """Load configuration for a project root."""
        path = config_path or root / CONFIG_RELPATH
        if not path.exists():
            if config_path is not None:
                raise ConfigError(f"Config not found: {config_path}")
            return cls(root=root)

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a mapping: {path}")

        config = cls.from_dict(data, root=root)
        config.config_path = path
        return config

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], root: Path | None = None) -> GateConfig:
        """Create config from dictionary. Unknown keys are ignored."""
        data = dict(data or {})

        exclude = list(DEFAULT_EXCLUDE)
        if "exclude" in data:
            exclude = _str_list(data["exclude"], "exclude")
        exclude.extend(_str_list(data.get("extra_exclude", []), "extra_exclude"))

        tools = data.get("tools") or {}
        languages = data.get("languages") or {}
        if not isinstance(tools, dict):
            raise ConfigError("'tools' must be a mapping of tool id to settings")
        if not isinstance(languages, dict):
            raise ConfigError("'languages' must be a mapping of language to settings")

        return cls(
            lookback_seconds=_number(data.get("lookback_seconds", 60.0), "lookback_seconds"),
            max_depth=int(_number(data.get("max_depth", 8), "max_depth")),
            exclude=exclude,
            tool_timeout_seconds=_number(
                data.get("tool_timeout_seconds", 10.0), "tool_timeout_seconds"
            ),
            max_preview=int(_number(data.get("max_preview", 3), "max_preview")),
            color=_optional_bool(data.get("color"), "color"),
            timing=_flag(data.get("timing", False), "timing"),
            verbose=_flag(data.get("verbose", False), "verbose"),
            tools={str(k): v for k, v in tools.items()},
            languages={str(k): v for k, v in languages.items()},
            root=root or Path.cwd(),
        )

    def with_env(self, environ: Mapping[str, str] | None = None) -> GateConfig:
        """Return a copy with QUALITY_GATE_* environment overrides applied."""
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        if "QUALITY_GATE_LOOKBACK_SECONDS" in env:
            overrides["lookback_seconds"] = _number(
                env["QUALITY_GATE_LOOKBACK_SECONDS"], "QUALITY_GATE_LOOKBACK_SECONDS"
            )
        if "QUALITY_GATE_TIMEOUT" in env:
            overrides["tool_timeout_seconds"] = _number(
                env["QUALITY_GATE_TIMEOUT"], "QUALITY_GATE_TIMEOUT"
            )
        if "QUALITY_GATE_VERBOSE" in env:
            overrides["verbose"] = _env_flag(env["QUALITY_GATE_VERBOSE"], "QUALITY_GATE_VERBOSE")
        if "QUALITY_GATE_TIMING" in env:
            overrides["timing"] = _env_flag(env["QUALITY_GATE_TIMING"], "QUALITY_GATE_TIMING")
        if env.get("NO_COLOR"):
            overrides["color"] = False

        return replace(self, **overrides) if overrides else self


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from e
    if number < 0:
        raise ConfigError(f"'{key}' must not be negative, got {value!r}")
    return number


def _str_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of glob patterns")
    return [str(v) for v in value]


def _flag(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"'{key}' must be true or false, got {value!r}")


def _optional_bool(value: Any, key: str) -> bool | None:
    if value is None or value == "auto":
        return None
    if isinstance(value, bool):
        return value
    raise ConfigError(f"'{key}' must be true, false or auto, got {value!r}")


def _env_flag(value: str, key: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{key} must be a boolean flag, got {value!r}")
