"""
Tool Registry - Load the declarative language -> tools mapping.

The built-in registry ships as tools.yaml next to this module. Projects can
override any tool field, add new tools, or remap languages from their config;
adding a language or a tool is a data change, never new branching logic.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from quality_gate.errors import RegistryError
from quality_gate.gates.parsers import PARSERS
from quality_gate.models import DependencyCondition, ToolCategory, ToolDescriptor

logger = structlog.get_logger()

BUILTIN_REGISTRY_PATH = Path(__file__).parent / "tools.yaml"


@dataclass(frozen=True)
class LanguageSpec:
    """One language: the extensions it claims and its ordered tool ids."""

    name: str
    extensions: tuple[str, ...]
    tools: tuple[str, ...]


@dataclass
class ToolRegistry:
    """Registry of every known tool and language."""

    tools: dict[str, ToolDescriptor] = field(default_factory=dict)
    languages: dict[str, LanguageSpec] = field(default_factory=dict)
    version: int = 1

    @classmethod
    def load(
        cls,
        registry_path: Path | None = None,
        tool_overrides: dict[str, Any] | None = None,
        language_overrides: dict[str, Any] | None = None,
    ) -> ToolRegistry:
        """
        Load a registry YAML file and apply overrides.

        Args:
            registry_path: Registry file (defaults to the built-in tools.yaml)
            tool_overrides: Per-tool settings from the project config
            language_overrides: Per-language settings from the project config

        Raises:
            RegistryError: If any entry is invalid after merging
        """
        registry_path = registry_path or BUILTIN_REGISTRY_PATH
        if not registry_path.exists():
            raise RegistryError(f"Registry not found: {registry_path}")

        try:
            data = yaml.safe_load(registry_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise RegistryError(f"Invalid registry YAML in {registry_path}: {e}") from e

        if not isinstance(data, dict):
            raise RegistryError("Registry must be a YAML object")

        raw_tools = _merge_entries(data.get("tools") or {}, tool_overrides or {}, "tool")
        raw_languages = _merge_entries(
            data.get("languages") or {}, language_overrides or {}, "language"
        )

        tools = {tool_id: _parse_tool(tool_id, raw) for tool_id, raw in raw_tools.items()}
        languages: dict[str, LanguageSpec] = {}
        for name, raw in raw_languages.items():
            if raw.get("enabled", True) is False:
                continue
            languages[name] = _parse_language(name, raw, tools)

        registry = cls(tools=tools, languages=languages, version=int(data.get("version", 1)))
        registry._check_extension_clashes()

        logger.debug(
            "Loaded tool registry",
            path=str(registry_path),
            tool_count=len(tools),
            language_count=len(languages),
        )
        return registry

    def language_for(self, path: Path) -> str | None:
        """Language claimed by a file's extension, if any."""
        suffix = path.suffix.lower()
        for spec in self.languages.values():
            if suffix in spec.extensions:
                return spec.name
        return None

    def descriptors_for(self, language: str) -> list[ToolDescriptor]:
        """Registered descriptors for a language, in declaration order."""
        spec = self.languages.get(language)
        if spec is None:
            return []
        return [self.tools[tool_id] for tool_id in spec.tools]

    @property
    def extensions(self) -> frozenset[str]:
        """Every extension the gate recognizes."""
        return frozenset(ext for spec in self.languages.values() for ext in spec.extensions)

    def _check_extension_clashes(self) -> None:
        owners: dict[str, str] = {}
        for spec in self.languages.values():
            for ext in spec.extensions:
                if ext in owners:
                    raise RegistryError(
                        f"Extension {ext} claimed by both '{owners[ext]}' and '{spec.name}'"
                    )
                owners[ext] = spec.name


def _merge_entries(
    base: dict[str, Any], overrides: dict[str, Any], kind: str
) -> dict[str, dict[str, Any]]:
    """Merge override entries over base entries, field by field."""
    merged: dict[str, dict[str, Any]] = {}
    for key, value in base.items():
        if not isinstance(value, dict):
            raise RegistryError(f"{kind} '{key}' must be a mapping")
        merged[str(key)] = copy.deepcopy(value)

    for key, value in overrides.items():
        key = str(key)
        # Shorthand: `ruff: false` disables a tool, `css: false` drops a language
        if isinstance(value, bool):
            value = {"enabled": value}
        if not isinstance(value, dict):
            raise RegistryError(f"Override for {kind} '{key}' must be a mapping or a boolean")
        merged.setdefault(key, {}).update(copy.deepcopy(value))

    return merged


def _parse_tool(tool_id: str, raw: dict[str, Any]) -> ToolDescriptor:
    """Parse and validate one tool entry."""
    try:
        category = ToolCategory(raw.get("category"))
    except ValueError as e:
        raise RegistryError(
            f"Tool '{tool_id}' has unknown category {raw.get('category')!r}"
        ) from e

    command = raw.get("command")
    if isinstance(command, str):
        command = command.split()
    if not isinstance(command, list) or not command:
        raise RegistryError(f"Tool '{tool_id}' needs a non-empty command list")

    parser = str(raw.get("parser", "none"))
    fallback = raw.get("fallback_parser", "compiler-text")
    for name in (parser, fallback):
        if name is not None and name not in PARSERS:
            raise RegistryError(f"Tool '{tool_id}' uses unknown parser {name!r}")

    dependency = None
    dep_raw = raw.get("dependency")
    if dep_raw is not None:
        if not isinstance(dep_raw, dict) or not dep_raw.get("manifest") or not dep_raw.get("name"):
            raise RegistryError(f"Tool '{tool_id}' dependency needs 'manifest' and 'name'")
        dependency = DependencyCondition(
            manifest=str(dep_raw["manifest"]), name=str(dep_raw["name"])
        )

    markers = raw.get("markers") or []
    if isinstance(markers, str):
        markers = [markers]

    timeout = raw.get("timeout_seconds")

    try:
        return ToolDescriptor(
            id=tool_id,
            category=category,
            command=tuple(str(arg) for arg in command),
            markers=tuple(str(m) for m in markers),
            dependency=dependency,
            content=raw.get("content"),
            parser=parser,
            fallback_parser=fallback,
            success_codes=_codes(raw.get("success_codes", [0])),
            issue_codes=_codes(raw.get("issue_codes", [1])),
            fixed_codes=_codes(raw.get("fixed_codes", [])),
            timeout_seconds=float(timeout) if timeout is not None else None,
            enabled=bool(raw.get("enabled", True)),
            description=str(raw.get("description", "")),
        )
    except (TypeError, ValueError) as e:
        raise RegistryError(f"Tool '{tool_id}' has an invalid value: {e}") from e


def _parse_language(
    name: str, raw: dict[str, Any], tools: dict[str, ToolDescriptor]
) -> LanguageSpec:
    """Parse and validate one language entry."""
    extensions = raw.get("extensions") or []
    if isinstance(extensions, str):
        extensions = [extensions]
    normalized = []
    for ext in extensions:
        ext = str(ext).lower()
        normalized.append(ext if ext.startswith(".") else f".{ext}")

    tool_ids = [str(t) for t in raw.get("tools") or []]
    missing = [t for t in tool_ids if t not in tools]
    if missing:
        raise RegistryError(f"Language '{name}' references unknown tools: {', '.join(missing)}")

    return LanguageSpec(name=name, extensions=tuple(normalized), tools=tuple(tool_ids))


def _codes(value: Any) -> tuple[int, ...]:
    if isinstance(value, int):
        return (value,)
    return tuple(int(v) for v in value or [])
