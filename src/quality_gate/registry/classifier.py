"""
LanguageClassifier - Map a file to the tool descriptors that apply to it.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from quality_gate.models import ApplicableTool, FileContext, ToolDescriptor
from quality_gate.registry.loader import ToolRegistry
from quality_gate.registry.predicates import file_contains, find_marker, manifest_declares

logger = structlog.get_logger()


class LanguageClassifier:
    """
    Resolves a FileContext to its ordered list of applicable tools.

    A tool applies when it is enabled and all of its context conditions hold:
    a marker file in an ancestor directory, a dependency declared in the
    nearest manifest, and a content pattern in the file itself. Binary
    presence is left to the runner so a missing tool still shows up as
    skipped rather than silently vanishing.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    def language_for(self, path: Path) -> str | None:
        return self.registry.language_for(path)

    def classify(self, ctx: FileContext) -> list[ApplicableTool]:
        """Return applicable tools ordered formatters, linters, type-checkers."""
        applicable: list[ApplicableTool] = []

        for descriptor in self.registry.descriptors_for(ctx.language):
            if not descriptor.enabled:
                logger.debug("Tool disabled", tool=descriptor.id)
                continue

            applies, config_path = self._check_conditions(descriptor, ctx)
            if not applies:
                continue
            applicable.append(ApplicableTool(descriptor=descriptor, config_path=config_path))

        # Stable sort: declaration order is kept within a category
        applicable.sort(key=lambda tool: tool.descriptor.category.rank)

        logger.debug(
            "Classified file",
            file=ctx.relpath,
            language=ctx.language,
            tools=[tool.descriptor.id for tool in applicable],
        )
        return applicable

    def _check_conditions(
        self, descriptor: ToolDescriptor, ctx: FileContext
    ) -> tuple[bool, Path | None]:
        """Whether the tool applies, and the marker file that enabled it."""
        config_path: Path | None = None

        if descriptor.markers:
            config_path = find_marker(ctx.path, ctx.root, descriptor.markers)
            if config_path is None:
                logger.debug("Marker not found", tool=descriptor.id, markers=descriptor.markers)
                return False, None

        if descriptor.dependency is not None:
            manifest = find_marker(ctx.path, ctx.root, (descriptor.dependency.manifest,))
            if manifest is None or not manifest_declares(manifest, descriptor.dependency.name):
                logger.debug(
                    "Dependency not declared",
                    tool=descriptor.id,
                    dependency=descriptor.dependency.name,
                )
                return False, None

        if descriptor.content and not file_contains(ctx.path, descriptor.content):
            logger.debug("Content pattern not matched", tool=descriptor.id)
            return False, None

        return True, config_path
