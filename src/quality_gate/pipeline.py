"""
Quality Gate Pipeline - Wire the components and walk one run to a decision.

    Idle -> FileDetected -> Classified -> ToolsRunning -> Aggregated -> Rendered -> Decided

Nothing to evaluate at FileDetected or Classified goes straight to Decided(pass).
The gate keeps no state between runs.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from enum import Enum
from pathlib import Path

import structlog

from quality_gate.aggregator import ResultAggregator
from quality_gate.config import GateConfig
from quality_gate.decision import decide
from quality_gate.gates.runner import ToolRunner
from quality_gate.models import GateStatus, GateVerdict
from quality_gate.registry import LanguageClassifier, ToolRegistry
from quality_gate.report import ReportRenderer
from quality_gate.selector import FileSelector

logger = structlog.get_logger()


class Stage(str, Enum):
    IDLE = "idle"
    FILE_DETECTED = "file-detected"
    CLASSIFIED = "classified"
    TOOLS_RUNNING = "tools-running"
    AGGREGATED = "aggregated"
    RENDERED = "rendered"
    DECIDED = "decided"


class QualityGate:
    """
    One gate invocation: select, classify, run, aggregate, render, decide.

    Components can be injected for testing; by default they are built from
    the config and the built-in registry merged with the config's overrides.
    """

    def __init__(
        self,
        config: GateConfig,
        registry: ToolRegistry | None = None,
        runner: ToolRunner | None = None,
        renderer: ReportRenderer | None = None,
    ) -> None:
        self.config = config
        self.root = config.root.resolve()
        self.registry = registry or ToolRegistry.load(
            tool_overrides=config.tools,
            language_overrides=config.languages,
        )
        self.classifier = LanguageClassifier(self.registry)
        self.selector = FileSelector(
            root=self.root,
            language_for=self.classifier.language_for,
            lookback_seconds=config.lookback_seconds,
            max_depth=config.max_depth,
            exclude=config.exclude,
        )
        self.runner = runner or ToolRunner(self.root, default_timeout=config.tool_timeout_seconds)
        self.aggregator = ResultAggregator()
        self.renderer = renderer or ReportRenderer(
            color=_use_color(config.color),
            max_preview=config.max_preview,
            timing=config.timing,
        )
        self.stage = Stage.IDLE

    def run(self, file: Path | None = None, now: float | None = None) -> GateVerdict:
        """
        Evaluate one file and return the final verdict.

        Args:
            file: Explicit file to gate; when None the newest recently
                modified file is selected
            now: Reference time for the lookback window (defaults to the clock)
        """
        self.stage = Stage.IDLE

        if file is not None:
            ctx = self.selector.context_for(file)
        else:
            ctx = self.selector.select(now=now)
        if ctx is None:
            return self._decide(GateVerdict(status=GateStatus.PASS), reason="no file")
        self._advance(Stage.FILE_DETECTED, file=ctx.relpath, language=ctx.language)

        tools = self.classifier.classify(ctx)
        if not tools:
            return self._decide(GateVerdict(status=GateStatus.PASS, file=ctx), reason="no tools")
        self._advance(Stage.CLASSIFIED, tools=[t.descriptor.id for t in tools])

        self._advance(Stage.TOOLS_RUNNING)
        results = self.runner.run_all(ctx, tools)

        verdict = self.aggregator.aggregate(results, file=ctx)
        self._advance(Stage.AGGREGATED, status=verdict.status.value)

        verdict = replace(verdict, report=self.renderer.render(verdict))
        self._advance(Stage.RENDERED)

        return self._decide(verdict)

    def _decide(self, verdict: GateVerdict, reason: str | None = None) -> GateVerdict:
        verdict = replace(verdict, exit_code=int(decide(verdict)))
        self._advance(Stage.DECIDED, reason=reason, **verdict.to_dict())
        return verdict

    def _advance(self, stage: Stage, **context: object) -> None:
        logger.debug("Gate stage", previous=self.stage.value, stage=stage.value, **context)
        self.stage = stage


def _use_color(setting: bool | None) -> bool:
    if setting is not None:
        return setting
    return sys.stderr.isatty()
