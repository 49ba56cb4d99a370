"""
Quality Gate: post-edit format/lint/type-check orchestrator.

Runs after a file is modified during an automated coding session:
- Finds the most recently modified source file
- Maps it to the formatters, linters and type-checkers registered for its language
- Runs each tool in isolation with a timeout
- Aggregates the results into one verdict and an exit code for the caller
"""

__version__ = "0.1.0"

from quality_gate.config import GateConfig
from quality_gate.decision import EXIT_CODES, ExitCode
from quality_gate.models import (
    FileContext,
    GateStatus,
    GateVerdict,
    ToolCategory,
    ToolDescriptor,
    ToolResult,
    ToolStatus,
)
from quality_gate.pipeline import QualityGate

__all__ = [
    "EXIT_CODES",
    "ExitCode",
    "FileContext",
    "GateConfig",
    "GateStatus",
    "GateVerdict",
    "QualityGate",
    "ToolCategory",
    "ToolDescriptor",
    "ToolResult",
    "ToolStatus",
]
