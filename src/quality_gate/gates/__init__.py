"""
Gates - Quality tool execution and output parsing.

Modules:
    runner      - Run formatters, linters and type-checkers with timeouts
    parsers     - Structured and text parsers for tool output
"""

from quality_gate.gates.runner import ToolRunner

__all__ = ["ToolRunner"]
