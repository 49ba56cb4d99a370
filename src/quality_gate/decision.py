"""
GateDecision - The exit-code contract with the calling workflow.

    outcome          exit  caller behaviour
    pass             0     continue silently
    formatted-pass   0     continue; the report is informational
    blocked          2     block; surface the report (stderr) to the agent
    internal error   1     the gate could not start (bad config); non-blocking

EXIT_CODES is the only place these values are defined.
"""

from __future__ import annotations

from enum import IntEnum

from quality_gate.models import GateStatus, GateVerdict


class ExitCode(IntEnum):
    CONTINUE = 0
    ERROR = 1
    BLOCK = 2


EXIT_CODES: dict[GateStatus, ExitCode] = {
    GateStatus.PASS: ExitCode.CONTINUE,
    GateStatus.FORMATTED_PASS: ExitCode.CONTINUE,
    GateStatus.BLOCKED: ExitCode.BLOCK,
}


def decide(verdict: GateVerdict) -> ExitCode:
    """Exit code for a verdict."""
    return EXIT_CODES[verdict.status]
