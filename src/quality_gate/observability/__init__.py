"""
Observability - Logging setup for gate runs.
"""

from quality_gate.observability.logging import configure_logging

__all__ = ["configure_logging"]
