"""
Exceptions raised by the quality gate.

Only configuration and registry errors ever reach the caller; tool failures and
output parsing failures are recorded on the ToolResult instead.
"""


class QualityGateError(Exception):
    """Base exception for quality gate errors."""

    pass


class ConfigError(QualityGateError):
    """Config file or environment override is invalid."""

    pass


class RegistryError(QualityGateError):
    """A tool or language entry in the registry is invalid."""

    pass


class OutputParseError(QualityGateError):
    """Tool output did not match the format its parser expects."""

    pass
