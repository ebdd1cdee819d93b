"""
Exception types raised by the StatsD probe harness.
"""

from typing import List, Optional


class ProbeHarnessError(Exception):
    """Base class for harness errors."""
    pass


class ProtocolError(ProbeHarnessError):
    """Raised when a StatsD line cannot be decoded."""

    def __init__(self, message: str, line: Optional[str] = None):
        self.message = message
        self.line = line
        super().__init__(message)


class CollectorError(ProbeHarnessError):
    """Raised when the mock collector cannot be started."""
    pass


class ConfigValidationError(ProbeHarnessError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")
