"""
Error taxonomy for the SLA vault.

Transport, format and sink errors are raised by the internal helpers of
each component and turned into an empty result plus a log line at the
component boundary. Only ``ConfigurationError`` is allowed to stop the
process, and only at start-up.
"""

from __future__ import annotations

from typing import Any


class SLAVaultError(Exception):
    """Base class for all vault errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(SLAVaultError):
    """The configuration document is missing or malformed."""


class TransportError(SLAVaultError):
    """The controller could not be reached."""


class FormatError(SLAVaultError):
    """A controller payload did not decode into metric series."""


class SinkError(SLAVaultError):
    """Connecting or writing to the time-series store failed."""
