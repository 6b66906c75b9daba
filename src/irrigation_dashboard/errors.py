"""Exception hierarchy for the irrigation dashboard."""

from __future__ import annotations


class DashboardError(Exception):
    """Base exception for all irrigation dashboard errors."""


class TransportError(DashboardError):
    """Raised when an HTTP request to the controller cannot be completed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Store *message* and the HTTP *status_code* when one was received."""
        super().__init__(message)
        self.status_code = status_code


class FetchTimeoutError(TransportError):
    """Raised when a request exceeded its deadline and was cancelled."""


class MalformedPayloadError(DashboardError):
    """Raised when a controller response cannot be interpreted."""


class InsufficientDataError(DashboardError):
    """Raised when a series holds too few samples to plot."""


class DeviceActionError(DashboardError):
    """Raised when a device command (restart, update, config) is rejected."""
