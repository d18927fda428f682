"""
Exception types raised by the store and the YouTube client.

The HTTP layer maps each one to a status code via ``status_code``.
"""
from typing import Any, Dict, Optional


class MetricsApiError(Exception):
    """Base class for errors that surface as a JSON ``{"error": ...}`` body."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class StoreUnreadable(MetricsApiError):
    """The metrics file is missing or does not hold a JSON object."""


class StoreUnwritable(MetricsApiError):
    """The metrics file could not be written (disk full, permissions, ...)."""


class NotFound(MetricsApiError):
    status_code = 404


class InvalidInput(MetricsApiError):
    status_code = 400


class NotAuthenticated(MetricsApiError):
    """No YouTube token has been stored yet."""
    status_code = 401

    def __init__(self, message: str = "YouTube not authenticated", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ChannelNotFound(MetricsApiError):
    status_code = 404

    def __init__(self, handle: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"YouTube channel '{handle}' not found", details=details)


class UpstreamError(MetricsApiError):
    """Any network or application-level failure from Google's APIs."""
