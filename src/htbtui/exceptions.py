"""htbtui exception hierarchy."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ActionError",
    "ConfigError",
    "FetchError",
    "GatewayError",
    "HTBTuiError",
    "MalformedResponseError",
]


class HTBTuiError(Exception):
    """Base class for htbtui exceptions."""


class ConfigError(HTBTuiError):
    """Raised when configuration is missing or invalid."""


class GatewayError(HTBTuiError):
    """Raised when a request against the labs API fails."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class FetchError(GatewayError):
    """Raised when any page of the catalog listing cannot be retrieved."""


class MalformedResponseError(FetchError):
    """Raised when a response body does not have the expected shape."""


class ActionError(GatewayError):
    """Raised when a start or flag submission is rejected."""
