"""Exception hierarchy for SMART on FHIR authorization errors.

Each failure mode has its own type so callers can tell a bad local
configuration apart from a misbehaving authorization server.
"""

from __future__ import annotations

from typing import Any


class SmartAuthError(Exception):
    """Base exception for all SMART authorization errors.

    Args:
        message: Human readable description
        details: Optional diagnostic data such as the upstream HTTP status
            and response body
    """

    def __init__(self, message: str = "", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details


class ConfigurationError(SmartAuthError):
    """Raised when required client configuration is missing or invalid."""

    pass


class DiscoveryError(SmartAuthError):
    """Raised when SMART configuration discovery fails."""

    pass


class AuthError(SmartAuthError):
    """Raised when a token exchange or refresh fails."""

    pass


class ValidationError(SmartAuthError):
    """Raised when a PKCE code verifier is malformed."""

    pass


class NetworkError(SmartAuthError):
    """Raised by the transport when an HTTP request fails below the protocol layer."""

    pass
