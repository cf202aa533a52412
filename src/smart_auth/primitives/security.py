"""Security utilities for SMART authorization flows.

Provides state parameter generation and the constant-time comparison a
redirect handler uses to check it.
"""

from __future__ import annotations

import secrets


def generate_state() -> str:
    """Generate a CSRF state parameter: 16 secure random bytes as 32 hex characters."""
    return secrets.token_hex(16)


def validate_state(expected: str | None, actual: str | None) -> bool:
    """Compare the state sent in the authorization request with the callback's.

    Returns:
        True if both are present and equal
    """
    if not expected or not actual:
        return False
    return secrets.compare_digest(expected, actual)
