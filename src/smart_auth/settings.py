"""Transport settings for the SMART client.

Settings are read from the environment once, validated eagerly, and passed
explicitly to the transport; nothing here is process-wide state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from smart_auth.version import __version__

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = f"smart-auth/{__version__}"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class HttpSettings:
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT


def load_settings() -> HttpSettings:
    """Read SMART_AUTH_TIMEOUT and SMART_AUTH_USER_AGENT.

    Raises:
        ValueError: If the timeout is not a positive number
    """
    timeout_raw = _getenv("SMART_AUTH_TIMEOUT", str(DEFAULT_TIMEOUT))
    user_agent = _getenv("SMART_AUTH_USER_AGENT", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"SMART_AUTH_TIMEOUT must be a number (got {timeout_raw!r})"
        ) from None

    if timeout <= 0:
        raise ValueError(f"SMART_AUTH_TIMEOUT must be positive (got {timeout_raw!r})")

    return HttpSettings(timeout=timeout, user_agent=user_agent)
