"""Token endpoint request models for SMART on FHIR.

Token requests are sent as application/x-www-form-urlencoded bodies
(RFC 6749 Section 4.1.3 and Section 6).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

TokenResponse = dict[str, Any]


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code grant request (RFC 6749 Section 4.1.3).

    `client_id` is only placed in the body for public clients; confidential
    clients identify themselves through the Authorization header instead.
    """

    code: str
    redirect_uri: str
    code_verifier: str
    client_id: str | None = None
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": self.code_verifier,
        }
        if self.client_id:
            data["client_id"] = self.client_id

        return data


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token grant request (RFC 6749 Section 6).

    An empty scope list means the same scopes as the original grant.
    """

    refresh_token: str
    scopes: Sequence[str] = field(default_factory=tuple)
    client_id: str | None = None
    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        data = {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
        }
        if self.scopes:
            data["scope"] = " ".join(self.scopes)
        if self.client_id:
            data["client_id"] = self.client_id

        return data
