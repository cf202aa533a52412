"""Authorization flow models for SMART on FHIR.

Contains the authorization request and the result handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode, urlparse, urlunparse

from smart_auth.models.security import CODE_CHALLENGE_METHOD


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for a SMART launch."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    aud: str
    code_challenge: str
    code_challenge_method: str = CODE_CHALLENGE_METHOD
    launch: str | None = None

    def to_query_params(self) -> dict[str, str]:
        """Query parameters with empty values dropped."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "launch": self.launch,
            "scope": self.scope,
            "state": self.state,
            "aud": self.aud,
            "code_challenge_method": self.code_challenge_method,
            "code_challenge": self.code_challenge,
        }
        return {key: value for key, value in params.items() if value}

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL.

        Query parameters already present on the endpoint are preserved.
        """
        parsed = urlparse(self.authorization_endpoint)
        query = urlencode(self.to_query_params())
        if parsed.query:
            query = f"{parsed.query}&{query}"
        return urlunparse(parsed._replace(query=query))


@dataclass(frozen=True)
class AuthorizationRequestResult:
    """Output of building an authorization URL.

    The caller owns this value: redirect the user to `auth_url`, and keep
    `state` and `code_verifier` for the callback and the token exchange.
    """

    auth_url: str
    state: str
    code_verifier: str
