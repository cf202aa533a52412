"""Security-related models for SMART authorization.

Contains the PKCE parameters generated for each authorization attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field

CODE_CHALLENGE_METHOD = "S256"


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters (RFC 7636).

    Immutable and scoped to one authorization attempt. The caller keeps the
    code_verifier (e.g. in session state) until the token exchange.
    """

    code_verifier: str = field()
    code_challenge: str = field()
    code_challenge_method: str = field(default=CODE_CHALLENGE_METHOD)

    def __post_init__(self) -> None:
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if len(self.code_challenge) != 43:
            raise ValueError("code_challenge must be 43 characters")
        if self.code_challenge_method != CODE_CHALLENGE_METHOD:
            raise ValueError("Only S256 code challenge method is supported")
