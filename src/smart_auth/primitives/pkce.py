"""PKCE (Proof Key for Code Exchange) primitives for SMART authorization.

Implements RFC 7636 code verifier generation, S256 challenge derivation and
verifier validation to prevent authorization code interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import re
import secrets

from smart_auth.models.errors import ValidationError
from smart_auth.models.security import CODE_CHALLENGE_METHOD, PKCEParameters

VERIFIER_MIN_LENGTH = 43
VERIFIER_MAX_LENGTH = 128

# RFC 7636 Section 4.1: unreserved characters only
_VERIFIER_PATTERN = re.compile(r"\A[A-Za-z0-9\-._~]+\Z")


def generate_code_verifier() -> str:
    """Generate a cryptographically secure code verifier.

    96 random bytes encode to exactly 128 URL-safe Base64 characters, the
    maximum length RFC 7636 allows.
    """
    return base64.urlsafe_b64encode(secrets.token_bytes(96)).decode("ascii").rstrip("=")


def validate_code_verifier(code_verifier: str) -> None:
    """Check a generated or externally supplied code verifier.

    Raises:
        ValidationError: If the length is outside 43-128 or the verifier
            contains characters outside [A-Za-z0-9-._~]
    """
    length = len(code_verifier)
    if not (VERIFIER_MIN_LENGTH <= length <= VERIFIER_MAX_LENGTH):
        raise ValidationError(
            f"Code verifier must be between {VERIFIER_MIN_LENGTH} and "
            f"{VERIFIER_MAX_LENGTH} characters long, got {length}"
        )
    if not _VERIFIER_PATTERN.match(code_verifier):
        raise ValidationError(
            "Code verifier contains invalid characters. "
            "Only unreserved characters are allowed."
        )


def generate_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for a code verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Raises:
        ValidationError: If the code verifier is malformed
    """
    validate_code_verifier(code_verifier)
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class PKCEManager:
    """Generates PKCE parameters for SMART authorization attempts.

    Every call produces a fresh verifier; nothing is kept between calls.
    """

    def generate_parameters(self) -> PKCEParameters:
        code_verifier = generate_code_verifier()
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=generate_code_challenge(code_verifier),
            code_challenge_method=CODE_CHALLENGE_METHOD,
        )

    def parameters_for(self, code_verifier: str) -> PKCEParameters:
        """Build parameters around an externally supplied verifier.

        Raises:
            ValidationError: If the code verifier is malformed
        """
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=generate_code_challenge(code_verifier),
        )
