import base64
import hashlib

import pytest

from smart_auth.models.errors import ValidationError
from smart_auth.primitives.pkce import (
    PKCEManager,
    generate_code_challenge,
    generate_code_verifier,
    validate_code_verifier,
)

RFC_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
RFC_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


class TestCodeVerifier:
    def test_generated_verifier_is_128_unreserved_characters(self) -> None:
        # Act
        verifier = generate_code_verifier()

        # Assert
        assert len(verifier) == 128
        assert "=" not in verifier
        validate_code_verifier(verifier)

    def test_generated_verifiers_are_unique(self) -> None:
        # Act
        verifiers = {generate_code_verifier() for _ in range(20)}

        # Assert
        assert len(verifiers) == 20

    @pytest.mark.parametrize("length", [43, 128])
    def test_boundary_lengths_are_accepted(self, length: int) -> None:
        validate_code_verifier("a" * length)

    @pytest.mark.parametrize("length", [0, 42, 129])
    def test_out_of_range_lengths_are_rejected(self, length: int) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_code_verifier("a" * length)

        assert f"got {length}" in str(exc_info.value)

    @pytest.mark.parametrize("char", ["+", "/", "=", " ", "é"])
    def test_reserved_characters_are_rejected(self, char: str) -> None:
        with pytest.raises(ValidationError):
            validate_code_verifier("a" * 50 + char)

    def test_all_unreserved_characters_are_accepted(self) -> None:
        validate_code_verifier("AZaz09-._~" * 5)


class TestCodeChallenge:
    def test_rfc7636_known_vector(self) -> None:
        assert generate_code_challenge(RFC_VERIFIER) == RFC_CHALLENGE

    def test_challenge_is_deterministic(self) -> None:
        # Arrange
        verifier = generate_code_verifier()

        # Act & Assert
        assert generate_code_challenge(verifier) == generate_code_challenge(verifier)

    def test_challenge_is_unpadded_base64url_sha256(self) -> None:
        # Arrange
        verifier = generate_code_verifier()
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("ascii")).digest())
            .decode("ascii")
            .rstrip("=")
        )

        # Act
        challenge = generate_code_challenge(verifier)

        # Assert
        assert challenge == expected
        assert len(challenge) == 43

    def test_invalid_verifier_is_rejected_before_hashing(self) -> None:
        with pytest.raises(ValidationError):
            generate_code_challenge("too-short")


class TestPKCEManager:
    def test_generate_parameters_crypto_requirements(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        params = pkce_manager.generate_parameters()

        # Assert
        assert len(params.code_verifier) == 128
        assert len(params.code_challenge) == 43
        assert params.code_challenge_method == "S256"
        assert params.code_challenge == generate_code_challenge(params.code_verifier)

    def test_generate_parameters_uniqueness(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        params1 = pkce_manager.generate_parameters()
        params2 = pkce_manager.generate_parameters()

        # Assert
        assert params1.code_verifier != params2.code_verifier
        assert params1.code_challenge != params2.code_challenge

    def test_parameters_for_external_verifier(self) -> None:
        # Act
        params = PKCEManager().parameters_for(RFC_VERIFIER)

        # Assert
        assert params.code_verifier == RFC_VERIFIER
        assert params.code_challenge == RFC_CHALLENGE

    def test_parameters_for_rejects_malformed_verifier(self) -> None:
        with pytest.raises(ValidationError):
            PKCEManager().parameters_for("a+b" * 20)
