"""Discovery-related models for SMART on FHIR server metadata.

Contains the model for the `.well-known/smart-configuration` document and
the capability table that decides which of its fields are required.

See https://build.fhir.org/ig/HL7/smart-app-launch/conformance.html
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict

ALWAYS_REQUIRED_FIELDS: tuple[str, ...] = (
    "grant_types_supported",
    "token_endpoint",
    "capabilities",
    "code_challenge_methods_supported",
)

# capability -> fields that become required once the capability is declared
CAPABILITY_REQUIREMENTS: dict[str, tuple[str, ...]] = {
    "launch-ehr": ("authorization_endpoint",),
    "launch-standalone": ("authorization_endpoint",),
    "sso-openid-connect": ("issuer", "jwks_uri"),
}


def required_fields_for(capabilities: Iterable[str] | None) -> list[str]:
    """Return every field a document declaring `capabilities` must carry.

    Always-required fields come first, followed by conditional fields in
    table order, without duplicates.
    """
    declared = set(capabilities or ())
    required = list(ALWAYS_REQUIRED_FIELDS)
    for capability, extra_fields in CAPABILITY_REQUIREMENTS.items():
        if capability not in declared:
            continue
        for name in extra_fields:
            if name not in required:
                required.append(name)
    return required


class ServerMetadata(BaseModel):
    """SMART configuration published by a FHIR authorization server.

    Parsing is lenient: nothing is required at construction time and unknown
    keys are kept. Use `is_valid()` / `missing_fields()` to check the
    conditional requirements, which are recomputed on every call.
    """

    model_config = ConfigDict(extra="allow")

    # Always required for a valid document
    token_endpoint: str | None = None
    grant_types_supported: list[str] | None = None
    capabilities: list[str] | None = None
    code_challenge_methods_supported: list[str] | None = None

    # Conditionally required (see CAPABILITY_REQUIREMENTS)
    authorization_endpoint: str | None = None
    issuer: str | None = None
    jwks_uri: str | None = None

    # Optional
    token_endpoint_auth_methods_supported: list[str] | None = None
    registration_endpoint: str | None = None
    associated_endpoints: list[dict[str, Any]] | None = None
    user_access_brand_bundle: str | None = None
    user_access_brand_identifier: str | None = None
    scopes_supported: list[str] | None = None
    response_types_supported: list[str] | None = None
    management_endpoint: str | None = None
    introspection_endpoint: str | None = None
    revocation_endpoint: str | None = None

    def missing_fields(self) -> list[str]:
        """Required fields (given the declared capabilities) that are absent."""
        return [
            name
            for name in required_fields_for(self.capabilities)
            if getattr(self, name, None) is None
        ]

    def is_valid(self) -> bool:
        return not self.missing_fields()

    # Capability-only checks (do not verify that required fields are present)

    def has_capability(self, name: str) -> bool:
        return name in (self.capabilities or ())

    def ehr_launch_capability(self) -> bool:
        return self.has_capability("launch-ehr")

    def standalone_launch_capability(self) -> bool:
        return self.has_capability("launch-standalone")

    def openid_connect_capability(self) -> bool:
        return self.has_capability("sso-openid-connect")

    # Usable support: capability declared and the associated fields populated

    def supports_ehr_launch(self) -> bool:
        return self.ehr_launch_capability() and bool(self.authorization_endpoint)

    def supports_standalone_launch(self) -> bool:
        return self.standalone_launch_capability() and bool(self.authorization_endpoint)

    def supports_openid_connect(self) -> bool:
        return (
            self.openid_connect_capability()
            and bool(self.issuer)
            and bool(self.jwks_uri)
        )

    # Client types

    def supports_public_clients(self) -> bool:
        return self.has_capability("client-public")

    def supports_confidential_symmetric_clients(self) -> bool:
        return self.has_capability("client-confidential-symmetric")

    def supports_confidential_asymmetric_clients(self) -> bool:
        return self.has_capability("client-confidential-asymmetric")

    def supports_post_based_authorization(self) -> bool:
        return self.has_capability("authorize-post")
