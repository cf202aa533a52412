"""Client configuration models for SMART on FHIR authorization.

Contains the immutable client configuration, its fluent builder and the
supported client authentication types.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

from smart_auth.models.errors import ConfigurationError


class AuthType(str, Enum):
    """Client authentication style used at the token endpoint."""

    PUBLIC = "public"
    CONFIDENTIAL_SYMMETRIC = "confidential_symmetric"
    CONFIDENTIAL_ASYMMETRIC = "confidential_asymmetric"  # private_key_jwt, planned

    @classmethod
    def parse(cls, value: AuthType | str) -> AuthType:
        """Coerce a string into an AuthType.

        Raises:
            ValueError: If the value is not a supported auth type
        """
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(
                f"`{value}` is not supported. The supported auth types are {valid}"
            ) from None


def normalize_scopes(scopes: Sequence[str] | str | None) -> tuple[str, ...]:
    """Turn a scope list or space-delimited scope string into a tuple."""
    if not scopes:
        return ()
    if isinstance(scopes, str):
        return tuple(scopes.split())
    return tuple(scopes)


@dataclass(frozen=True)
class ClientConfiguration:
    """Immutable configuration for a SMART on FHIR client.

    `base_url` is the FHIR server used for discovery. `issuer` is sent as the
    `aud` authorization parameter. Either one may be given alone and the other
    defaults to it. The endpoints are resolved from discovery when left empty.

    Raises:
        ConfigurationError: If `client_id`, `redirect_uri` or both of
            `base_url` and `issuer` are missing
    """

    base_url: str | None = None
    client_id: str | None = None
    redirect_uri: str | None = None
    issuer: str | None = None
    client_secret: str | None = None
    scopes: tuple[str, ...] = field(default_factory=tuple)
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None

    REQUIRED_ATTRIBUTES = ("client_id", "redirect_uri")

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", normalize_scopes(self.scopes))
        if not self.issuer:
            object.__setattr__(self, "issuer", self.base_url)
        if not self.base_url:
            object.__setattr__(self, "base_url", self.issuer)

        missing = [] if self.base_url else ["base_url or issuer"]
        missing += [attr for attr in self.REQUIRED_ATTRIBUTES if not getattr(self, attr)]
        if missing:
            raise ConfigurationError(
                "Client configuration missing required attributes: "
                f"{', '.join(missing)}"
            )

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> ClientConfiguration:
        """Build a configuration from a raw mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{str(k): v for k, v in config.items() if str(k) in known})

    @classmethod
    def builder(cls) -> ClientConfigurationBuilder:
        return ClientConfigurationBuilder()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["scopes"] = list(self.scopes)
        return data


class ClientConfigurationBuilder:
    """Fluent builder for ClientConfiguration.

    Example:
        config = (
            ClientConfiguration.builder()
            .base_url("https://fhir.example.com")
            .client_id("my_client_id")
            .redirect_uri("https://app.example.com/callback")
            .scopes(["openid", "patient/*.read"])
            .build()
        )
    """

    def __init__(self) -> None:
        self._config: dict[str, Any] = {}

    def base_url(self, url: str) -> ClientConfigurationBuilder:
        self._config["base_url"] = url
        return self

    def issuer(self, issuer: str) -> ClientConfigurationBuilder:
        self._config["issuer"] = issuer
        return self

    def client_id(self, client_id: str) -> ClientConfigurationBuilder:
        self._config["client_id"] = client_id
        return self

    def client_secret(self, secret: str) -> ClientConfigurationBuilder:
        self._config["client_secret"] = secret
        return self

    def redirect_uri(self, uri: str) -> ClientConfigurationBuilder:
        self._config["redirect_uri"] = uri
        return self

    def scopes(self, scopes: Sequence[str] | str) -> ClientConfigurationBuilder:
        self._config["scopes"] = scopes
        return self

    def authorization_endpoint(self, url: str) -> ClientConfigurationBuilder:
        self._config["authorization_endpoint"] = url
        return self

    def token_endpoint(self, url: str) -> ClientConfigurationBuilder:
        self._config["token_endpoint"] = url
        return self

    def build(self) -> ClientConfiguration:
        return ClientConfiguration.from_mapping(self._config)
