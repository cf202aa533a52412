"""SMART on FHIR client façade.

Coordinates configuration, discovery and the protocol engine behind one
entry point.

Example:
    config = ClientConfiguration(
        base_url="https://fhir.example.com",
        client_id="my_client_id",
        redirect_uri="https://app.example.com/callback",
        scopes=["openid", "profile", "patient/*.read"],
    )
    client = SmartClient(config)

    # /launch: redirect the user, keep state and code_verifier in the session
    auth = client.authorize_url()

    # /callback: compare state, then exchange the code
    tokens = client.request_access_token(code=code, code_verifier=verifier)

    # later, on demand
    tokens = client.refresh_token(refresh_token=tokens["refresh_token"])
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from smart_auth.models.config import AuthType, ClientConfiguration
from smart_auth.models.discovery import ServerMetadata
from smart_auth.models.flow import AuthorizationRequestResult
from smart_auth.models.tokens import TokenResponse
from smart_auth.services.discovery import SmartDiscovery
from smart_auth.services.smart import SmartProtocol
from smart_auth.transport.http import HttpClient, Transport

logger = logging.getLogger(__name__)


class SmartClient:
    """Unified client for SMART on FHIR authorization flows.

    The protocol engine is built lazily for the current auth type and dropped
    whenever the auth type changes. Discovery belongs to the client, so
    switching auth type never re-fetches the server metadata.

    Not safe for concurrent first use from several threads; guard the
    instance with a lock if it is shared.
    """

    def __init__(
        self,
        config: ClientConfiguration | Mapping[str, Any],
        auth_type: AuthType | str = AuthType.PUBLIC,
        http_client: Transport | None = None,
        logger: logging.Logger | None = None,
        strict_discovery: bool = False,
    ):
        """Initialize the SMART client.

        Args:
            config: Client configuration or a mapping of its attributes
            auth_type: public (default), confidential_symmetric or
                confidential_asymmetric
            http_client: Transport for all HTTP calls; an HttpClient is
                created (and owned) when omitted
            logger: Logger passed to discovery and the protocol engine
            strict_discovery: Reject discovery documents missing fields their
                capabilities require

        Raises:
            ConfigurationError: If required configuration is missing
            ValueError: If auth_type is not supported
        """
        self.config = (
            config
            if isinstance(config, ClientConfiguration)
            else ClientConfiguration.from_mapping(config)
        )
        self._auth_type = AuthType.parse(auth_type)
        self._owns_http_client = http_client is None
        self._http_client = http_client or HttpClient()
        self._logger = logger
        self._discovery = SmartDiscovery(
            self.config.issuer,
            http_client=self._http_client,
            logger=logger,
            strict=strict_discovery,
        )
        self._smart_client: SmartProtocol | None = None
        self._smart_metadata: ServerMetadata | None = None

    @property
    def auth_type(self) -> AuthType:
        return self._auth_type

    @auth_type.setter
    def auth_type(self, new_auth_type: AuthType | str) -> None:
        self.set_auth_type(new_auth_type)

    def set_auth_type(self, new_auth_type: AuthType | str) -> AuthType:
        """Change the client auth type.

        The cached protocol engine is discarded so the next request is built
        for the new auth type.

        Example:
            client = SmartClient(config)
            if client.smart_metadata().supports_confidential_symmetric_clients():
                client.set_auth_type("confidential_symmetric")

        Raises:
            ValueError: If the auth type is not supported
        """
        self._auth_type = AuthType.parse(new_auth_type)
        self._smart_client = None
        logger.debug(f"Auth type set to {self._auth_type.value}")
        return self._auth_type

    def smart_metadata(self) -> ServerMetadata:
        """Discover the server's SMART configuration once and memoize it."""
        if self._smart_metadata is None:
            self._smart_metadata = self._protocol().well_known_config()
        return self._smart_metadata

    def authorize_url(
        self,
        launch: str | None = None,
        custom_scopes: Sequence[str] | str | None = None,
    ) -> AuthorizationRequestResult:
        return self._protocol().authorization_url(
            launch=launch, custom_scopes=custom_scopes
        )

    def request_access_token(
        self,
        code: str,
        code_verifier: str,
        client_secret: str | None = None,
    ) -> TokenResponse:
        return self._protocol().request_access_token(
            code=code,
            code_verifier=code_verifier,
            client_secret=client_secret or self.config.client_secret,
        )

    def refresh_token(
        self,
        refresh_token: str,
        scopes: Sequence[str] | str | None = None,
        client_secret: str | None = None,
    ) -> TokenResponse:
        return self._protocol().refresh_token(
            refresh_token=refresh_token,
            scopes=scopes,
            client_secret=client_secret or self.config.client_secret,
        )

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> SmartClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _protocol(self) -> SmartProtocol:
        if self._smart_client is None:
            self._smart_client = SmartProtocol(
                self.config,
                auth_type=self._auth_type,
                http_client=self._http_client,
                discovery=self._discovery,
                logger=self._logger,
            )
        return self._smart_client
