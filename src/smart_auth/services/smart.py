"""SMART on FHIR authorization protocol engine.

Builds authorization URLs and performs the authorization code and refresh
token exchanges, shaping each token request for the client auth type:

- public: `client_id` in the form body, no Authorization header
- confidential_symmetric: HTTP Basic `client_id:client_secret`, no
  `client_id` in the body
- confidential_asymmetric: reserved for private_key_jwt, not implemented

Token responses are returned unmodified as dicts with string keys and must
carry a non-empty `access_token`.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from smart_auth.models.config import AuthType, ClientConfiguration, normalize_scopes
from smart_auth.models.discovery import ServerMetadata
from smart_auth.models.errors import AuthError, ConfigurationError, NetworkError
from smart_auth.models.flow import AuthorizationRequest, AuthorizationRequestResult
from smart_auth.models.tokens import RefreshTokenRequest, TokenRequest, TokenResponse
from smart_auth.primitives.pkce import PKCEManager
from smart_auth.primitives.security import generate_state
from smart_auth.services.discovery import SmartDiscovery
from smart_auth.transport.http import HttpClient, Transport, truncate_body

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class SmartProtocol:
    """SMART on FHIR OAuth2 client for one auth type.

    Endpoints missing from the configuration are resolved from discovery the
    first time they are needed and stay fixed for the life of the instance.
    """

    REQUIRED_ATTRIBUTES = ("client_id", "redirect_uri", "issuer")

    def __init__(
        self,
        config: ClientConfiguration | Mapping[str, Any],
        auth_type: AuthType | str = AuthType.PUBLIC,
        http_client: Transport | None = None,
        discovery: SmartDiscovery | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the protocol engine.

        Args:
            config: Client configuration or a raw mapping with the same keys
            auth_type: Client authentication type
            http_client: Transport for discovery and token requests
            discovery: Discovery service to share; built from `issuer` if omitted
            logger: Logger for flow events

        Raises:
            ConfigurationError: If client_id, redirect_uri or issuer is missing
            ValueError: If auth_type is not supported
        """
        if isinstance(config, ClientConfiguration):
            config = config.to_dict()

        self.client_id: str | None = config.get("client_id")
        self.client_secret: str | None = config.get("client_secret")
        self.redirect_uri: str | None = config.get("redirect_uri")
        self.issuer: str | None = config.get("issuer") or config.get("base_url")
        self.scopes: tuple[str, ...] = normalize_scopes(config.get("scopes"))
        self._authorization_endpoint: str | None = config.get("authorization_endpoint")
        self._token_endpoint: str | None = config.get("token_endpoint")
        self._endpoints_resolved = False

        self.auth_type = AuthType.parse(auth_type)
        self._validate()

        self._owns_http_client = http_client is None
        self._http_client = http_client or HttpClient()
        self._discovery = discovery or SmartDiscovery(
            self.issuer, http_client=self._http_client, logger=logger
        )
        self._logger = logger or logging.getLogger(__name__)
        self._pkce_manager = PKCEManager()

    @property
    def authorization_endpoint(self) -> str:
        return self._resolve_endpoint("authorization_endpoint")

    @property
    def token_endpoint(self) -> str:
        return self._resolve_endpoint("token_endpoint")

    def well_known_config(self) -> ServerMetadata:
        """Return the server's SMART configuration (fetched once).

        Raises:
            DiscoveryError: If discovery fails
        """
        return self._discovery.discover()

    def authorization_url(
        self,
        launch: str | None = None,
        custom_scopes: Sequence[str] | str | None = None,
    ) -> AuthorizationRequestResult:
        """Build the URL that requests an authorization code.

        A fresh PKCE pair and state are generated on every call. The returned
        code_verifier is not kept here; store it for the token exchange.

        Args:
            launch: Opaque launch token from an EHR launch
            custom_scopes: Scopes to request instead of the configured ones

        Returns:
            AuthorizationRequestResult with auth_url, state and code_verifier

        Raises:
            ConfigurationError: If no scopes are configured or provided
        """
        scopes = normalize_scopes(custom_scopes) or self.scopes
        if not scopes:
            raise ConfigurationError("SMART authorization requires at least one scope")

        self._logger.info(
            f"Generating authorization URL for SMART {self.auth_type.value} client"
        )

        pkce_params = self._pkce_manager.generate_parameters()
        state = generate_state()

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.authorization_endpoint,
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            launch=launch,
            scope=" ".join(scopes),
            state=state,
            aud=str(self.issuer),
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
        )

        return AuthorizationRequestResult(
            auth_url=auth_request.build_authorization_url(),
            state=state,
            code_verifier=pkce_params.code_verifier,
        )

    def request_access_token(
        self,
        code: str,
        code_verifier: str,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE verifier returned by authorization_url()
            client_secret: Overrides the configured secret (confidential_symmetric)

        Returns:
            Token response as returned by the server, including any context
            parameters such as `patient` or `encounter`

        Raises:
            ConfigurationError: If confidential_symmetric has no client secret
            AuthError: If the request fails or the response is invalid
        """
        self._logger.info("Requesting access token using authorization code")

        token_request = TokenRequest(
            code=code,
            redirect_uri=self.redirect_uri,
            code_verifier=code_verifier,
            client_id=self._body_client_id(),
        )
        return self._post_token_request(
            token_request.to_form_data(), client_secret, "obtain access token"
        )

    def refresh_token(
        self,
        refresh_token: str,
        scopes: Sequence[str] | str | None = None,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """Exchange a refresh token for a new access token.

        Args:
            refresh_token: Refresh token issued by the server
            scopes: Optional reduced scope list; omitted means the original scopes
            client_secret: Overrides the configured secret (confidential_symmetric)

        Raises:
            ConfigurationError: If confidential_symmetric has no client secret
            AuthError: If the request fails or the response is invalid
        """
        self._logger.info("Refreshing access token")

        refresh_request = RefreshTokenRequest(
            refresh_token=refresh_token,
            scopes=normalize_scopes(scopes),
            client_id=self._body_client_id(),
        )
        return self._post_token_request(
            refresh_request.to_form_data(), client_secret, "refresh access token"
        )

    def close(self) -> None:
        """Close the transport if this engine created it.

        A discovery service built here shares that transport, so it is closed
        too. An injected discovery service is left alone.
        """
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> SmartProtocol:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _validate(self) -> None:
        missing = [attr for attr in self.REQUIRED_ATTRIBUTES if not getattr(self, attr)]
        if missing:
            raise ConfigurationError(
                f"SMART client configuration missing attributes: {', '.join(missing)}"
            )

    def _resolve_endpoint(self, name: str) -> str:
        if not self._endpoints_resolved:
            if not (self._authorization_endpoint and self._token_endpoint):
                metadata = self.well_known_config()
                self._authorization_endpoint = (
                    self._authorization_endpoint or metadata.authorization_endpoint
                )
                self._token_endpoint = self._token_endpoint or metadata.token_endpoint
            self._endpoints_resolved = True

        endpoint = getattr(self, f"_{name}")
        if not endpoint:
            raise ConfigurationError(
                f"SMART client configuration missing attributes: {name} "
                "(not configured and not published by the server)"
            )
        return endpoint

    def _body_client_id(self) -> str | None:
        if self.auth_type is AuthType.PUBLIC:
            return self.client_id
        return None

    def _token_headers(self, client_secret: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Accept": "application/json",
        }

        if self.auth_type is AuthType.CONFIDENTIAL_SYMMETRIC:
            headers["Authorization"] = self._basic_auth_header(
                client_secret or self.client_secret
            )
        elif self.auth_type is AuthType.CONFIDENTIAL_ASYMMETRIC:
            raise ConfigurationError(
                "confidential_asymmetric client authentication is not supported yet"
            )

        return headers

    def _basic_auth_header(self, secret: str | None) -> str:
        if not secret:
            raise ConfigurationError(
                "client_secret is needed to request access token for "
                f"{self.auth_type.value}"
            )
        credentials = f"{self.client_id}:{secret}".encode()
        return f"Basic {base64.b64encode(credentials).decode('ascii')}"

    def _post_token_request(
        self,
        form_data: dict[str, str],
        client_secret: str | None,
        action: str,
    ) -> TokenResponse:
        headers = self._token_headers(client_secret)
        token_endpoint = self.token_endpoint

        self._logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"auth_type={self.auth_type.value}, "
            f"client_id_in_body={'client_id' in form_data}"
        )

        try:
            response = self._http_client.post(
                token_endpoint, data=form_data, headers=headers
            )
        except NetworkError as e:
            upstream = (e.details or {}).get("body") or str(e)
            raise AuthError(f"Failed to {action}: {upstream!r}", details=e.details) from e

        return self._parse_token_response(response, action)

    def _parse_token_response(self, response: Any, action: str) -> TokenResponse:
        try:
            body = response.json()
        except ValueError as e:
            raise AuthError(
                f"Failed to {action}: token response is not JSON",
                details={
                    "status": response.status_code,
                    "body": truncate_body(response.text),
                },
            ) from e

        if not isinstance(body, dict):
            raise AuthError(
                f"Failed to {action}: invalid token response format, expected "
                f"JSON object but received {truncate_body(repr(body))}",
                details={
                    "status": response.status_code,
                    "body": truncate_body(response.text),
                },
            )

        if not body.get("access_token"):
            raise AuthError(
                f"Failed to {action}: missing access token in response "
                f"(keys: {', '.join(sorted(body))})",
                details={
                    "status": response.status_code,
                    "body": truncate_body(response.text),
                },
            )

        self._logger.info("Token request successful")
        return body
