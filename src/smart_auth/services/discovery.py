"""SMART on FHIR configuration discovery service.

Fetches `{issuer}/.well-known/smart-configuration` and builds the server
metadata used to resolve authorization and token endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic

from smart_auth.models.discovery import ServerMetadata
from smart_auth.models.errors import DiscoveryError, NetworkError
from smart_auth.transport.http import HttpClient, Transport, truncate_body

WELL_KNOWN_PATH = "/.well-known/smart-configuration"


def well_known_endpoint(issuer: str) -> str:
    return f"{str(issuer).rstrip('/')}{WELL_KNOWN_PATH}"


class SmartDiscovery:
    """Discovers SMART configuration for one FHIR server.

    The result of the first successful `discover()` is cached for the
    lifetime of the instance; build a new instance to fetch again.

    With `strict=True` a document missing fields required by its declared
    capabilities is rejected instead of returned.
    """

    def __init__(
        self,
        issuer: str,
        http_client: Transport | None = None,
        logger: logging.Logger | None = None,
        strict: bool = False,
    ):
        self.endpoint = well_known_endpoint(issuer)
        self.strict = strict
        self._owns_http_client = http_client is None
        self._http_client = http_client or HttpClient()
        self._logger = logger or logging.getLogger(__name__)
        self._metadata: ServerMetadata | None = None

    def discover(self) -> ServerMetadata:
        """Fetch and parse the SMART configuration.

        Returns:
            Parsed server metadata

        Raises:
            DiscoveryError: If the request fails, the body is not a JSON
                object, or (strict mode) required fields are missing
        """
        if self._metadata is not None:
            return self._metadata

        try:
            self._logger.debug(f"Fetching SMART configuration from {self.endpoint}")
            response = self._http_client.get(self.endpoint)
            metadata = ServerMetadata.model_validate(self._parse_metadata(response))

            if self.strict:
                missing = metadata.missing_fields()
                if missing:
                    raise DiscoveryError(
                        "SMART configuration missing required fields: "
                        f"{', '.join(missing)}"
                    )

        except NetworkError as e:
            self._log_failure(e)
            raise DiscoveryError(
                f"Failed to discover SMART configuration: {e}", details=e.details
            ) from e
        except pydantic.ValidationError as e:
            self._log_failure(e)
            raise DiscoveryError(
                f"Invalid SMART configuration from {self.endpoint}: {e}"
            ) from e
        except DiscoveryError as e:
            self._log_failure(e)
            raise

        self._logger.debug(
            f"Discovered SMART configuration: capabilities={metadata.capabilities}"
        )
        self._metadata = metadata
        return metadata

    def close(self) -> None:
        """Close the transport if this service created it."""
        if self._owns_http_client:
            self._http_client.close()

    def __enter__(self) -> SmartDiscovery:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _parse_metadata(self, response: Any) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise DiscoveryError(
                "Invalid SMART configuration format: response is not JSON",
                details={
                    "status": response.status_code,
                    "body": truncate_body(response.text),
                },
            ) from e

        if not isinstance(body, dict):
            raise DiscoveryError(
                "Invalid SMART configuration format: expected JSON object "
                f"but received {truncate_body(repr(body))}",
                details={
                    "status": response.status_code,
                    "body": truncate_body(response.text),
                },
            )
        return body

    def _log_failure(self, error: Exception) -> None:
        self._logger.error(
            f"SMART discovery for endpoint {self.endpoint} failed: {error}",
            extra={"endpoint": self.endpoint, "error": str(error)},
        )
