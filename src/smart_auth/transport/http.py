"""Synchronous HTTP transport for SMART discovery and token requests.

The services only depend on the `Transport` protocol; `HttpClient` is the
default implementation on top of httpx.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from smart_auth.models.errors import NetworkError
from smart_auth.settings import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, HttpSettings

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_LENGTH = 2000


class Response(Protocol):
    status_code: int
    text: str

    def json(self) -> Any: ...


class Transport(Protocol):
    """Request/response collaborator used by discovery and the protocol engine.

    Implementations raise NetworkError for connection, timeout, TLS and
    non-2xx failures.
    """

    def get(
        self,
        url: str,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response: ...

    def post(
        self,
        url: str,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response: ...


def truncate_body(body: Any) -> Any:
    """Shorten long response bodies kept for error diagnostics."""
    if not isinstance(body, str) or len(body) <= MAX_ERROR_BODY_LENGTH:
        return body
    return (
        f"{body[:MAX_ERROR_BODY_LENGTH]}... "
        f"(truncated, total {len(body)} characters)"
    )


class HttpClient:
    """httpx-backed Transport.

    Sends `Accept: application/json` and a User-Agent on every request,
    follows redirects and turns any httpx failure into NetworkError.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the HTTP client.

        Args:
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header value
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.timeout = timeout
        self._http_client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> HttpClient:
        return cls(timeout=settings.timeout, user_agent=settings.user_agent)

    def get(
        self,
        url: str,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return self._request("GET", url, params=params, headers=headers)

    def post(
        self,
        url: str,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return self._request("POST", url, data=data, headers=headers)

    def _request(
        self,
        method: str,
        url: str,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            response = self._http_client.request(
                method,
                url,
                params=dict(params) if params else None,
                data=dict(data) if data else None,
                headers=dict(headers) if headers else None,
            )
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP request failed: {e}",
                details={
                    "status": e.response.status_code,
                    "body": truncate_body(e.response.text),
                },
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"HTTP request failed: {e}",
                details={"status": None, "body": None},
            ) from e

    def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        self._http_client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
