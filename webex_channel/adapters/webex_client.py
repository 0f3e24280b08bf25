"""
Webex REST client.

Performs exactly one HTTP call per `execute`: bearer auth, JSON bodies and
error classification. Retries live in the sender, not here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from webex_channel.channels.plugins.webex.config import DEFAULT_API_BASE_URL
from webex_channel.errors import WebexApiError, WebexNetworkError
from webex_channel.schemas.webex import WebexApiErrorBody

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 30.0


class WebexClient:
    """Single-call executor against the Webex REST API."""

    def __init__(
        self,
        token: str,
        api_base_url: Optional[str] = None,
        timeout: float = TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            )
        return self._client

    async def execute(
        self, method: str, path: str, body: Optional[Any] = None
    ) -> Any:
        """
        Execute one request and return the parsed JSON body.

        Returns None for 204 No Content.

        Raises:
            WebexApiError: non-2xx response, with status code and tracking id,
                or a 2xx response whose body is not JSON.
            WebexNetworkError: connection reset or drop, timeout or DNS failure.
        """
        url = f"{self.api_base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._get_client().request(
                method,
                url,
                headers=headers,
                json=body,
            )
        except httpx.TransportError as e:
            logger.warning("Webex %s %s network failure: %s", method, path, e)
            raise WebexNetworkError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise self._parse_error_response(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise WebexApiError(
                f"HTTP {response.status_code}: response body is not JSON",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _parse_error_response(response: httpx.Response) -> WebexApiError:
        error_body: Optional[WebexApiErrorBody] = None
        try:
            error_body = WebexApiErrorBody.model_validate(response.json())
        except (ValueError, ValidationError):
            # Body is not JSON or not the structured Webex error shape
            error_body = None

        message = (
            error_body.message
            if error_body and error_body.message
            else f"HTTP {response.status_code}: {response.reason_phrase}"
        )
        details = [
            e.description
            for e in (error_body.errors or [] if error_body else [])
            if e.description
        ]
        return WebexApiError(
            message,
            status_code=response.status_code,
            tracking_id=error_body.tracking_id if error_body else None,
            details=details,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
