import asyncio
import time
from typing import Any

import httpx

from ocs_report.config import Settings, settings
from ocs_report.core.exceptions import UpstreamException
from ocs_report.core.logging import get_logger

logger = get_logger(__name__)

# Upstream bodies are echoed into error messages up to this many characters
ERROR_BODY_LIMIT = 300


def _operation_of(payload: dict[str, Any]) -> str:
    """OCS selects the operation by the single top-level key of the request."""
    return next(iter(payload), "unknown")


class OCSClient:
    """Async JSON-RPC style client for the OCS endpoint.

    Every operation is a POST of ``{"<operation>": {...}}`` to one URL with the
    access token passed as the ``token`` query parameter. Uses a shared
    connection pool; each call is bounded by its own timeout and is never
    retried.

    ``base_url`` and ``token`` override the configured OCS_BASE_URL and
    OCS_TOKEN; both are checked when a call is made, not at construction.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        config: Settings | None = None,
    ):
        overrides = {
            field: value
            for field, value in (("ocs_base_url", base_url), ("ocs_token", token))
            if value is not None
        }
        self.config = (config or settings).model_copy(update=overrides)
        self.timeout = timeout or self.config.http_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                http2=True,
                transport=self._transport,
                limits=httpx.Limits(
                    max_keepalive_connections=self.config.http_max_keepalive,
                    max_connections=self.config.http_max_connections,
                    keepalive_expiry=30.0,
                ),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def call(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send one OCS operation and return the decoded JSON object.

        Args:
            payload: Request body, e.g. ``{"listSubscriber": {"accountId": 1}}``

        Returns:
            The parsed response object, or ``{}`` when the body is empty or
            not a JSON object.

        Raises:
            ConfigurationException: base URL or token is not configured
            UpstreamException: non-2xx status, timeout or network failure
        """
        base_url = self.config.require_ocs_base_url()
        token = self.config.require_ocs_token()

        operation = _operation_of(payload)
        logger.debug("ocs_request", operation=operation, body=payload)

        client = await self._get_client()
        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                client.post(base_url, params={"token": token}, json=payload),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "ocs_timeout",
                operation=operation,
                elapsed_ms=round(elapsed_ms, 2),
                timeout=self.timeout,
            )
            raise UpstreamException(
                message=f"OCS request timed out after {self.timeout:g}s",
            ) from e
        except httpx.RequestError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "ocs_connection_error",
                operation=operation,
                elapsed_ms=round(elapsed_ms, 2),
                error=str(e),
            )
            raise UpstreamException(message=f"Request to OCS failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        text = response.text
        body: Any = None
        if text:
            try:
                body = response.json()
            except ValueError:
                logger.warning("ocs_invalid_json", operation=operation, size=len(text))

        if not response.is_success:
            snippet = text[:ERROR_BODY_LIMIT]
            logger.warning(
                "ocs_error",
                operation=operation,
                status=response.status_code,
                elapsed_ms=round(elapsed_ms, 2),
                error=snippet,
            )
            message = f"HTTP {response.status_code} {response.reason_phrase}"
            if snippet:
                message += f" :: {snippet}"
            raise UpstreamException(
                message=message,
                upstream_status=response.status_code,
                upstream_message=snippet or None,
            )

        logger.info(
            "ocs_response",
            operation=operation,
            status=response.status_code,
            elapsed_ms=round(elapsed_ms, 2),
        )
        return body if isinstance(body, dict) else {}
