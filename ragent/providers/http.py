"""
HTTP Transport
==============

Thin async HTTP layer used by the provider adapters.

    post(path, payload)          -> response body text
    stream_lines(path, payload)  -> async iterator over response lines

The transport knows nothing about chat payloads. It only turns httpx
failures into the package's error types:
- httpx.TimeoutException      -> ProviderTimeoutError
- non-2xx responses           -> TransportError (with status_code)
- any other httpx.HTTPError   -> TransportError

Uses httpx for async requests, like the other HTTP integrations in this
codebase.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx

from ragent.errors import ProviderTimeoutError, TransportError
from ragent.utils.logger import Logger

logger = Logger("HTTP")

# Bytes of an error body included in TransportError messages
ERROR_BODY_LIMIT = 500


class HttpTransport:
    """
    JSON-over-HTTP transport bound to one base URL.

    Example:
        transport = HttpTransport(
            name="openai",
            base_url="https://api.openai.com",
            headers={"Authorization": "Bearer sk-..."},
        )
        body = await transport.post("/v1/chat/completions", {"model": "..."})
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = 60.0,
        client: httpx.AsyncClient | None = None
    ):
        """
        Args:
            name: Provider name, used in error messages
            base_url: Base URL for all requests
            headers: Default headers (auth, content type)
            timeout: Network-level timeout in seconds
            client: Pre-built client, mainly for tests (httpx.MockTransport)
        """
        self.name = name
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=timeout,
        )

    async def post(self, path: str, payload: dict[str, Any]) -> str:
        """
        POST a JSON payload and return the response body.

        Raises:
            TransportError: On network failure or non-2xx status
            ProviderTimeoutError: If the network timeout expired
        """
        try:
            response = await self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name} request timed out", self.name) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.name} request failed: {e}", self.name) from e

        if response.is_error:
            raise self._status_error(response.status_code, response.text)

        return response.text

    async def stream_lines(self, path: str, payload: dict[str, Any]) -> AsyncIterator[str]:
        """
        POST a JSON payload and yield the response line by line.

        The response is closed when the iteration finishes, fails, or the
        consumer closes the iterator.

        Raises:
            TransportError: On network failure or non-2xx status
            ProviderTimeoutError: If the network timeout expired
        """
        try:
            async with self.client.stream("POST", path, json=payload) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._status_error(response.status_code, body)

                async for line in response.aiter_lines():
                    yield line
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name} stream timed out", self.name) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.name} stream failed: {e}", self.name) from e

    def _status_error(self, status_code: int, body: str) -> TransportError:
        logger.warning(f"{self.name} returned HTTP {status_code}")
        return TransportError(
            f"{self.name} returned HTTP {status_code}: {body[:ERROR_BODY_LIMIT]}",
            self.name,
            status_code=status_code,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
