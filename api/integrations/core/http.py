"""
Shared HTTP plumbing for provider REST calls.

Every outbound call the engine makes goes through ProviderHTTPClient so it
carries a timeout and surfaces failures as engine errors:

- non-2xx  -> ProviderAPIError (status + body logged)
- timeout / transport failure -> NetworkError

No retry loop: the next scheduler cycle is the retry.
"""

import logging
from typing import Any, Optional

import httpx

from .errors import NetworkError, ProviderAPIError

logger = logging.getLogger(__name__)

# Shared timeout for all provider API calls
PROVIDER_API_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class ProviderHTTPClient:
    """
    Thin async wrapper around httpx for provider APIs.

    A custom transport can be injected (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        timeout: httpx.Timeout = PROVIDER_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def request(
        self,
        method: str,
        url: str,
        token: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Perform a request and return the response if it is 2xx.

        Args:
            method: HTTP verb
            url: Absolute URL
            token: Optional bearer token
            headers: Extra headers
            **kwargs: Passed through to httpx (params, json, data, content)

        Raises:
            ProviderAPIError: Provider answered with a non-2xx status
            NetworkError: The request never completed
        """
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        try:
            async with self._client() as client:
                response = await client.request(method.upper(), url, headers=request_headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"[HTTP] {method.upper()} {url} timed out: {e}")
            raise NetworkError(f"{method.upper()} {url} timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"[HTTP] {method.upper()} {url} failed: {e}")
            raise NetworkError(f"{method.upper()} {url} failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                f"[HTTP] {method.upper()} {url} returned {response.status_code}: {response.text[:300]}"
            )
            raise ProviderAPIError(response.status_code, response.text, url)

        return response

    async def get_json(self, url: str, token: Optional[str] = None, **kwargs: Any) -> Any:
        response = await self.request("get", url, token=token, **kwargs)
        return response.json()

    async def post_json(self, url: str, token: Optional[str] = None, **kwargs: Any) -> Any:
        """POST and decode the JSON body; empty bodies (204) decode to {}."""
        response = await self.request("post", url, token=token, **kwargs)
        if not response.content:
            return {}
        return response.json()


# Singleton instance
_http_client: Optional[ProviderHTTPClient] = None


def get_http_client() -> ProviderHTTPClient:
    """Get or create the shared provider HTTP client."""
    global _http_client
    if _http_client is None:
        _http_client = ProviderHTTPClient()
    return _http_client
