"""HTTP transport for the monitoring api.

thin async wrapper around httpx. resource lookups (metric descriptors,
services, projects...) are plain GETs against the api proxy, time series
queries are POSTed as one batch to the query endpoint.

nothing here retries - errors go straight back to the caller as ApiError.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

import httpx

from stackforge.errors import ApiError

logger = logging.getLogger(__name__)

# the list in a GET response sits under a key named after the last path segment,
# e.g. .../metricDescriptors -> {"metricDescriptors": [...]}
_LAST_SEGMENT = re.compile(r"([^/]*)/*$")


def last_segment(path: str) -> str:
    """Trailing segment of a path or resource name - projects/p/services/svc -> svc."""
    return _LAST_SEGMENT.search(path).group(1)


class ApiClient:
    """Async client for the monitoring api proxy.

    GET results are cached per url for the lifetime of the client.
    """

    def __init__(
        self,
        base_url: str,
        query_url: str,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.query_url = query_url
        self.headers = headers or {}
        self._transport = transport  # tests swap in httpx.MockTransport
        self._client: httpx.AsyncClient | None = None  # lazy init
        self._cache: dict[str, list[Any]] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self.headers, transport=self._transport)
        return self._client

    async def get(
        self,
        path: str,
        response_map: Callable[[Any], Any] | None = None,
        base_url: str | None = None,
        use_cache: bool = True,
    ) -> list[Any]:
        """GET a resource list and map each entry.

        returns an empty list when the response has no entries.
        """
        url = f"{base_url or self.base_url}{path}"
        if use_cache and url in self._cache:
            return self._cache[url]

        data = await self._request("GET", url)

        prop = last_segment(path)
        items = data.get(prop) if isinstance(data, dict) else None
        result = [response_map(item) if response_map else item for item in items or []]

        if use_cache:
            self._cache[url] = result
        return result

    async def post(self, body: dict[str, Any]) -> dict[str, Any]:
        """POST a query batch. returns {"data": <decoded body>}."""
        logger.debug("Posting %d queries to %s", len(body.get("queries", [])), self.query_url)
        data = await self._request("POST", self.query_url, json=body)
        return {"data": data}

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            raise ApiError(0, str(e)) from e

        if not response.is_success:
            raise ApiError(response.status_code, response.reason_phrase, _decode(response))
        return _decode(response)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _decode(response: httpx.Response) -> Any:
    """Decoded json body, or None when the body isn't json."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
