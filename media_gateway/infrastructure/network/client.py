"""
HTTP network for the offline cache shim.

Wraps an httpx.AsyncClient so the shim can run against a real origin.
Responses are read fully into memory before being returned.
"""

import logging
from typing import Optional

import httpx

from ...core.offline_cache.models import CachedResponse, FetchRequest, NetworkError

logger = logging.getLogger(__name__)


class HttpxNetwork:
    """Network implementation backed by httpx."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    async def fetch(self, request: FetchRequest) -> CachedResponse:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.debug(
                "Network request failed",
                extra={"url": request.url, "error": str(e)}
            )
            raise NetworkError(str(e)) from e

        return CachedResponse(
            url=str(response.url),
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            content_type=response.headers.get("content-type"),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
