"""
Unit tests for the httpx network used by the offline cache shim.

Requests are served by httpx.MockTransport, so nothing leaves the process.
"""

import httpx
import pytest

from media_gateway.core.offline_cache import (
    FetchRequest,
    InMemoryCacheStorage,
    NetworkError,
    OfflineCacheShim,
    RequestMode,
    ShimState,
)
from media_gateway.infrastructure.network import HttpxNetwork

ORIGIN = "https://app.example"


class FakeOrigin:
    """A tiny site whose availability can be switched off."""

    def __init__(self) -> None:
        self.online = True
        self.pages = {
            "/": (b"<html>home</html>", "text/html"),
            "/manifest.json": (b"{}", "application/json"),
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("offline", request=request)
        page = self.pages.get(request.url.path)
        if page is None:
            return httpx.Response(404, request=request)
        body, content_type = page
        return httpx.Response(200, content=body, headers={"content-type": content_type}, request=request)


def make_network(origin: FakeOrigin) -> HttpxNetwork:
    return HttpxNetwork(client=httpx.AsyncClient(transport=httpx.MockTransport(origin)))


class TestHttpxNetwork:
    @pytest.mark.asyncio
    async def test_response_is_buffered(self):
        network = make_network(FakeOrigin())

        response = await network.fetch(FetchRequest(url=f"{ORIGIN}/"))

        assert response.status == 200
        assert response.body == b"<html>home</html>"
        assert response.content_type == "text/html"
        assert response.url == f"{ORIGIN}/"

    @pytest.mark.asyncio
    async def test_http_errors_are_responses_not_failures(self):
        network = make_network(FakeOrigin())

        response = await network.fetch(FetchRequest(url=f"{ORIGIN}/missing"))

        assert response.status == 404
        assert not response.ok

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        origin = FakeOrigin()
        origin.online = False
        network = make_network(origin)

        with pytest.raises(NetworkError):
            await network.fetch(FetchRequest(url=f"{ORIGIN}/"))


class TestShimOverHttpx:
    @pytest.mark.asyncio
    async def test_site_keeps_working_offline_after_install(self):
        origin = FakeOrigin()
        shim = OfflineCacheShim(
            storage=InMemoryCacheStorage(),
            network=make_network(origin),
            generation="v1",
            manifest=["/", "/manifest.json"],
            origin=ORIGIN,
        )

        assert await shim.start() == ShimState.ACTIVE

        origin.online = False
        result = await shim.handle_fetch(
            FetchRequest(url=f"{ORIGIN}/library", mode=RequestMode.NAVIGATE)
        )
        await shim.drain()

        assert result.body == b"<html>home</html>"
