"""
Offline cache shim.

A read-through cache that sits between pages and the network, modelled on
the service worker lifecycle:

    IDLE → INSTALLING → INSTALLED → ACTIVATING → ACTIVE
                 ↘ REDUNDANT (install failed)

Install seeds the current generation from a fixed manifest, all or
nothing. Activate drops every other generation and takes control of all
registered clients. Once active, every intercepted GET is answered
stale-while-revalidate: a cached copy wins immediately, the network
request still runs, and a successful same-origin response is written back
in the background.

Nothing in here raises to the page on cache trouble. A failed install or
cache write degrades to plain network behaviour and is logged.
"""

import asyncio
import logging
from enum import Enum
from typing import Iterable, Optional, Protocol
from urllib.parse import urljoin, urlsplit

from .models import CachedResponse, FetchRequest, NetworkError, RequestKey
from .storage import CacheStorage

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_PREFIXES = ("/api/", "/uploads/", "/objects/")


class ShimState(Enum):
    IDLE = "idle"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVE = "active"
    REDUNDANT = "redundant"


class Network(Protocol):
    """Anything that can perform a request and buffer the response."""

    async def fetch(self, request: FetchRequest) -> CachedResponse:
        """Return the response or raise NetworkError."""
        ...


class OfflineCacheShim:
    """
    Generation-based read-through cache.

    Runs on a single event loop. The cache lookup and the network fetch
    for a request race as separate tasks; background writes are tracked so
    callers can wait for them (`drain`) or drop them (`abandon`).
    """

    def __init__(
        self,
        storage: CacheStorage,
        network: Network,
        generation: str,
        manifest: Iterable[str],
        origin: str,
        excluded_prefixes: Iterable[str] = DEFAULT_EXCLUDED_PREFIXES,
        root_document: str = "/",
    ) -> None:
        parts = urlsplit(origin)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Origin must be absolute: {origin!r}")

        self._storage = storage
        self._network = network
        self._generation = generation
        self._manifest = list(manifest)
        self._origin = f"{parts.scheme}://{parts.netloc}"
        self._excluded_prefixes = tuple(excluded_prefixes)
        self._root_url = self.absolute_url(root_document)

        self._state = ShimState.IDLE
        self._clients: set[str] = set()
        self._controlled: set[str] = set()
        self._pending: set[asyncio.Task] = set()

    @property
    def state(self) -> ShimState:
        return self._state

    @property
    def generation(self) -> str:
        return self._generation

    @property
    def controlled_clients(self) -> frozenset[str]:
        return frozenset(self._controlled)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def absolute_url(self, path: str) -> str:
        return urljoin(f"{self._origin}/", path)

    def register_client(self, client_id: str) -> None:
        """Record an open page connection."""
        self._clients.add(client_id)
        if self._state == ShimState.ACTIVE:
            self._controlled.add(client_id)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def start(self) -> ShimState:
        """Install, then activate immediately if the install succeeded."""
        if await self.install():
            await self.activate()
        return self._state

    async def install(self) -> bool:
        """
        Seed the current generation from the manifest.

        Every manifest asset is fetched before anything is written; one
        failed or non-2xx fetch abandons the install with nothing
        committed.
        """
        if self._state not in (ShimState.IDLE, ShimState.REDUNDANT):
            raise RuntimeError(f"Cannot install from state {self._state.value}")

        self._state = ShimState.INSTALLING
        requests = [FetchRequest(url=self.absolute_url(path)) for path in self._manifest]

        try:
            results = await asyncio.gather(
                *(self._fetch_manifest_entry(request) for request in requests),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            await self._storage.put_all(
                self._generation,
                [(request.key, response) for request, response in zip(requests, results)],
            )
        except Exception as e:
            # install failures are never surfaced to pages
            logger.warning(
                "Offline cache install failed",
                extra={"generation": self._generation, "error": str(e)}
            )
            self._state = ShimState.REDUNDANT
            return False

        self._state = ShimState.INSTALLED
        logger.info(
            "Installed offline cache generation",
            extra={"generation": self._generation, "assets": len(requests)}
        )
        return True

    async def activate(self) -> None:
        """Delete stale generations, then claim every open client."""
        if self._state != ShimState.INSTALLED:
            raise RuntimeError(f"Cannot activate from state {self._state.value}")

        self._state = ShimState.ACTIVATING

        for name in await self._storage.generations():
            if name != self._generation:
                await self._storage.delete_generation(name)
                logger.info("Deleted stale cache generation", extra={"generation": name})

        self._controlled = set(self._clients)
        self._state = ShimState.ACTIVE

        logger.info(
            "Activated offline cache generation",
            extra={"generation": self._generation, "clients": len(self._controlled)}
        )

    # -----------------------------------------------------------------------
    # Fetch Interception
    # -----------------------------------------------------------------------

    def intercepts(self, request: FetchRequest) -> bool:
        if self._state != ShimState.ACTIVE:
            return False
        if request.method.upper() != "GET":
            return False
        return not request.path.startswith(self._excluded_prefixes)

    async def handle_fetch(self, request: FetchRequest) -> Optional[CachedResponse]:
        """
        Answer a page request.

        Requests the shim does not intercept go straight to the network and
        network errors propagate as they would without the shim. For
        intercepted requests the result is the cached copy if there is one,
        otherwise the network response, otherwise the offline fallback
        (which may be None).
        """
        if not self.intercepts(request):
            return await self._network.fetch(request)

        lookup = asyncio.create_task(self._lookup(request.key))
        revalidate = asyncio.create_task(self._fetch_and_revalidate(request))
        self._track(revalidate)

        cached = await lookup
        if cached is not None:
            return cached

        try:
            return await revalidate
        except NetworkError:
            return await self._fallback(request)

    async def drain(self) -> None:
        """Wait for every in-flight revalidation and cache write."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def abandon(self) -> None:
        """Cancel in-flight work, e.g. when the requesting page goes away."""
        for task in list(self._pending):
            task.cancel()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _fetch_manifest_entry(self, request: FetchRequest) -> CachedResponse:
        response = await self._network.fetch(request)
        if not response.ok:
            raise NetworkError(f"Manifest asset {request.url} returned {response.status}")
        return response

    async def _fetch_and_revalidate(self, request: FetchRequest) -> CachedResponse:
        response = await self._network.fetch(request)
        if self._is_cacheable(response):
            self._track(asyncio.create_task(self._write(request.key, response)))
        return response

    async def _lookup(self, key: RequestKey) -> Optional[CachedResponse]:
        try:
            return await self._storage.get(self._generation, key)
        except Exception as e:
            logger.warning(
                "Cache lookup failed",
                extra={"generation": self._generation, "url": key[1], "error": str(e)}
            )
            return None

    async def _write(self, key: RequestKey, response: CachedResponse) -> None:
        try:
            await self._storage.put(self._generation, key, response)
        except Exception as e:
            logger.warning(
                "Cache write failed",
                extra={"generation": self._generation, "url": key[1], "error": str(e)}
            )

    async def _fallback(self, request: FetchRequest) -> Optional[CachedResponse]:
        if request.is_navigation:
            return await self._lookup(("GET", self._root_url))
        # the exact-request lookup already missed
        return None

    def _is_cacheable(self, response: CachedResponse) -> bool:
        parts = urlsplit(response.url)
        return response.ok and f"{parts.scheme}://{parts.netloc}" == self._origin

    def _track(self, task: asyncio.Task) -> None:
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, NetworkError):
            logger.warning("Background revalidation failed", extra={"error": str(error)})
