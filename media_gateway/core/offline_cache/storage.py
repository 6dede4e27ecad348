"""
Cache storage for the offline cache shim.

A generation is a named set of cached responses. The shim only ever reads
from and writes to the current generation, and removes older ones whole.
"""

import logging
from typing import Iterable, Optional, Protocol

from .models import CachedResponse, RequestKey

logger = logging.getLogger(__name__)


class CacheStorage(Protocol):
    """Abstract read-through cache, keyed by generation then request."""

    async def get(self, generation: str, key: RequestKey) -> Optional[CachedResponse]:
        ...

    async def put(self, generation: str, key: RequestKey, response: CachedResponse) -> None:
        """Store one entry. Atomic per entry."""
        ...

    async def put_all(
        self,
        generation: str,
        entries: Iterable[tuple[RequestKey, CachedResponse]],
    ) -> None:
        """Store a batch so that either all entries land or none do."""
        ...

    async def delete_generation(self, generation: str) -> bool:
        ...

    async def generations(self) -> list[str]:
        ...


class InMemoryCacheStorage:
    """Dictionary-backed cache storage for tests and single-process use."""

    def __init__(self) -> None:
        self._generations: dict[str, dict[RequestKey, CachedResponse]] = {}

    async def get(self, generation: str, key: RequestKey) -> Optional[CachedResponse]:
        return self._generations.get(generation, {}).get(key)

    async def put(self, generation: str, key: RequestKey, response: CachedResponse) -> None:
        self._generations.setdefault(generation, {})[key] = response

    async def put_all(
        self,
        generation: str,
        entries: Iterable[tuple[RequestKey, CachedResponse]],
    ) -> None:
        # build the batch first so a failing iterable commits nothing
        batch = dict(entries)
        self._generations.setdefault(generation, {}).update(batch)

    async def delete_generation(self, generation: str) -> bool:
        removed = self._generations.pop(generation, None)
        if removed is not None:
            logger.debug(
                "Deleted cache generation",
                extra={"generation": generation, "entries": len(removed)}
            )
        return removed is not None

    async def generations(self) -> list[str]:
        return list(self._generations)

    def entries(self, generation: str) -> dict[RequestKey, CachedResponse]:
        """Snapshot of a generation's entries."""
        return dict(self._generations.get(generation, {}))
