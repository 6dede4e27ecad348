"""
Request and response values seen by the offline cache shim.

Responses are fully buffered: a cached copy is just bytes plus status and
headers, so one response value can be delivered to the page and written to
the cache independently.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

RequestKey = tuple[str, str]


class RequestMode(Enum):
    """Mirrors the fetch API's request modes that matter to the shim."""
    NAVIGATE = "navigate"
    SAME_ORIGIN = "same-origin"
    CORS = "cors"
    NO_CORS = "no-cors"


class NetworkError(Exception):
    """Raised by a Network when a request cannot be completed."""
    pass


@dataclass(frozen=True)
class FetchRequest:
    url: str
    method: str = "GET"
    mode: RequestMode = RequestMode.CORS
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> RequestKey:
        return (self.method.upper(), self.url)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def is_navigation(self) -> bool:
        return self.mode == RequestMode.NAVIGATE


@dataclass(frozen=True)
class CachedResponse:
    """A buffered HTTP response, as stored in a cache generation."""
    url: str
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
