"""
Canonical object paths.

A canonical path looks like `/objects/<entity-id>` and is the only storage
reference the rest of the system ever persists. It never contains a host,
a bucket, a query string or a signing token, so it outlives any upload
credential it was derived from and can be handed to a different backend
without rewriting stored records.

This module also owns routing for the object prefix: `match_object_route`
is a plain prefix matcher that returns a typed outcome instead of relying
on a framework's route patterns.
"""

from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import unquote, urlsplit

from .errors import ObjectPathError

OBJECT_PREFIX = "/objects/"

_URL_SCHEMES = ("http", "https")


# ---------------------------------------------------------------------------
# Route Matching
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ObjectReference:
    """A request path that refers to a stored object."""
    entity_id: str

    @property
    def object_path(self) -> str:
        return f"{OBJECT_PREFIX}{self.entity_id}"


class NotARoute:
    """A request path outside the object prefix."""

    def __repr__(self) -> str:
        return "NOT_A_ROUTE"


NOT_A_ROUTE = NotARoute()

RouteMatch = Union[ObjectReference, NotARoute]


def match_object_route(request_path: str) -> RouteMatch:
    """
    Classify a request path.

    Everything after the prefix is the entity id, passed on verbatim with
    any embedded separators. No traversal sanitization happens here; the
    storage backend rejects keys that would escape its namespace.
    """
    if not request_path.startswith(OBJECT_PREFIX):
        return NOT_A_ROUTE

    entity_id = request_path[len(OBJECT_PREFIX):]
    if not entity_id:
        return NOT_A_ROUTE

    return ObjectReference(entity_id=entity_id)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class ObjectPathNormalizer:
    """
    Maps backend upload destinations to canonical object paths.

    Objects live under a private directory inside the bucket, e.g.
    `media-private/uploads/<uuid>`. The entity id is the key with that
    directory stripped, so `media-private/uploads/<uuid>` becomes
    `/objects/uploads/<uuid>`.
    """

    def __init__(
        self,
        private_object_dir: str,
        bucket_name: Optional[str] = None,
    ) -> None:
        self._private_dir = private_object_dir.strip("/")
        self._bucket_name = bucket_name.strip("/") if bucket_name else None

    @property
    def private_object_dir(self) -> str:
        return self._private_dir

    def normalize(self, raw_destination: str) -> str:
        """
        Return the canonical path for a raw destination.

        Accepts either a signed backend URL or a path that is already
        canonical (returned unchanged, which makes the operation
        idempotent). Raises ObjectPathError for anything outside the
        private object directory.
        """
        if raw_destination.startswith(OBJECT_PREFIX):
            return self._check_canonical(raw_destination)

        parts = urlsplit(raw_destination)
        if parts.scheme.lower() not in _URL_SCHEMES or not parts.netloc:
            raise ObjectPathError("Unsupported upload destination")

        # host, query and fragment are dropped here
        key = unquote(parts.path).lstrip("/")

        # path-style addressing puts the bucket first
        if self._bucket_name and key.startswith(f"{self._bucket_name}/"):
            key = key[len(self._bucket_name) + 1:]

        return f"{OBJECT_PREFIX}{self._entity_id_for_key(key)}"

    def object_key_for(self, object_path: str) -> str:
        """Map a canonical path back to the backend object key."""
        match = match_object_route(object_path)
        if not isinstance(match, ObjectReference):
            raise ObjectPathError("Not an object path")
        return self.object_key_for_entity(match.entity_id)

    def object_key_for_entity(self, entity_id: str) -> str:
        if not self._private_dir:
            return entity_id
        return f"{self._private_dir}/{entity_id}"

    def new_upload_key(self, object_id: str) -> str:
        """Backend key for a freshly allocated upload."""
        return self.object_key_for_entity(f"uploads/{object_id}")

    def _entity_id_for_key(self, key: str) -> str:
        if self._private_dir:
            prefix = f"{self._private_dir}/"
            if not key.startswith(prefix):
                raise ObjectPathError("Destination is outside the private object directory")
            key = key[len(prefix):]

        if not key:
            raise ObjectPathError("Destination has no entity id")
        return key

    def _check_canonical(self, object_path: str) -> str:
        entity_id = object_path[len(OBJECT_PREFIX):]
        if not entity_id or "?" in entity_id or "#" in entity_id:
            raise ObjectPathError("Malformed object path")
        return object_path
