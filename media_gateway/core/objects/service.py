"""
Object gateway service.

Issues upload grants, resolves canonical object paths to backend objects
and prepares them for streaming. Framework-agnostic: the API layer turns
the results into HTTP responses and the taxonomy errors into status codes.

Upload flow:
1. Client asks for a grant → we sign a PUT for a fresh key and return it
   with the canonical path for that key
2. Client PUTs the bytes straight to the storage backend
3. Client saves the canonical path through the metadata API
4. Reads go through `GET /objects/<entity-id>` → resolve → stream

The gateway never learns whether step 2 happened. A grant that is never
used leaves nothing behind; an upload whose metadata is never saved leaves
an orphaned object in the bucket.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol
from uuid import uuid4

from .access import AuthContext, ReadPolicy, check_read_access, require_session
from .errors import (
    ForbiddenError,
    InvalidRequestError,
    ObjectNotFoundError,
    ObjectPathError,
    RangeNotSatisfiableError,
    StorageError,
    StorageObjectNotFound,
    UpstreamError,
)
from .models import (
    ByteRange,
    ObjectAclPolicy,
    ObjectHandle,
    ObjectMetadata,
    UploadGrant,
    UploadRequest,
    Visibility,
)
from .paths import ObjectPathNormalizer, ObjectReference, match_object_route

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_URL_TTL_SECONDS = 900
DEFAULT_CACHE_TTL_SECONDS = 3600
DEFAULT_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ChunkedBody(Protocol):
    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        ...


class ObjectStore(Protocol):
    """
    What the gateway needs from a storage backend.

    Implementations raise StorageObjectNotFound for missing or invalid
    keys and StorageError for everything else.
    """

    async def presign_upload(self, key: str, expiry_seconds: int) -> str:
        ...

    async def head_object(self, key: str) -> ObjectMetadata:
        ...

    async def open_object(
        self,
        key: str,
        byte_range: Optional[ByteRange] = None,
    ) -> ChunkedBody:
        ...

    async def update_metadata(self, key: str, metadata: dict[str, str]) -> None:
        ...


@dataclass
class ObjectStream:
    """Everything needed to write an object (or a slice of it) to a client."""
    status_code: int
    headers: dict[str, str]
    chunks: Iterator[bytes]
    media_type: str


def parse_range_header(header: Optional[str], size: int) -> Optional[ByteRange]:
    """
    Parse a single-range `Range` header against an object size.

    Returns None when there is no usable range (absent, malformed or
    multi-range), in which case the full object is served. Raises
    RangeNotSatisfiableError when the range is well-formed but starts past
    the end of the object.
    """
    if not header:
        return None

    unit, _, spec = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in spec:
        return None

    start_text, sep, end_text = spec.strip().partition("-")
    if not sep:
        return None

    try:
        if not start_text:
            suffix = int(end_text)
            if suffix <= 0 or size == 0:
                raise RangeNotSatisfiableError(size)
            start = max(size - suffix, 0)
            end = size - 1
        else:
            start = int(start_text)
            end = int(end_text) if end_text else None
    except ValueError:
        return None

    if start < 0 or (end is not None and end < start):
        return None
    if start >= size:
        raise RangeNotSatisfiableError(size)

    last = size - 1 if end is None else min(end, size - 1)
    return ByteRange(start=start, end=last)


class ObjectGateway:
    """
    Credential issuer and object reader.

    Stateless apart from its configuration; one instance can serve any
    number of concurrent requests.
    """

    def __init__(
        self,
        storage: ObjectStore,
        normalizer: ObjectPathNormalizer,
        read_policy: ReadPolicy = ReadPolicy.PUBLIC,
        upload_url_ttl_seconds: int = DEFAULT_UPLOAD_URL_TTL_SECONDS,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self._storage = storage
        self._normalizer = normalizer
        self._read_policy = read_policy
        self._upload_url_ttl_seconds = upload_url_ttl_seconds
        self._cache_ttl_seconds = cache_ttl_seconds

    @property
    def read_policy(self) -> ReadPolicy:
        return self._read_policy

    # -----------------------------------------------------------------------
    # Credential Issuer
    # -----------------------------------------------------------------------

    async def issue_upload_grant(
        self,
        auth: AuthContext,
        request: UploadRequest,
    ) -> UploadGrant:
        """
        Sign an upload destination for a new object.

        The canonical path is derived from the signed URL and returned with
        it, before any bytes are uploaded. Nothing is persisted here.
        """
        require_session(auth)

        if not request.name or not request.name.strip():
            raise InvalidRequestError("Missing required field: name")

        key = self._normalizer.new_upload_key(uuid4().hex)

        try:
            upload_url = await self._storage.presign_upload(
                key, self._upload_url_ttl_seconds,
            )
            object_path = self._normalizer.normalize(upload_url)
        except (StorageError, ObjectPathError) as e:
            logger.error(
                "Failed to issue upload grant",
                extra={"tenant_id": auth.tenant_id, "error": str(e)}
            )
            raise UpstreamError("Failed to generate upload URL")

        logger.info(
            "Issued upload grant",
            extra={
                "tenant_id": auth.tenant_id,
                "object_path": object_path,
                "declared_size": request.size,
                "content_type": request.content_type,
            }
        )

        return UploadGrant(
            upload_url=upload_url,
            object_path=object_path,
            metadata=request,
        )

    # -----------------------------------------------------------------------
    # Object Reader
    # -----------------------------------------------------------------------

    async def resolve(self, auth: AuthContext, request_path: str) -> ObjectHandle:
        """
        Resolve a request path to a backend object.

        The session gate (when reads are protected) runs before the backend
        is touched; the ACL check runs once metadata is known.
        """
        check_read_access(self._read_policy, auth)

        match = match_object_route(request_path)
        if not isinstance(match, ObjectReference):
            raise ObjectNotFoundError()

        key = self._normalizer.object_key_for_entity(match.entity_id)

        try:
            metadata = await self._storage.head_object(key)
        except StorageObjectNotFound:
            logger.info("Object not found", extra={"object_path": match.object_path})
            raise ObjectNotFoundError()
        except StorageError as e:
            logger.error(
                "Failed to resolve object",
                extra={"object_path": match.object_path, "error": str(e)}
            )
            raise UpstreamError("Failed to serve object")

        check_read_access(self._read_policy, auth, metadata)

        return ObjectHandle(key=key, object_path=match.object_path, metadata=metadata)

    async def stream(
        self,
        handle: ObjectHandle,
        range_header: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> ObjectStream:
        """Open a resolved object and describe how to send it."""
        metadata = handle.metadata
        byte_range = parse_range_header(range_header, metadata.size)

        try:
            body = await self._storage.open_object(handle.key, byte_range)
        except StorageObjectNotFound:
            # deleted between resolve and open
            raise ObjectNotFoundError()
        except StorageError as e:
            logger.error(
                "Failed to open object",
                extra={"object_path": handle.object_path, "error": str(e)}
            )
            raise UpstreamError("Failed to serve object")

        visibility = "public" if metadata.is_public else "private"
        headers = {
            "Content-Type": metadata.content_type,
            "Accept-Ranges": "bytes",
            "Cache-Control": f"{visibility}, max-age={self._cache_ttl_seconds}",
        }

        if byte_range is None:
            status_code = 200
            headers["Content-Length"] = str(metadata.size)
        else:
            status_code = 206
            headers["Content-Length"] = str(byte_range.length)
            headers["Content-Range"] = byte_range.content_range(metadata.size)

        return ObjectStream(
            status_code=status_code,
            headers=headers,
            chunks=body.iter_chunks(chunk_size),
            media_type=metadata.content_type,
        )

    # -----------------------------------------------------------------------
    # ACL
    # -----------------------------------------------------------------------

    async def set_acl_policy(
        self,
        auth: AuthContext,
        object_path: str,
        visibility: Visibility,
    ) -> ObjectAclPolicy:
        """Make the caller's tenant the owner of an uploaded object."""
        require_session(auth)

        if not auth.tenant_id:
            raise InvalidRequestError("Session has no tenant")

        try:
            canonical = self._normalizer.normalize(object_path)
        except ObjectPathError:
            raise InvalidRequestError("Invalid object path")

        key = self._normalizer.object_key_for(canonical)
        policy = ObjectAclPolicy(owner=auth.tenant_id, visibility=visibility)

        try:
            current = await self._storage.head_object(key)
            if current.acl_policy is not None and current.acl_policy.owner != auth.tenant_id:
                raise ForbiddenError()
            await self._storage.update_metadata(key, policy.to_metadata())
        except StorageObjectNotFound:
            raise ObjectNotFoundError()
        except StorageError as e:
            logger.error(
                "Failed to set ACL policy",
                extra={"object_path": canonical, "error": str(e)}
            )
            raise UpstreamError("Failed to set object ACL")

        logger.info(
            "Set object ACL policy",
            extra={
                "object_path": canonical,
                "tenant_id": auth.tenant_id,
                "visibility": visibility.value,
            }
        )
        return policy
