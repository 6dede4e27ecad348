"""
Object streaming endpoint.

Serves uploaded objects at their canonical paths, hiding the storage
backend behind `/objects/<entity-id>`. The entity id may contain slashes
and is handed to storage as-is; the storage client rejects keys that try
to leave the bucket namespace.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header
from fastapi.responses import StreamingResponse

from ...core.objects.paths import OBJECT_PREFIX
from ..dependencies import AuthContextDep, ObjectGatewayDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{entity_id:path}",
    summary="Stream a stored object",
    description="Streams object bytes with content type, length and cache headers. Supports single byte ranges.",
)
async def stream_object(
    entity_id: str,
    auth: AuthContextDep,
    gateway: ObjectGatewayDep,
    settings: SettingsDep,
    range_header: Annotated[Optional[str], Header(alias="range")] = None,
) -> StreamingResponse:
    """
    Stream an object.

    Unknown paths are 404, storage failures 500; neither body mentions
    keys or buckets. With a protected read policy the session gate and
    ACL check apply.
    """
    # entity_id is already percent-decoded; an encoded ? or # is part of it
    handle = await gateway.resolve(auth, f"{OBJECT_PREFIX}{entity_id}")
    stream = await gateway.stream(
        handle,
        range_header=range_header,
        chunk_size=settings.stream_chunk_size,
    )

    logger.debug(
        "Streaming object",
        extra={
            "object_path": handle.object_path,
            "status": stream.status_code,
            "size_bytes": handle.metadata.size,
        }
    )

    return StreamingResponse(
        stream.chunks,
        status_code=stream.status_code,
        headers=stream.headers,
        media_type=stream.media_type,
    )
