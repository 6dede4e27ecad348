"""
Upload credential endpoints.

Clients never send media bytes through this service. They ask for a
signed destination, PUT the file straight to object storage, and then save
the returned `objectPath` through the metadata API:

1. `POST /api/uploads/request-url` → `{uploadURL, objectPath, metadata}`
2. `PUT <uploadURL>` with the file body (directly to storage)
3. Save `objectPath` with the media record
4. Optionally `PUT /api/uploads/acl` to set owner and visibility
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.objects.models import UploadRequest, Visibility
from ..dependencies import AuthenticatedContext, ObjectGatewayDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class UploadUrlRequest(BaseModel):
    """Description of the file the client is about to upload."""
    model_config = ConfigDict(populate_by_name=True)

    # optional here so a missing name gets the documented 400, not a 422
    name: Optional[str] = Field(default=None, description="Original file name")
    size: Optional[int] = Field(default=None, ge=0, description="File size in bytes")
    content_type: Optional[str] = Field(
        default=None,
        alias="contentType",
        description="MIME type of the file",
    )


class UploadUrlResponse(BaseModel):
    """A signed upload destination and the path to persist."""
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(
        alias="uploadURL",
        description="Signed, single-use PUT URL. Do not store it.",
    )
    object_path: str = Field(
        alias="objectPath",
        description="Canonical path to save with the media record",
    )
    metadata: dict[str, Any] = Field(description="Echo of the request fields")


class AclPolicyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    object_path: str = Field(alias="objectPath", min_length=1)
    visibility: Visibility = Field(default=Visibility.PRIVATE)


class AclPolicyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    object_path: str = Field(alias="objectPath")
    acl_policy: dict[str, str] = Field(alias="aclPolicy")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/request-url",
    response_model=UploadUrlResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Request a signed upload URL",
    description="Returns a signed PUT URL and the canonical object path for a new upload.",
)
async def request_upload_url(
    auth: AuthenticatedContext,
    gateway: ObjectGatewayDep,
    request: UploadUrlRequest,
) -> dict[str, Any]:
    """
    Issue an upload grant.

    The object path is returned right away so the client can reference
    the object without a second round trip once the upload finishes.
    """
    grant = await gateway.issue_upload_grant(
        auth,
        UploadRequest(
            name=request.name or "",
            size=request.size,
            content_type=request.content_type,
        ),
    )
    return grant.to_dict()


@router.put(
    "/acl",
    response_model=AclPolicyResponse,
    response_model_by_alias=True,
    summary="Set the ACL policy of an uploaded object",
    description="Makes the caller's tenant the owner of the object and sets its visibility.",
)
async def set_object_acl(
    auth: AuthenticatedContext,
    gateway: ObjectGatewayDep,
    request: AclPolicyRequest,
) -> dict[str, Any]:
    policy = await gateway.set_acl_policy(auth, request.object_path, request.visibility)
    return {
        "objectPath": request.object_path,
        "aclPolicy": policy.to_dict(),
    }
