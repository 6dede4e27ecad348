"""
Object gateway logic.

Contains the domain models, the canonical path normalizer, the access gate
and the gateway service that issues upload grants and streams objects.
"""

from .access import AuthContext, ReadPolicy
from .errors import (
    ForbiddenError,
    GatewayError,
    InvalidRequestError,
    ObjectNotFoundError,
    ObjectPathError,
    RangeNotSatisfiableError,
    StorageError,
    StorageObjectNotFound,
    UnauthorizedError,
    UpstreamError,
)
from .models import (
    ObjectAclPolicy,
    ObjectHandle,
    ObjectMetadata,
    UploadGrant,
    UploadRequest,
    Visibility,
)
from .paths import OBJECT_PREFIX, ObjectPathNormalizer, match_object_route
from .service import ObjectGateway, ObjectStream

__all__ = [
    "AuthContext",
    "ReadPolicy",
    "ForbiddenError",
    "GatewayError",
    "InvalidRequestError",
    "ObjectNotFoundError",
    "ObjectPathError",
    "RangeNotSatisfiableError",
    "StorageError",
    "StorageObjectNotFound",
    "UnauthorizedError",
    "UpstreamError",
    "ObjectAclPolicy",
    "ObjectHandle",
    "ObjectMetadata",
    "UploadGrant",
    "UploadRequest",
    "Visibility",
    "OBJECT_PREFIX",
    "ObjectPathNormalizer",
    "match_object_route",
    "ObjectGateway",
    "ObjectStream",
]
