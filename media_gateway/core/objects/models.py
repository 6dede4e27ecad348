"""
Domain models for the object gateway.

These models have no dependencies on FastAPI, boto3 or any session store.
The API layer translates them to and from JSON; the storage layer fills
them from backend responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class Visibility(Enum):
    """Who may read an object when reads are protected."""
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class UploadRequest:
    """
    Client-supplied description of a file about to be uploaded.

    Only `name` is required. `size` and `content_type` are echoed back to
    the client untouched so the metadata layer can persist them alongside
    the object path.
    """
    name: str
    size: Optional[int] = None
    content_type: Optional[str] = None

    def to_metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "contentType": self.content_type,
        }


@dataclass(frozen=True)
class UploadGrant:
    """
    A signed upload destination paired with its canonical object path.

    `upload_url` is single-use and expires; it must never be stored.
    `object_path` is what callers persist, and it stays valid after the
    grant has expired.
    """
    upload_url: str
    object_path: str
    metadata: UploadRequest

    def to_dict(self) -> dict[str, Any]:
        return {
            "uploadURL": self.upload_url,
            "objectPath": self.object_path,
            "metadata": self.metadata.to_metadata(),
        }


@dataclass(frozen=True)
class ObjectAclPolicy:
    """Ownership and visibility stored as backend object metadata."""
    owner: str
    visibility: Visibility = Visibility.PRIVATE

    OWNER_KEY = "acl-owner"
    VISIBILITY_KEY = "acl-visibility"

    def to_metadata(self) -> dict[str, str]:
        return {
            self.OWNER_KEY: self.owner,
            self.VISIBILITY_KEY: self.visibility.value,
        }

    @classmethod
    def from_metadata(cls, metadata: dict[str, str]) -> Optional["ObjectAclPolicy"]:
        """Read a policy back from backend metadata, or None if absent or malformed."""
        owner = metadata.get(cls.OWNER_KEY)
        raw_visibility = metadata.get(cls.VISIBILITY_KEY)
        if not owner or not raw_visibility:
            return None
        try:
            visibility = Visibility(raw_visibility)
        except ValueError:
            return None
        return cls(owner=owner, visibility=visibility)

    def to_dict(self) -> dict[str, str]:
        return {"owner": self.owner, "visibility": self.visibility.value}


@dataclass(frozen=True)
class ObjectMetadata:
    """What the backend reports about a stored object."""
    size: int
    content_type: str = DEFAULT_CONTENT_TYPE
    acl_policy: Optional[ObjectAclPolicy] = None
    user_metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_public(self) -> bool:
        return (
            self.acl_policy is not None
            and self.acl_policy.visibility == Visibility.PUBLIC
        )


@dataclass(frozen=True)
class ObjectHandle:
    """
    A resolved object ready to be streamed.

    `key` is the backend-internal key and must stay server-side.
    """
    key: str
    object_path: str
    metadata: ObjectMetadata


@dataclass(frozen=True)
class ByteRange:
    """An inclusive byte range within an object."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid byte range: {self.start}-{self.end}")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"
