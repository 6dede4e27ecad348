"""
Object storage client for uploaded media.

Supports Cloudflare R2 and any other S3-compatible store through boto3,
with a mock mode for local development and tests.

The gateway never moves upload bytes itself: clients PUT straight to a
presigned URL. This client only signs destinations, reports object
metadata, opens object bodies for streaming and rewrites ACL metadata.

Mock mode keeps objects in memory and hands out fake presigned URLs that
still look like path-style S3 URLs, so path normalization behaves the
same as against a real bucket.
"""

import io
import logging
import secrets
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Optional, Protocol
from urllib.parse import quote

from ...core.objects.errors import StorageError, StorageObjectNotFound
from ...core.objects.models import DEFAULT_CONTENT_TYPE, ByteRange, ObjectMetadata, ObjectAclPolicy

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class StorageConfig:
    """Configuration for R2/S3-compatible storage."""
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


def validate_object_key(key: str) -> str:
    """
    Reject keys that could escape the bucket namespace.

    Object paths reach the backend verbatim from the request URL, so this
    is the only place traversal is stopped. Invalid keys are reported as
    missing objects.
    """
    if not key or "\\" in key or "\x00" in key:
        raise StorageObjectNotFound("Invalid object key")

    for segment in key.split("/"):
        if segment in ("", ".", ".."):
            raise StorageObjectNotFound("Invalid object key")

    return key


class ObjectBody:
    """
    An open object body that can be read in chunks.

    Wraps anything with `read(n)` and `close()`: a botocore StreamingBody
    or an in-memory buffer.
    """

    def __init__(self, stream: BinaryIO, length: int) -> None:
        self._stream = stream
        self.length = length

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        try:
            while True:
                chunk = self._stream.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._stream.close()


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Tests provide the mock; production uses R2. Route handlers only see
    this interface.
    """

    @property
    def bucket_name(self) -> str:
        ...

    async def presign_upload(self, key: str, expiry_seconds: int) -> str:
        """Sign a single-object PUT destination valid for expiry_seconds."""
        ...

    async def head_object(self, key: str) -> ObjectMetadata:
        """Return object metadata or raise StorageObjectNotFound."""
        ...

    async def open_object(
        self,
        key: str,
        byte_range: Optional[ByteRange] = None,
    ) -> ObjectBody:
        """Open the object (or a slice of it) for streaming."""
        ...

    async def update_metadata(self, key: str, metadata: dict[str, str]) -> None:
        """Merge user metadata into an existing object."""
        ...

    async def ping(self) -> None:
        """Raise StorageError if the bucket is unreachable."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible, so the same client works
    against S3 or MinIO with a different endpoint.

    Methods are async to match the Protocol even though boto3 is
    synchronous.
    """

    def __init__(self, config: StorageConfig) -> None:
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config

        # path-style keeps the bucket in the URL path, which the
        # normalizer strips
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    async def presign_upload(self, key: str, expiry_seconds: int) -> str:
        validate_object_key(key)
        try:
            return self._s3_client.generate_presigned_url(
                'put_object',
                Params={
                    'Bucket': self._config.bucket_name,
                    'Key': key,
                },
                ExpiresIn=expiry_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to generate upload URL",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Presigned upload URL generation failed: {e}")

    async def head_object(self, key: str) -> ObjectMetadata:
        validate_object_key(key)
        try:
            response = self._s3_client.head_object(
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            if self._is_not_found(e):
                raise StorageObjectNotFound(key)
            logger.error(
                "Failed to read object metadata",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Head object failed: {e}")

        user_metadata = response.get('Metadata', {})
        return ObjectMetadata(
            size=response['ContentLength'],
            content_type=response.get('ContentType') or DEFAULT_CONTENT_TYPE,
            acl_policy=ObjectAclPolicy.from_metadata(user_metadata),
            user_metadata=user_metadata,
        )

    async def open_object(
        self,
        key: str,
        byte_range: Optional[ByteRange] = None,
    ) -> ObjectBody:
        validate_object_key(key)
        params = {
            'Bucket': self._config.bucket_name,
            'Key': key,
        }
        if byte_range is not None:
            params['Range'] = f"bytes={byte_range.start}-{byte_range.end}"

        try:
            response = self._s3_client.get_object(**params)
        except Exception as e:
            if self._is_not_found(e):
                raise StorageObjectNotFound(key)
            logger.error(
                "Failed to open object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Get object failed: {e}")

        return ObjectBody(response['Body'], response['ContentLength'])

    async def update_metadata(self, key: str, metadata: dict[str, str]) -> None:
        """
        Merge metadata into an object.

        S3 metadata is immutable, so this copies the object onto itself
        with the merged set and the original content type.
        """
        current = await self.head_object(key)
        merged = {**current.user_metadata, **metadata}

        try:
            self._s3_client.copy_object(
                Bucket=self._config.bucket_name,
                Key=key,
                CopySource={'Bucket': self._config.bucket_name, 'Key': key},
                Metadata=merged,
                MetadataDirective='REPLACE',
                ContentType=current.content_type,
            )
        except Exception as e:
            logger.error(
                "Failed to update object metadata",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Metadata update failed: {e}")

        logger.info("Updated object metadata", extra={"key": key})

    async def ping(self) -> None:
        try:
            self._s3_client.head_bucket(Bucket=self._config.bucket_name)
        except Exception as e:
            raise StorageError(f"Bucket unreachable: {e}")

    @staticmethod
    def _is_not_found(error: Exception) -> bool:
        response = getattr(error, 'response', None)
        if not isinstance(response, dict):
            return False
        code = str(response.get('Error', {}).get('Code', ''))
        return code in _NOT_FOUND_CODES


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _StoredObject:
    data: bytes
    content_type: str
    metadata: dict[str, str] = field(default_factory=dict)


class MockStorageClient:
    """
    In-memory storage for local development and tests.

    `put_object` stands in for the client's direct upload to the signed
    URL. `presign_calls` records every signing request so tests can assert
    that a rejected call never reached the backend.
    """

    MOCK_ENDPOINT = "https://mock-storage.local"

    def __init__(self, bucket_name: str = "mock-bucket") -> None:
        self._bucket_name = bucket_name
        self._objects: dict[str, _StoredObject] = {}
        self.presign_calls: list[str] = []
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    async def presign_upload(self, key: str, expiry_seconds: int) -> str:
        validate_object_key(key)
        self.presign_calls.append(key)
        signature = secrets.token_hex(16)
        return (
            f"{self.MOCK_ENDPOINT}/{self._bucket_name}/{quote(key)}"
            f"?X-Amz-Algorithm=AWS4-HMAC-SHA256"
            f"&X-Amz-Expires={expiry_seconds}"
            f"&X-Amz-Signature={signature}"
        )

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Store bytes as if a client had completed a signed upload."""
        validate_object_key(key)
        self._objects[key] = _StoredObject(
            data=data,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            metadata=dict(metadata or {}),
        )
        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def head_object(self, key: str) -> ObjectMetadata:
        stored = self._get(key)
        return ObjectMetadata(
            size=len(stored.data),
            content_type=stored.content_type,
            acl_policy=ObjectAclPolicy.from_metadata(stored.metadata),
            user_metadata=dict(stored.metadata),
        )

    async def open_object(
        self,
        key: str,
        byte_range: Optional[ByteRange] = None,
    ) -> ObjectBody:
        data = self._get(key).data
        if byte_range is not None:
            data = data[byte_range.start:byte_range.end + 1]
        return ObjectBody(io.BytesIO(data), len(data))

    async def update_metadata(self, key: str, metadata: dict[str, str]) -> None:
        self._get(key).metadata.update(metadata)

    async def ping(self) -> None:
        return None

    def _get(self, key: str) -> _StoredObject:
        validate_object_key(key)
        if key not in self._objects:
            raise StorageObjectNotFound(key)
        return self._objects[key]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        if config is not None:
            return MockStorageClient(bucket_name=config.bucket_name)
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
