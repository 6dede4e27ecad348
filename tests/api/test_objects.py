"""
API tests for object streaming, including the full upload-then-read flow.
"""

import pytest

from media_gateway.core.objects.errors import StorageError
from media_gateway.core.objects.models import ObjectAclPolicy, Visibility

PRIVATE_DIR = "private"


def object_key(object_path: str) -> str:
    return f"{PRIVATE_DIR}/{object_path[len('/objects/'):]}"


class TestUploadThenRead:
    """End-to-end: grant → simulated direct upload → GET /objects/..."""

    def test_uploaded_clip_streams_back_exactly(self, client, login, storage):
        login(client)
        grant = client.post(
            "/api/uploads/request-url",
            json={"name": "clip.mp4", "size": 1048576, "contentType": "video/mp4"},
        ).json()
        payload = bytes(range(256)) * 4096  # 1 MiB
        storage.put_object(object_key(grant["objectPath"]), payload, content_type="video/mp4")

        response = client.get(grant["objectPath"])

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-length"] == "1048576"
        assert len(response.content) == 1048576
        assert response.content == payload

    def test_grant_path_is_not_readable_before_upload(self, client, login):
        login(client)
        grant = client.post("/api/uploads/request-url", json={"name": "clip.mp4"}).json()

        response = client.get(grant["objectPath"])

        assert response.status_code == 404


class TestStreamObject:
    """GET /objects/{path}"""

    @pytest.mark.parametrize("path", [
        "/objects/uploads/does-not-exist",
        "/objects/uploads/nested/deeper/missing.png",
        "/objects/missing",
    ])
    def test_unknown_objects_are_404(self, client, path):
        response = client.get(path)

        assert response.status_code == 404
        assert response.json() == {"error": "Object not found"}

    def test_traversal_is_404_and_leaks_nothing(self, client, storage):
        storage.put_object("other/secret.txt", b"secret")

        response = client.get("/objects/..%2F..%2Fother/secret.txt")

        assert response.status_code == 404
        assert b"secret" not in response.content

    def test_backend_failure_is_500_without_details(self, client, storage, monkeypatch):
        async def failing_head(key):
            raise StorageError(f"head {key} in bucket test-bucket failed")

        monkeypatch.setattr(storage, "head_object", failing_head)

        response = client.get("/objects/uploads/abc")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to serve object"}

    def test_cache_and_range_headers(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/pic", b"image-bytes", content_type="image/jpeg")

        response = client.get("/objects/uploads/pic")

        assert response.headers["cache-control"] == "private, max-age=3600"
        assert response.headers["accept-ranges"] == "bytes"

    def test_range_request_returns_partial_content(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/song", b"0123456789", content_type="audio/mpeg")

        response = client.get("/objects/uploads/song", headers={"Range": "bytes=3-6"})

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 3-6/10"
        assert response.content == b"3456"

    def test_unsatisfiable_range_is_416(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/song", b"0123456789")

        response = client.get("/objects/uploads/song", headers={"Range": "bytes=50-60"})

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */10"

    def test_public_policy_needs_no_session(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/pic", b"image-bytes")

        response = client.get("/objects/uploads/pic")

        assert response.status_code == 200
        assert response.content == b"image-bytes"


class TestProtectedObjects:
    """GET /objects/{path} with OBJECTS_READ_POLICY=protected"""

    @pytest.fixture
    def protected_client(self, make_client):
        return make_client(objects_read_policy="protected")

    def test_anonymous_read_is_401(self, protected_client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/pic", b"image-bytes")

        response = protected_client.get("/objects/uploads/pic")

        assert response.status_code == 401

    def test_owner_can_read(self, protected_client, login, storage):
        storage.put_object(
            f"{PRIVATE_DIR}/uploads/pic", b"image-bytes",
            metadata=ObjectAclPolicy("tenant-1", Visibility.PRIVATE).to_metadata(),
        )
        login(protected_client, tenant_id="tenant-1")

        response = protected_client.get("/objects/uploads/pic")

        assert response.status_code == 200
        assert response.content == b"image-bytes"

    def test_other_tenant_is_forbidden(self, protected_client, login, storage):
        storage.put_object(
            f"{PRIVATE_DIR}/uploads/pic", b"image-bytes",
            metadata=ObjectAclPolicy("tenant-1", Visibility.PRIVATE).to_metadata(),
        )
        login(protected_client, tenant_id="tenant-2")

        response = protected_client.get("/objects/uploads/pic")

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}

    def test_acl_set_through_api_allows_owner(self, protected_client, login, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/pic", b"image-bytes")
        login(protected_client, tenant_id="tenant-1")

        protected_client.put(
            "/api/uploads/acl",
            json={"objectPath": "/objects/uploads/pic", "visibility": "private"},
        )
        response = protected_client.get("/objects/uploads/pic")

        assert response.status_code == 200

    def test_unknown_object_is_404_for_signed_in_user(self, protected_client, login):
        login(protected_client)

        response = protected_client.get("/objects/uploads/nope")

        assert response.status_code == 404


class TestRangeEdges:
    """Range headers at the boundaries of the object."""

    def test_open_range_starting_at_size_is_416(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/song", b"0123456789")

        response = client.get("/objects/uploads/song", headers={"Range": "bytes=10-"})

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */10"

    def test_open_range_inside_object_is_206(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/song", b"0123456789")

        response = client.get("/objects/uploads/song", headers={"Range": "bytes=7-"})

        assert response.status_code == 206
        assert response.content == b"789"


class TestEntityIdVerbatim:
    """Encoded reserved characters stay part of the entity id."""

    def test_encoded_question_mark_reaches_storage(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/a?b", b"question")
        storage.put_object(f"{PRIVATE_DIR}/uploads/a", b"other")

        response = client.get("/objects/uploads/a%3Fb")

        assert response.status_code == 200
        assert response.content == b"question"

    def test_encoded_hash_reaches_storage(self, client, storage):
        storage.put_object(f"{PRIVATE_DIR}/uploads/a#b", b"hash")
        storage.put_object(f"{PRIVATE_DIR}/uploads/a", b"other")

        response = client.get("/objects/uploads/a%23b")

        assert response.status_code == 200
        assert response.content == b"hash"
