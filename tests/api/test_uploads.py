"""
API tests for upload credential endpoints.
"""

import re

from media_gateway.core.objects.errors import StorageError

PRIVATE_DIR = "private"

OBJECT_PATH = re.compile(r"^/objects/uploads/[0-9a-f]{32}$")


class TestRequestUploadUrl:
    """POST /api/uploads/request-url"""

    def test_returns_grant_for_authenticated_session(self, client, login):
        login(client)

        response = client.post(
            "/api/uploads/request-url",
            json={"name": "clip.mp4", "size": 1048576, "contentType": "video/mp4"},
        )

        assert response.status_code == 200
        body = response.json()
        assert OBJECT_PATH.match(body["objectPath"])
        assert body["uploadURL"].startswith("https://")
        assert body["metadata"] == {
            "name": "clip.mp4",
            "size": 1048576,
            "contentType": "video/mp4",
        }

    def test_optional_fields_echo_as_null(self, client, login):
        login(client)

        response = client.post("/api/uploads/request-url", json={"name": "notes.txt"})

        assert response.status_code == 200
        assert response.json()["metadata"] == {
            "name": "notes.txt",
            "size": None,
            "contentType": None,
        }

    def test_unauthenticated_request_is_rejected_without_backend_call(self, client, storage):
        response = client.post("/api/uploads/request-url", json={"name": "clip.mp4"})

        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}
        assert storage.presign_calls == []

    def test_unknown_session_cookie_is_unauthenticated(self, client, storage):
        client.cookies.set("media_session", "not-a-session")

        response = client.post("/api/uploads/request-url", json={"name": "clip.mp4"})

        assert response.status_code == 401
        assert storage.presign_calls == []

    def test_unauthenticated_with_bad_body_is_still_401(self, client):
        """The session gate runs before the body is validated."""
        response = client.post("/api/uploads/request-url", json={"size": "big"})

        assert response.status_code == 401

    def test_missing_name_is_400(self, client, login, storage):
        login(client)

        response = client.post("/api/uploads/request-url", json={"size": 10})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: name"}
        assert storage.presign_calls == []

    def test_malformed_field_is_400(self, client, login):
        login(client)

        response = client.post(
            "/api/uploads/request-url",
            json={"name": "clip.mp4", "size": "huge"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_backend_failure_is_500_without_details(self, client, login, storage, monkeypatch):
        async def failing_presign(key, expiry_seconds):
            raise StorageError(f"cannot sign {key} at https://acct.r2.cloudflarestorage.com")

        monkeypatch.setattr(storage, "presign_upload", failing_presign)
        login(client)

        response = client.post("/api/uploads/request-url", json={"name": "clip.mp4"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate upload URL"}

    def test_signed_key_lives_in_private_dir(self, client, login, storage):
        login(client)

        client.post("/api/uploads/request-url", json={"name": "clip.mp4"})

        assert storage.presign_calls[0].startswith(f"{PRIVATE_DIR}/uploads/")


class TestSetObjectAcl:
    """PUT /api/uploads/acl"""

    def test_sets_owner_to_session_tenant(self, client, login, storage):
        login(client, tenant_id="tenant-9")
        storage.put_object(f"{PRIVATE_DIR}/uploads/abc", b"data")

        response = client.put(
            "/api/uploads/acl",
            json={"objectPath": "/objects/uploads/abc", "visibility": "public"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "objectPath": "/objects/uploads/abc",
            "aclPolicy": {"owner": "tenant-9", "visibility": "public"},
        }

    def test_requires_session(self, client):
        response = client.put(
            "/api/uploads/acl",
            json={"objectPath": "/objects/uploads/abc", "visibility": "public"},
        )

        assert response.status_code == 401

    def test_missing_object_is_404(self, client, login):
        login(client)

        response = client.put(
            "/api/uploads/acl",
            json={"objectPath": "/objects/uploads/nope"},
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Object not found"}

    def test_invalid_object_path_is_400(self, client, login):
        login(client)

        response = client.put(
            "/api/uploads/acl",
            json={"objectPath": "https://elsewhere.example/file.png"},
        )

        assert response.status_code == 400

    def test_invalid_visibility_is_400(self, client, login):
        login(client)

        response = client.put(
            "/api/uploads/acl",
            json={"objectPath": "/objects/uploads/abc", "visibility": "everyone"},
        )

        assert response.status_code == 400
