"""
API tests for health checks and offline cache configuration.
"""

from media_gateway.core.objects.errors import StorageError


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_when_bucket_unreachable(self, client, storage, monkeypatch):
        async def failing_ping():
            raise StorageError("connection refused to https://acct.r2.cloudflarestorage.com")

        monkeypatch.setattr(storage, "ping", failing_ping)

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert "cloudflarestorage" not in response.text


class TestOfflineCacheConfig:
    def test_exposes_generation_and_manifest(self, make_client):
        client = make_client(
            cache_generation="studio-v7",
            cache_manifest="/,/manifest.json",
        )

        response = client.get("/api/offline-cache/config")

        assert response.status_code == 200
        assert response.json() == {
            "generation": "studio-v7",
            "manifest": ["/", "/manifest.json"],
            "excludedPrefixes": ["/api/", "/uploads/", "/objects/"],
        }
