"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Mock modes enable local development without object storage credentials.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cache_manifest), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Media Gateway API"
    api_version: str = "v1"

    # R2/S3 Storage Configuration
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID"
    )
    r2_secret_access_key: str = Field(
        default="",
        description="R2 secret access key"
    )
    r2_bucket_name: str = Field(
        default="media-gateway",
        description="R2 bucket name for uploaded media"
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="R2 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real R2."
    )

    # Object Gateway
    private_object_dir: str = Field(
        default="private",
        description="Directory inside the bucket that holds uploaded objects."
    )
    upload_url_ttl_seconds: int = Field(
        default=900,
        gt=0,
        description="Lifetime of a signed upload URL."
    )
    objects_read_policy: str = Field(
        default="public",
        pattern="^(public|protected)$",
        description="'public' serves /objects/* without a session; 'protected' adds the session gate and ACL check."
    )
    object_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="max-age sent in Cache-Control for streamed objects."
    )
    stream_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        description="Bytes per chunk when streaming objects."
    )

    # Sessions
    session_cookie_name: str = Field(
        default="media_session",
        description="Cookie holding the session id."
    )

    # Offline Cache Shim
    cache_generation: str = Field(
        default="media-gateway-v1",
        description="Name of the current cache generation. Change it to roll out new assets."
    )
    cache_manifest: str = Field(
        default="/,/manifest.json,/icon-192.png,/icon-512.png,/apple-touch-icon.png,/favicon.png",
        description="Comma-separated root-relative assets seeded on install, in order."
    )
    cache_excluded_prefixes: str = Field(
        default="/api/,/uploads/,/objects/",
        description="Comma-separated path prefixes that always go to the network."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cache_manifest_list(self) -> list[str]:
        return _split_csv(self.cache_manifest)

    @property
    def cache_excluded_prefixes_list(self) -> list[str]:
        return _split_csv(self.cache_excluded_prefixes)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return _split_csv(self.cors_origins)

    @property
    def r2_endpoint(self) -> str:
        """
        Construct R2 endpoint URL from account ID.

        R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        """
        missing = []

        if not self.r2_mock_mode:
            if not self.r2_account_id and not self.r2_endpoint_url:
                missing.append("R2_ACCOUNT_ID or R2_ENDPOINT_URL")
            if not self.r2_access_key_id:
                missing.append("R2_ACCESS_KEY_ID")
            if not self.r2_secret_access_key:
                missing.append("R2_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() or override the dependency.
    """
    return Settings()
