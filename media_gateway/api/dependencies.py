"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never build their own storage clients or read
session state directly; they receive an AuthContext built here once per
request.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings, get_settings
from ..core.objects.access import AuthContext, ReadPolicy, require_session
from ..core.objects.paths import ObjectPathNormalizer
from ..core.objects.service import ObjectGateway
from ..infrastructure.sessions.store import InMemorySessionStore, SessionStore
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# Global mock instances (shared across requests for testing)
_mock_storage_client = None
_session_store = None


# ---------------------------------------------------------------------------
# Sessions and Authentication
# ---------------------------------------------------------------------------

def get_session_store() -> SessionStore:
    """
    Provide the session store.

    The login flow writes sessions elsewhere; here we only need lookups.
    A single in-memory store is shared across requests.
    """
    global _session_store

    if _session_store is None:
        _session_store = InMemorySessionStore()
    return _session_store


async def get_auth_context(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> AuthContext:
    """
    Build the caller's AuthContext from the session cookie.

    Missing cookies, unknown sessions and sessions without the
    authenticated flag all yield an anonymous context. Whether that is
    acceptable is up to the operation.
    """
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        return AuthContext.anonymous()

    session = await store.get(session_id)
    if session is None or not session.authenticated:
        logger.debug("Request with inactive session", extra={"path": request.url.path})
        return AuthContext.anonymous()

    return AuthContext(
        authenticated=True,
        tenant_id=session.tenant_id,
        name=session.name,
    )


async def require_authenticated(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    """
    Session gate for mutating and credential-issuing routes.

    Runs as a dependency so it rejects the request before the body is
    parsed or any backend call is made.
    """
    return require_session(auth)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for signing uploads and reading objects.

    Returns either R2 client or mock client based on settings.

    In mock mode, we reuse the same client across requests
    so that stored objects persist during the testing session.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(
                config=_storage_config(settings), mock_mode=True,
            )
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    client = create_storage_client(config=_storage_config(settings))
    logger.debug("Created R2 storage client")
    return client


def get_object_gateway(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> ObjectGateway:
    """Provide the object gateway. Stateless, so one per request is fine."""
    normalizer = ObjectPathNormalizer(
        private_object_dir=settings.private_object_dir,
        bucket_name=storage.bucket_name,
    )
    return ObjectGateway(
        storage=storage,
        normalizer=normalizer,
        read_policy=ReadPolicy(settings.objects_read_policy),
        upload_url_ttl_seconds=settings.upload_url_ttl_seconds,
        cache_ttl_seconds=settings.object_cache_ttl_seconds,
    )


def _storage_config(settings: Settings) -> StorageConfig:
    return StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthContextDep = Annotated[AuthContext, Depends(get_auth_context)]
AuthenticatedContext = Annotated[AuthContext, Depends(require_authenticated)]
ObjectGatewayDep = Annotated[ObjectGateway, Depends(get_object_gateway)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
