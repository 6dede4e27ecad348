"""
Access gate for object operations.

Handlers receive an explicit AuthContext built once per request; nothing
here reads session state on its own. The read policy is a deployment
setting, fixed for the life of the process.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ForbiddenError, UnauthorizedError
from .models import ObjectMetadata


class ReadPolicy(Enum):
    """How `GET /objects/*` is guarded."""
    PUBLIC = "public"        # no gate
    PROTECTED = "protected"  # session gate plus ACL check


@dataclass(frozen=True)
class AuthContext:
    """The caller's authentication state for a single request."""
    authenticated: bool = False
    tenant_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls()


def require_session(auth: AuthContext) -> AuthContext:
    """
    Gate for mutating and credential-issuing operations.

    Must run before any backend call so a rejected request has no side
    effects.
    """
    if not auth.authenticated:
        raise UnauthorizedError()
    return auth


def can_read(auth: AuthContext, metadata: ObjectMetadata) -> bool:
    """
    ACL check for protected reads.

    Public objects are readable by any authenticated caller; private ones
    only by the owning tenant. Objects with no policy are readable by
    nobody.
    """
    policy = metadata.acl_policy
    if policy is None:
        return False
    if metadata.is_public:
        return True
    return auth.tenant_id is not None and policy.owner == auth.tenant_id


def check_read_access(
    policy: ReadPolicy,
    auth: AuthContext,
    metadata: Optional[ObjectMetadata] = None,
) -> None:
    """
    Enforce the configured read policy.

    Call once without metadata before resolving (session gate), then with
    the resolved metadata (ACL check).
    """
    if policy == ReadPolicy.PUBLIC:
        return

    require_session(auth)

    if metadata is not None and not can_read(auth, metadata):
        raise ForbiddenError()
