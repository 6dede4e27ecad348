"""
Error taxonomy for the object gateway.

Every failure the gateway reports to a caller is one of these classes.
Each carries the HTTP status it maps to and a public message that is safe
to put in a response body. Backend details (keys, buckets, endpoints,
signed URLs) belong in logs only, never in `public_message`.
"""


class GatewayError(Exception):
    """Base class for errors surfaced to gateway callers."""

    status_code: int = 500
    public_message: str = "Internal server error"
    # JSON key the message is rendered under
    body_key: str = "error"

    def __init__(self, public_message: str | None = None) -> None:
        if public_message is not None:
            self.public_message = public_message
        super().__init__(self.public_message)

    def to_body(self) -> dict[str, str]:
        return {self.body_key: self.public_message}


class InvalidRequestError(GatewayError):
    """Caller must correct the input. Never retried automatically."""

    status_code = 400
    public_message = "Invalid request"


class UnauthorizedError(GatewayError):
    """No authenticated session. Caller must re-authenticate."""

    status_code = 401
    public_message = "Unauthorized"
    body_key = "message"


class ForbiddenError(GatewayError):
    """Authenticated, but the object's ACL policy denies access."""

    status_code = 403
    public_message = "Forbidden"


class ObjectNotFoundError(GatewayError):
    """The object path does not resolve to stored bytes. Terminal."""

    status_code = 404
    public_message = "Object not found"


class RangeNotSatisfiableError(GatewayError):
    """Requested byte range lies outside the object."""

    status_code = 416
    public_message = "Requested range not satisfiable"

    def __init__(self, size: int) -> None:
        self.size = size
        super().__init__()


class UpstreamError(GatewayError):
    """
    Storage backend failure.

    Safe for the caller to retry with backoff; the gateway itself never
    retries.
    """

    status_code = 500
    public_message = "Upstream storage failure"


class ObjectPathError(ValueError):
    """Raised when a raw destination cannot be mapped to a canonical path."""
    pass


# ---------------------------------------------------------------------------
# Storage backend errors
# ---------------------------------------------------------------------------

class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class StorageObjectNotFound(StorageError):
    """Raised when a key does not exist or is not a valid key in this namespace."""
    pass
