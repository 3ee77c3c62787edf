"""
Shared-secret check for service-to-service calls.

Callers send the key in X-Internal-Key; it is compared in constant time.
"""

import hmac

from fastapi import Header, HTTPException, status

from eventcore.config import settings
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def verify_internal_key(provided: str | None) -> None:
    expected = settings.INTERNAL_API_KEY
    if not expected:
        logger.error("Internal API key not configured, rejecting request")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Internal API is not configured",
        )
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal key",
        )


def internal_key_dependency(x_internal_key: str | None = Header(default=None)) -> None:
    verify_internal_key(x_internal_key)
