from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import uuid
import logging

from app.core.security import verify_access_token

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI; auto_error off so a missing header is a 401, not a 403
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


# =====================================================
# Get Current user
# =====================================================
async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> uuid.UUID:
    """
    Dependency that validates the JWT access token and returns the user id.

    Users are managed by the identity provider; the token subject is the
    only thing this service needs.

    Raises:
        HTTPException 401: If token is invalid or missing
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    subject = verify_access_token(credentials.credentials)
    if subject is None:
        raise _unauthorized("Could not validate credentials")

    try:
        return uuid.UUID(subject)
    except ValueError:
        logger.warning("Access token subject is not a UUID")
        raise _unauthorized("Could not validate credentials")
