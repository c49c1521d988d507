"""Current-user resolution for FastAPI routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from synthesis.core.config import get_settings
from synthesis.core.logging import get_logger
from synthesis.db.supabase_client import get_supabase

logger = get_logger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Resolve the current user id.

    With a configured store the bearer token is verified through Supabase
    Auth. In local-only mode every request acts as ``DEV_USER_ID``.

    Raises:
        HTTPException: 401 if the store is configured and the token is missing or invalid
    """
    client = get_supabase()
    if client is None:
        return get_settings().DEV_USER_ID

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        auth_response = client.auth.get_user(credentials.credentials)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        auth_response = None

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(auth_response.user.id)
