import logging
from fastapi import Depends, HTTPException, Request, status
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests

from convobot.config import get_settings, Settings

logger = logging.getLogger(__name__)


async def verify_token(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> dict:
    """
    Verifies the Google ID token provided by the dashboard. The token is
    expected in the ``X-User-Authorization`` header and falls back to the
    standard ``Authorization`` header.

    Returns:
        The decoded token payload if valid.

    Raises:
        HTTPException: 401 if token is invalid, expired, or has wrong audience.
                       403 if Authorization header is missing or malformed.
    """
    auth_header = request.headers.get("x-user-authorization") or request.headers.get("authorization")

    if not auth_header:
        logger.warning("User authorization header missing")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authenticated: Authorization header missing",
        )

    if not auth_header.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid authorization header format",
        )

    credentials = auth_header.split(" ", 1)[1]

    try:
        idinfo = id_token.verify_oauth2_token(
            credentials,
            google_requests.Request(),
            settings.auth_google_client_id
        )
        logger.debug("Token verified successfully for subject: %s", idinfo.get("sub"))
        return idinfo

    except ValueError as e:
        logger.warning("Token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_owner_id(idinfo: dict = Depends(verify_token)) -> str:
    """The authenticated bot owner's stable Google account id."""
    owner_id = idinfo.get("sub")
    if not owner_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no subject")
    return owner_id
