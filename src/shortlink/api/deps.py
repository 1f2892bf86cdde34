from fastapi import Depends, Header, Request
from typing import Optional

from src.shortlink.core.config import Settings, logger
from src.shortlink.db.session import get_db
from src.shortlink.services.exceptions import AuthError
from src.shortlink.services.user_service import decode_access_token

__all__ = ["get_db", "get_request_settings", "get_cache", "get_current_user_id"]


def get_request_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request):
    return request.app.state.cache


def get_current_user_id(
    x_auth_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_request_settings),
) -> int:
    """
    Resolve the caller's user id from the x-auth-token header.

    The id embedded in the token is trusted as is; the user record is not
    looked up again.

    Raises:
        AuthError: "Authorization denied" without a token, "Token is not valid"
            when verification fails
    """
    if not x_auth_token:
        logger.warning("Request to a protected route without a token")
        raise AuthError("Authorization denied")

    return decode_access_token(settings, x_auth_token)
