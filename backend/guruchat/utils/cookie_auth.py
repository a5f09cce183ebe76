"""
Session JWT delivered as an httpOnly cookie.
"""
from fastapi import Response, Request
from typing import Optional
import logging
import uuid

from guruchat.config import settings
from guruchat.auth import create_access_token

logger = logging.getLogger(__name__)


def set_auth_cookie(response: Response, user_id: uuid.UUID) -> str:
    """
    Create a session token for the user and set it as httpOnly cookie.

    Returns:
        The signed token
    """
    access_token = create_access_token(user_id)

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        httponly=True,  # Prevents JavaScript access (XSS protection)
        secure=settings.is_production,  # HTTPS only in production
        samesite="lax",
        max_age=settings.session_max_age,
        path="/"
    )

    logger.info("Auth cookie set", extra={"user_id": str(user_id)})

    return access_token


def get_token_from_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def clear_auth_cookie(response: Response):
    """Expire the session cookie (for logout)."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )

    logger.info("Auth cookie cleared")
