"""
Password hashing and session tokens.

verify_session_token is the single place a session token is trusted: it
checks the signature and expiry before any claim is read. Route dependencies
and the edge gatekeeper both go through it.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from guruchat.config import settings
from guruchat.exceptions import AuthenticationError, ServerConfigurationError
from guruchat.utils.identifiers import parse_id_or_none

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


@dataclass(frozen=True)
class SessionClaims:
    user_id: uuid.UUID
    expires_at: datetime


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        # Burn the same time as a real check so unknown emails are not observable.
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(plain_password, password_hash)


def _signing_secret() -> str:
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not configured")
        raise ServerConfigurationError("Server configuration error: session signing is not configured")
    return settings.JWT_SECRET


def create_access_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    payload = {"userId": str(user_id), "exp": expire}
    return jwt.encode(payload, _signing_secret(), algorithm=settings.JWT_ALGORITHM)


def verify_session_token(token: Optional[str]) -> SessionClaims:
    """Verify signature and expiry, then extract the user id.

    Raises AuthenticationError for a missing, tampered, expired or malformed
    token and ServerConfigurationError when no signing secret is configured.
    """
    if not token:
        raise AuthenticationError("Unauthorized: Missing token cookie")

    secret = _signing_secret()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True},
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Unauthorized: Session expired")
    except JWTError as e:
        logger.info(f"Session token rejected: {e}")
        raise AuthenticationError("Unauthorized: Invalid token")

    user_id = parse_id_or_none(payload.get("userId"))
    if user_id is None:
        raise AuthenticationError("Unauthorized: Invalid user ID in token")

    return SessionClaims(
        user_id=user_id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
