from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
import logging

from guruchat.db import get_db
from guruchat.rate_limit import limiter, AUTH_RATE_LIMIT
from guruchat.schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from guruchat.services.auth_service import authenticate_user, register_user
from guruchat.utils.cookie_auth import set_auth_cookie, clear_auth_cookie
from guruchat.validation import raise_for_invalid, validate_login, validate_registration

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
def register(data: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    """Create an account. 409 if the email is taken."""
    registration = raise_for_invalid(
        validate_registration(data.name, data.email, data.password),
        "Missing or invalid fields: name, email, password",
    )
    user = register_user(db, registration)
    return RegisterResponse(message="User registered successfully", user_id=user.id)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Login with email and password; the session token goes into an httpOnly cookie, never the body."""
    credentials = raise_for_invalid(
        validate_login(data.email, data.password),
        "Missing required fields: email, password",
    )
    user = authenticate_user(db, credentials)
    set_auth_cookie(response, user.id)

    logger.info("User logged in successfully", extra={"user_id": str(user.id)})
    return LoginResponse(
        message="Login successful",
        user=UserPublic(id=user.id, name=user.name, email=user.email),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response):
    """Logout user by clearing auth cookie"""
    clear_auth_cookie(response)
    return MessageResponse(message="Logout successful")
