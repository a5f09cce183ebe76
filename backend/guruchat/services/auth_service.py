from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from guruchat.auth import get_password_hash, verify_password
from guruchat.exceptions import AuthenticationError, ConflictError
from guruchat.models import User
from guruchat.validation import Credentials, Registration

logger = logging.getLogger(__name__)

# Same text for unknown email and wrong password.
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"


def register_user(db: Session, registration: Registration) -> User:
    existing = db.query(User).filter(User.email == registration.email).first()
    if existing:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = User(
        name=registration.name,
        email=registration.email,
        password_hash=get_password_hash(registration.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    db.refresh(user)

    logger.info("User registered", extra={"user_id": str(user.id)})
    return user


def authenticate_user(db: Session, credentials: Credentials) -> User:
    user = db.query(User).filter(User.email == credentials.email).first()

    if not verify_password(credentials.password, user.password_hash if user else None):
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    return user
