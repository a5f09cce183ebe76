"""
Explicit input validation.

Every validator returns either ``Valid`` (carrying the cleaned value) or
``Invalid`` (carrying one FieldError per problem); nothing here raises.
Routes turn ``Invalid`` into a 400 before touching the database.
"""
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar, Union

from email_validator import EmailNotValidError, validate_email

from guruchat.exceptions import ValidationError
from guruchat.models import MessageRole

T = TypeVar("T")

NAME_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
# bcrypt silently ignores everything past 72 bytes
PASSWORD_MAX_BYTES = 72


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    errors: List[FieldError] = field(default_factory=list)


ValidationResult = Union[Valid, Invalid]


@dataclass(frozen=True)
class Registration:
    name: str
    email: str
    password: str


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str


@dataclass(frozen=True)
class Turn:
    role: MessageRole
    content: str


@dataclass(frozen=True)
class ChatInput:
    messages: List[Turn]
    guru_id: Optional[str] = None


def raise_for_invalid(result: ValidationResult, message: str = "Validation failed"):
    """Unwrap a Valid result or raise a ValidationError listing every field error."""
    if isinstance(result, Invalid):
        raise ValidationError(
            message,
            details={"fields": [{"field": e.field, "message": e.message} for e in result.errors]},
        )
    return result.value


def _clean_email(value: Any, errors: List[FieldError]) -> str:
    if not isinstance(value, str) or not value.strip():
        errors.append(FieldError("email", "Please provide an email."))
        return ""
    try:
        checked = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        errors.append(FieldError("email", "Please provide a valid email address."))
        return ""
    return checked.normalized.lower()


def validate_registration(name: Any, email: Any, password: Any) -> ValidationResult:
    errors: List[FieldError] = []

    clean_name = name.strip() if isinstance(name, str) else ""
    if not clean_name:
        errors.append(FieldError("name", "Please provide a name."))
    elif len(clean_name) > NAME_MAX_LENGTH:
        errors.append(FieldError("name", f"Name must be at most {NAME_MAX_LENGTH} characters."))

    clean_email = _clean_email(email, errors)

    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Please provide a password."))
    elif len(password) < PASSWORD_MIN_LENGTH:
        errors.append(FieldError("password", f"Password must be at least {PASSWORD_MIN_LENGTH} characters."))
    elif len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        errors.append(FieldError("password", f"Password must be at most {PASSWORD_MAX_BYTES} bytes."))

    if errors:
        return Invalid(errors)
    return Valid(Registration(name=clean_name, email=clean_email, password=password))


def validate_login(email: Any, password: Any) -> ValidationResult:
    errors: List[FieldError] = []
    if not isinstance(email, str) or not email.strip():
        errors.append(FieldError("email", "Please provide an email."))
    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Please provide a password."))
    if errors:
        return Invalid(errors)
    # No syntax check here: a malformed address is just another failed login.
    return Valid(Credentials(email=email.strip().lower(), password=password))


def validate_chat_request(messages: Any, guru_id: Any = None) -> ValidationResult:
    if not isinstance(messages, list) or not messages:
        return Invalid([FieldError("messages", "Missing or invalid messages array")])

    errors: List[FieldError] = []
    turns: List[Turn] = []
    for index, raw in enumerate(messages):
        if not isinstance(raw, dict):
            errors.append(FieldError(f"messages.{index}", "Message must be an object"))
            continue
        try:
            role = MessageRole(raw.get("role"))
        except ValueError:
            errors.append(FieldError(f"messages.{index}.role", "Role must be one of user, assistant, system"))
            continue
        content = raw.get("content")
        if not isinstance(content, str) or not content.strip():
            errors.append(FieldError(f"messages.{index}.content", "Content must be a non-empty string"))
            continue
        turns.append(Turn(role=role, content=content))

    # A present-but-unusable guruId is not an error; the gateway falls back to the default prompt.
    clean_guru_id = guru_id if isinstance(guru_id, str) and guru_id else None

    if errors:
        return Invalid(errors)
    return Valid(ChatInput(messages=turns, guru_id=clean_guru_id))
