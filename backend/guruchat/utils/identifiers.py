import uuid
from typing import Any, Optional

from guruchat.exceptions import ValidationError


def parse_id_or_none(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def parse_id(value: Any, label: str) -> uuid.UUID:
    """Parse a path or query identifier, raising a 400 for anything malformed."""
    parsed = parse_id_or_none(value)
    if parsed is None:
        raise ValidationError(f"Invalid {label} ID format", details={"field": f"{label.lower()}Id"})
    return parsed
