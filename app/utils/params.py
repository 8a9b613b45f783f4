"""Query-string parsing helpers for list endpoints."""
import re
from enum import Enum
from typing import Optional, TypeVar

from app.errors import ValidationError

E = TypeVar("E", bound=Enum)


def split_csv(value: Optional[str]) -> list[str]:
    """
    Split a comma-separated query value, dropping blanks.

    Examples:
        >>> split_csv("active, draft,,")
        ['active', 'draft']
        >>> split_csv(None)
        []
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def to_snake(value: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        >>> to_snake("updatedAt")
        'updated_at'
    """
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


def parse_enum(value: str, enum: type[E], name: str) -> E:
    """
    Parse one enum value, accepting camelCase for snake_case members.

    Raises:
        ValidationError: If the value is not a member
    """
    for candidate in (value, to_snake(value)):
        try:
            return enum(candidate)
        except ValueError:
            continue
    allowed = ", ".join(member.value for member in enum)
    raise ValidationError(f'Invalid {name} "{value}". Allowed values: {allowed}')


def parse_enum_list(value: Optional[str], enum: type[E], name: str) -> list[E]:
    """Parse a comma-separated list of enum values."""
    return [parse_enum(part, enum, name) for part in split_csv(value)]
