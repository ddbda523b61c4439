"""
Form field parsing shared by the write paths.
Every helper raises ValidationError naming the offending field.
"""

from datetime import date, datetime
from typing import Any, Optional, Type

from errors import ValidationError


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require(form: dict, fields) -> None:
    for field in fields:
        if is_blank(form.get(field)):
            raise ValidationError(field)


def parse_number(field: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"{field} must be a number")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(field, f"{field} must be a number")
    return number


def parse_date(field: str, value: Any) -> Optional[str]:
    """ISO date string or None for blank input"""
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError(field, f"{field} must be a date (YYYY-MM-DD)")


def parse_choice(field: str, value: Any, enum: Type) -> str:
    """Case-insensitive enum value"""
    choice = str(value).strip().lower()
    if choice not in {member.value for member in enum}:
        raise ValidationError(field, f"Unknown {field}: {value}")
    return choice
