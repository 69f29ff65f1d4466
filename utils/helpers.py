import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def is_valid_uuid(uuid_string: str) -> bool:
    """
    Check if a string is a valid UUID format
    """
    try:
        uuid.UUID(uuid_string)
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Turn pydantic/FastAPI error entries into [{field, message}] pairs.
    The leading "body" location segment FastAPI adds is dropped.
    """
    formatted = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] == "body":
            loc = loc[1:]
        formatted.append({
            "field": ".".join(str(part) for part in loc),
            "message": error.get("msg", "Invalid value"),
        })
    return formatted


def format_birthday(month: int, day: int, year: Optional[int] = None) -> str:
    """
    Render a birthday with a human month name, e.g. "December 10, 1815"
    """
    birthday = f"{MONTH_NAMES[month - 1]} {day}"
    if year:
        birthday += f", {year}"
    return birthday


def format_long_date(value: date) -> str:
    """Long US-style date used in the assistant prompt, e.g. "October 18, 2026" """
    return format_birthday(value.month, value.day, value.year)
