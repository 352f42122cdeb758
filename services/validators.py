"""Input validation helpers shared by services.

Request schemas keep dates as ``str`` and parse them here, so a bad date is
reported as a ``ValidationError`` (400) rather than FastAPI's generic 422.
"""

import re
from datetime import date

from services.errors import ValidationError

_CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_calendar_date(value: str | None, *, field: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` calendar date.

    Args:
        value: Raw value from the request
        field: Field name used in the error message

    Returns:
        The parsed date

    Raises:
        ValidationError: If the value is missing, not in ``YYYY-MM-DD`` form,
            or not a real calendar date (e.g. 2024-02-30)
    """
    if not isinstance(value, str) or not _CALENDAR_DATE_RE.match(value):
        raise ValidationError(f"Invalid {field}. Expected format YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}. '{value}' is not a valid calendar date")


def require_positive_int(value, *, field: str) -> int:
    """
    Ensure a value is a strictly positive integer.

    Booleans are rejected even though they are ``int`` subclasses.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value
