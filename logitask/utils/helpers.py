"""Shared parsing helpers for request payloads and query strings.

parse_date:        returns None on bad input (query-string filters)
parse_date_input:  raises ValueError on bad input (create/update payloads)
parse_int_arg:     tolerant int parsing for query-string ids
parse_bool:        "true"/"1"/"yes" style flags
"""
from datetime import date, datetime


def parse_date(value):
    """Parse a date string (ISO or DD/MM/YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD/MM/YYYY (UK format used on dockets)
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d/%m/%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Same as parse_date() but raises ValueError instead of returning None.
    """
    if value in (None, ""):
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError("Invalid date format. Use YYYY-MM-DD or DD/MM/YYYY.")
    return parsed


def parse_int_arg(value):
    """Int from a query-string value, or None."""
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
