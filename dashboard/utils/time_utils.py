import re
from datetime import datetime

from website.constants import DATETIME_FORMAT

# what we accept for start_at / end_at / from / to
INPUT_FORMATS = (DATETIME_FORMAT, "%Y-%m-%dT%H:%M:%S")

# strptime alone accepts '2024-1-10 9:0:0'; every part must be zero-padded
DATETIME_SHAPE = re.compile(r"\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}")


def parse_datetime(value):
    """
    Parse 'YYYY-MM-DD HH:MM:SS' (or the same with a 'T' separator) into a
    naive datetime. Returns None if parsing fails.
    """
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not DATETIME_SHAPE.fullmatch(value):
        return None

    for fmt in INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    return None


def format_datetime(value) -> str:
    """datetime -> 'YYYY-MM-DD HH:MM:SS' (empty string for None)."""
    if value is None:
        return ""
    return value.strftime(DATETIME_FORMAT)


def duration_minutes(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def parse_date(value):
    """
    Parse a date string in 'YYYY-MM-DD' format into a date object.
    Returns None if parsing fails.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except(TypeError, ValueError):
        return None
