"""Utility functions for time and day handling."""

import re
import unicodedata

from .constants import DAY_ALIASES, MINUTES_PER_DAY
from .exceptions import InvalidEntityError

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def strip_accents(text: str) -> str:
    """Remove diacritics (e.g. 'Miércoles' -> 'Miercoles')."""
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_day_name(name: str) -> str | None:
    """Map an English or Spanish day name to its canonical English name.

    Args:
        name: Day name like "Lunes", "miércoles" or "Friday"

    Returns:
        Canonical lowercase English name, or None if the name is unknown
    """
    if not isinstance(name, str):
        return None
    key = strip_accents(name).strip().lower()
    return DAY_ALIASES.get(key)


def parse_time(value: str | int, entity_id: str | None = None) -> int:
    """Parse a time value to minutes since midnight.

    Accepts "HH:MM" strings and bare integers (whole hours).
    "24:00" is accepted as the end of the day.

    Raises:
        InvalidEntityError: If the value is not a valid time of day
    """
    if isinstance(value, bool):
        raise InvalidEntityError(f"invalid time value: {value!r}", entity_id)

    if isinstance(value, int):
        minutes = value * 60
    else:
        match = TIME_PATTERN.match(str(value).strip())
        if not match:
            raise InvalidEntityError(f"invalid time value: {value!r}", entity_id)
        hours, mins = int(match.group(1)), int(match.group(2))
        if mins >= 60:
            raise InvalidEntityError(f"invalid time value: {value!r}", entity_id)
        minutes = hours * 60 + mins

    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise InvalidEntityError(f"time out of range: {value!r}", entity_id)
    return minutes


def format_time(minutes: int) -> str:
    """Format minutes since midnight as 'HH:MM' (e.g. 420 -> '07:00')."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_hour_range(hour: int) -> str:
    """Format a one-hour cell as a range string (e.g. 7 -> '07:00-08:00')."""
    return f"{format_time(hour * 60)}-{format_time((hour + 1) * 60)}"
