"""Value coercion and option matching for the fill engine."""

import math
import re
from collections.abc import Sequence
from datetime import date
from typing import TypeVar

T = TypeVar("T")

CANONICAL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")  # MM/DD/YYYY
_DASHED_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")  # DD-MM-YYYY
_ISO_SLASH_DATE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")  # YYYY/MM/DD
# Any RFC 3986 scheme; a digit after the colon is a port, not a scheme
_URL_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*:(?!\d)", re.IGNORECASE)

DEFAULT_URL_SCHEME = "https://"
TRUTHY_LITERALS = ("true", "yes")


def as_text(value: str | bool | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_number(value: str | bool | None) -> float | None:
    """Parse a proposed number, returning None when it is not a finite float."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def clamp_number(number: float, minimum: str | None, maximum: str | None) -> float:
    """Clamp to the control's declared min/max when they are numbers."""
    low = parse_number(minimum)
    high = parse_number(maximum)
    if low is not None and number < low:
        number = low
    if high is not None and number > high:
        number = high
    return number


def format_number(number: float) -> str:
    if number.is_integer():
        return str(int(number))
    return repr(number)


def coerce_date(value: str) -> str:
    """Reinterpret common literal date patterns as ``YYYY-MM-DD``.

    Digit groups are parsed explicitly; a string that matches no known
    pattern, or names an impossible calendar date, is returned unchanged.
    """
    text = value.strip()
    if not text or CANONICAL_DATE.match(text):
        return text

    parts: tuple[str, str, str] | None = None
    if match := _US_DATE.match(text):
        month, day, year = match.groups()
        parts = (year, month, day)
    elif match := _DASHED_DATE.match(text):
        day, month, year = match.groups()
        parts = (year, month, day)
    elif match := _ISO_SLASH_DATE.match(text):
        parts = match.groups()

    if parts is None:
        return value

    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2])).isoformat()
    except ValueError:
        return value


def coerce_url(value: str) -> str:
    """Prefix a scheme-less, dotted value with the default secure scheme."""
    if value and not _URL_SCHEME.match(value) and "." in value:
        return f"{DEFAULT_URL_SCHEME}{value}"
    return value


def coerce_checkbox(value: str | bool | None) -> bool:
    return value is True or value in TRUTHY_LITERALS


def match_option(proposed: str, candidates: Sequence[tuple[T, str, str]]) -> T | None:
    """Find the candidate matching a proposed value.

    Each candidate is ``(item, label, value)``. The first pass looks for an
    exact case-insensitive match on label or value; the second for
    containment in either direction. Empty strings never match.

    Returns:
        The first matching item, or None
    """
    wanted = proposed.strip().lower()
    if not wanted:
        return None

    normalized = [
        (item, label.strip().lower(), value.strip().lower())
        for item, label, value in candidates
    ]

    for item, label, value in normalized:
        if wanted in (label, value):
            return item

    for item, label, value in normalized:
        for text in (label, value):
            if text and (wanted in text or text in wanted):
                return item

    return None
