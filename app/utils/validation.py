import re
from urllib.parse import urlparse

import pytz

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[1-9][\d\-\s\(\)\.]{7,15}$")
GSTIN_PATTERN = re.compile(r"^\d{2}[A-Z]{5}\d{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def validate_phone_number(phone: str) -> bool:
    """Validate phone number format (international or local)."""
    if not phone:
        return True  # Allow empty/null

    return bool(PHONE_PATTERN.match(phone.replace(" ", "")))


def validate_email_format(email: str) -> bool:
    """Validate email format."""
    if not email:
        return True  # Allow empty/null

    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_url_format(url: str) -> bool:
    """Validate an absolute http(s) URL."""
    if not url:
        return True  # Allow empty/null

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_gst_number(gst_number: str) -> bool:
    """Validate a 15-character GSTIN."""
    if not gst_number:
        return True  # Allow empty/null

    return bool(GSTIN_PATTERN.match(gst_number.strip().upper()))


def validate_time_of_day(value: str) -> bool:
    """Validate a 24h HH:MM time."""
    return bool(TIME_PATTERN.match(value or ""))


def validate_timezone(timezone: str) -> bool:
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def minutes_of_day(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
