"""Shared validation utilities"""

import re
from datetime import date
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")

# User-friendly timezone names accepted in forms
TIMEZONE_ALIASES = {
    "Pakistan Standard Time": "Asia/Karachi",
    "Eastern Time": "America/New_York",
    "Central Time": "America/Chicago",
    "Mountain Time": "America/Denver",
    "Pacific Time": "America/Los_Angeles",
    "GMT": "Europe/London",
    "IST": "Asia/Kolkata",
    "JST": "Asia/Tokyo",
    "AEST": "Australia/Sydney",
}

VALIDATION_MESSAGES = {
    "E164_PHONE": "Phone must be in E.164 format (e.g., +92XXXXXXXXXX)",
    "EMAIL": "Please enter a valid email address",
    "IANA_TIMEZONE": "Please enter a valid timezone (e.g., Asia/Karachi)",
    "GO_LIVE_DATE": "Go-live date cannot be earlier than today",
    "DURATION": "Duration must be a positive integer (minutes)",
    "PRICE": "Price must be a non-negative integer (PKR)",
    "TIME_FORMAT": "Time must be in HH:MM format",
    "SLUG": "Slug must be 3-50 characters, lowercase letters, numbers, and hyphens only",
}


def validate_e164_phone(phone: Optional[str]) -> bool:
    return bool(phone) and bool(E164_PATTERN.match(phone))


def format_to_e164(phone: Optional[str]) -> Optional[str]:
    """
    Format a phone number to E.164.

    Args:
        phone: Phone number string in any format

    Returns:
        "+<digits>" or None when the digit count cannot be mapped
    """
    digits = re.sub(r"\D", "", phone or "")

    # US/Canada with country code
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    # US/Canada without country code
    if len(digits) == 10:
        return f"+1{digits}"

    # Anything longer is assumed to carry its own country code
    if len(digits) > 10:
        return f"+{digits}"

    return None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Normalize a phone field the way the form does on blur"""
    if phone and not validate_e164_phone(phone):
        formatted = format_to_e164(phone)
        if formatted:
            return formatted
    return phone


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_PATTERN.match(email))


def validate_iana_timezone(timezone: Optional[str]) -> bool:
    if not timezone:
        return False
    try:
        ZoneInfo(timezone)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_iana_timezone(value: Optional[str]) -> Optional[str]:
    """Resolve an IANA name or a friendly alias to an IANA name"""
    if validate_iana_timezone(value):
        return value
    mapped = TIMEZONE_ALIASES.get(value or "")
    if mapped and validate_iana_timezone(mapped):
        return mapped
    return None


def validate_go_live_date(value: Any, today: Optional[date] = None) -> bool:
    """Go-live date must be an ISO date not earlier than today"""
    if isinstance(value, date):
        target = value
    else:
        try:
            target = date.fromisoformat(str(value).strip())
        except ValueError:
            return False
    return target >= (today or date.today())


def parse_leading_int(value: Any) -> Optional[int]:
    # parseInt semantics: "30 min" -> 30, "abc" -> None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = LEADING_INT_PATTERN.match(str(value)) if value is not None else None
    return int(match.group(1)) if match else None


def parse_number(value: Any, default: float = 0) -> float:
    """Numeric backend field that may arrive as a string ("25.00"); junk reads as `default`"""
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def validate_duration(duration: Any) -> bool:
    num = parse_leading_int(duration)
    return num is not None and num > 0


def validate_price(price: Any) -> bool:
    num = parse_leading_int(price)
    return num is not None and num >= 0


def validate_time_format(value: Optional[str]) -> bool:
    return bool(value) and bool(TIME_PATTERN.match(value))


def validate_slug(slug: Optional[str]) -> bool:
    return bool(slug) and bool(SLUG_PATTERN.match(slug)) and 3 <= len(slug) <= 50


def clean_slug(value: Optional[str]) -> str:
    """Lowercase and drop everything outside [a-z0-9-]"""
    return re.sub(r"[^a-z0-9-]", "", (value or "").lower())


def slugify_business_name(name: Optional[str]) -> str:
    slug = (name or "").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def generate_booking_path(slug: str) -> str:
    return f"/book/{slug}"


def get_validation_error(field: str, value: Any) -> Optional[str]:
    """
    Validate a single form field.

    Returns:
        The error message, or None when the value is valid or the field is unknown
    """
    if field in ("phone", "mobile"):
        return None if validate_e164_phone(value) else VALIDATION_MESSAGES["E164_PHONE"]
    if field == "email":
        return None if validate_email(value) else VALIDATION_MESSAGES["EMAIL"]
    if field == "timezone":
        return None if validate_iana_timezone(value) else VALIDATION_MESSAGES["IANA_TIMEZONE"]
    if field == "goLiveDate":
        return None if validate_go_live_date(value) else VALIDATION_MESSAGES["GO_LIVE_DATE"]
    if field == "duration":
        return None if validate_duration(value) else VALIDATION_MESSAGES["DURATION"]
    if field == "price":
        return None if validate_price(value) else VALIDATION_MESSAGES["PRICE"]
    if field == "time":
        return None if validate_time_format(value) else VALIDATION_MESSAGES["TIME_FORMAT"]
    if field == "slug":
        return None if validate_slug(value) else VALIDATION_MESSAGES["SLUG"]
    return None
