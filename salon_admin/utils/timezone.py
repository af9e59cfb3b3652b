"""
Timezone helpers for rendering backend (UTC) timestamps in the tenant's zone

Backend timestamps without an explicit offset are UTC.
"""

import logging
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import DEFAULT_TENANT_TIMEZONE

logger = logging.getLogger(__name__)

DateLike = Union[str, datetime]

TIMEZONE_DISPLAY_NAMES = {
    "America/New_York": "Eastern Time (ET)",
    "America/Chicago": "Central Time (CT)",
    "America/Denver": "Mountain Time (MT)",
    "America/Los_Angeles": "Pacific Time (PT)",
    "Europe/London": "Greenwich Mean Time (GMT)",
    "Asia/Karachi": "Pakistan Standard Time (PKT)",
    "Asia/Kolkata": "Indian Standard Time (IST)",
    "Asia/Tokyo": "Japan Standard Time (JST)",
    "Australia/Sydney": "Australian Eastern Time (AET)",
}

_TIMEZONE_OPTIONS = [
    ("America/New_York", "Eastern Time (ET)"),
    ("America/Chicago", "Central Time (CT)"),
    ("America/Denver", "Mountain Time (MT)"),
    ("America/Los_Angeles", "Pacific Time (PT)"),
    ("America/Anchorage", "Alaska Time (AKT)"),
    ("Pacific/Honolulu", "Hawaii Time (HST)"),
    ("America/Phoenix", "Arizona Time (MST)"),
    ("America/Detroit", "Eastern Time - Detroit (ET)"),
    ("America/Indiana/Indianapolis", "Eastern Time - Indianapolis (ET)"),
    ("America/Kentucky/Louisville", "Eastern Time - Louisville (ET)"),
    ("America/Kentucky/Monticello", "Eastern Time - Monticello (ET)"),
    ("America/Indiana/Vincennes", "Eastern Time - Vincennes (ET)"),
    ("America/Indiana/Winamac", "Eastern Time - Winamac (ET)"),
    ("America/Indiana/Marengo", "Eastern Time - Marengo (ET)"),
    ("America/Indiana/Petersburg", "Eastern Time - Petersburg (ET)"),
    ("America/Indiana/Vevay", "Eastern Time - Vevay (ET)"),
    ("America/Chicago", "Central Time - Chicago (CT)"),
    ("America/Indiana/Tell_City", "Central Time - Tell City (CT)"),
    ("America/Indiana/Knox", "Central Time - Knox (CT)"),
    ("America/Menominee", "Central Time - Menominee (CT)"),
    ("America/North_Dakota/Center", "Central Time - Center (CT)"),
    ("America/North_Dakota/New_Salem", "Central Time - New Salem (CT)"),
    ("America/North_Dakota/Beulah", "Central Time - Beulah (CT)"),
    ("America/Denver", "Mountain Time - Denver (MT)"),
    ("America/Boise", "Mountain Time - Boise (MT)"),
    ("America/Phoenix", "Mountain Time - Phoenix (MST)"),
    ("America/Los_Angeles", "Pacific Time - Los Angeles (PT)"),
    ("America/Anchorage", "Alaska Time - Anchorage (AKT)"),
    ("America/Juneau", "Alaska Time - Juneau (AKT)"),
    ("America/Sitka", "Alaska Time - Sitka (AKT)"),
    ("America/Metlakatla", "Alaska Time - Metlakatla (AKT)"),
    ("America/Yakutat", "Alaska Time - Yakutat (AKT)"),
    ("America/Nome", "Alaska Time - Nome (AKT)"),
    ("America/Adak", "Hawaii-Aleutian Time - Adak (HAT)"),
    ("Pacific/Honolulu", "Hawaii Time - Honolulu (HST)"),
    ("Europe/London", "Greenwich Mean Time (GMT)"),
    ("Asia/Karachi", "Pakistan Standard Time (PKT)"),
    ("Asia/Kolkata", "India Standard Time (IST)"),
    ("Asia/Tokyo", "Japan Standard Time (JST)"),
    ("Australia/Sydney", "Australian Eastern Time (AEST)"),
]


def _dedupe_options(options: list[tuple[str, str]]) -> list[dict[str, str]]:
    # First label wins for a repeated zone
    seen = set()
    choices = []
    for value, label in options:
        if value in seen:
            continue
        seen.add(value)
        choices.append({"value": value, "label": label})
    return choices


TIMEZONE_CHOICES = _dedupe_options(_TIMEZONE_OPTIONS)


def get_zone(tenant_timezone: Optional[str]) -> ZoneInfo:
    """ZoneInfo for a tenant; unknown or empty names fall back to the default zone"""
    try:
        return ZoneInfo(tenant_timezone)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        logger.warning(
            f"⚠️ Unknown timezone {tenant_timezone!r}, using {DEFAULT_TENANT_TIMEZONE}"
        )
        return ZoneInfo(DEFAULT_TENANT_TIMEZONE)


def parse_utc_datetime(value: DateLike) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are UTC. Returns None when unparseable."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=dt_timezone.utc)
    return dt


def _format_date(dt: datetime) -> str:
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def _format_time(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def to_tenant_datetime(value: DateLike, tenant_timezone: str) -> Optional[datetime]:
    """Raises ZoneInfoNotFoundError for unknown zones"""
    dt = parse_utc_datetime(value)
    if dt is None:
        return None
    return dt.astimezone(ZoneInfo(tenant_timezone))


def convert_to_tenant_timezone(
    value: DateLike, tenant_timezone: str = DEFAULT_TENANT_TIMEZONE
) -> dict[str, Any]:
    """
    Convert a UTC timestamp to the tenant's timezone.

    Returns:
        {date: "Oct 22, 2025", time: "2:00 PM", full_date_time, timezone, raw_date}
    """
    try:
        tenant_dt = to_tenant_datetime(value, tenant_timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"❌ Error converting timezone {tenant_timezone}: {e}")
        return {
            "date": "Error",
            "time": "Error",
            "full_date_time": "Error",
            "timezone": tenant_timezone,
            "raw_date": None,
        }

    if tenant_dt is None:
        logger.warning(f"⚠️ Invalid date provided: {value}")
        return {
            "date": "Invalid Date",
            "time": "Invalid Time",
            "full_date_time": "Invalid DateTime",
            "timezone": tenant_timezone,
            "raw_date": None,
        }

    formatted_date = _format_date(tenant_dt)
    formatted_time = _format_time(tenant_dt)
    return {
        "date": formatted_date,
        "time": formatted_time,
        "full_date_time": f"{formatted_date}, {formatted_time}",
        "timezone": tenant_timezone,
        "raw_date": tenant_dt,
    }


def format_in_tenant_timezone(
    value: DateLike, tenant_timezone: str = DEFAULT_TENANT_TIMEZONE, fmt: Optional[str] = None
) -> str:
    """Format a UTC timestamp in the tenant zone; strftime `fmt` overrides the default"""
    try:
        tenant_dt = to_tenant_datetime(value, tenant_timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"❌ Error formatting timezone: {e}")
        return "Error"

    if tenant_dt is None:
        return "Invalid Date"
    if fmt:
        return tenant_dt.strftime(fmt)
    return f"{_format_date(tenant_dt)}, {_format_time(tenant_dt)}"


def get_timezone_abbreviation(
    tenant_timezone: str = DEFAULT_TENANT_TIMEZONE, at: Optional[datetime] = None
) -> str:
    try:
        now = at or datetime.now(dt_timezone.utc)
        return now.astimezone(ZoneInfo(tenant_timezone)).tzname() or tenant_timezone
    except (ZoneInfoNotFoundError, ValueError):
        return tenant_timezone


def tenant_today(tenant_timezone: str = DEFAULT_TENANT_TIMEZONE) -> date:
    return datetime.now(get_zone(tenant_timezone)).date()


def is_today_in_tenant_timezone(
    value: DateLike, tenant_timezone: str = DEFAULT_TENANT_TIMEZONE
) -> bool:
    try:
        tenant_dt = to_tenant_datetime(value, tenant_timezone)
        return tenant_dt is not None and tenant_dt.date() == tenant_today(tenant_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_relative_time(
    value: DateLike,
    tenant_timezone: str = DEFAULT_TENANT_TIMEZONE,
    today: Optional[date] = None,
) -> str:
    """Today / Tomorrow / Yesterday / "In N days" / "N days ago" by tenant-local calendar day"""
    try:
        tenant_dt = to_tenant_datetime(value, tenant_timezone)
        if tenant_dt is None:
            return "Invalid Date"
        diff_days = (tenant_dt.date() - (today or tenant_today(tenant_timezone))).days
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"❌ Error getting relative time: {e}")
        return "Unknown"

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Tomorrow"
    if diff_days == -1:
        return "Yesterday"
    if diff_days > 1:
        return f"In {diff_days} days"
    return f"{abs(diff_days)} days ago"


def get_timezone_display_name(iana_timezone: str) -> str:
    return TIMEZONE_DISPLAY_NAMES.get(iana_timezone, iana_timezone)


def tenant_day_bounds_utc(day: date, tenant_timezone: str) -> tuple[datetime, datetime]:
    """Tenant-local [00:00, 23:59:59.999999] of `day` expressed in UTC"""
    zone = get_zone(tenant_timezone)
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start.astimezone(dt_timezone.utc), end.astimezone(dt_timezone.utc)
