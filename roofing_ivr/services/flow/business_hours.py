"""Business-hours gate."""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from roofing_ivr.services.flow.constants import (
    BUSINESS_DAYS,
    BUSINESS_TIMEZONE,
    CLOSING_HOUR,
    OPENING_HOUR,
)


def local_time(now: datetime, tz_name: str = BUSINESS_TIMEZONE) -> datetime:
    """Convert an instant to the office timezone. Naive values are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name))


def is_business_hours(now: datetime, tz_name: str = BUSINESS_TIMEZONE) -> bool:
    """
    Check whether the office is open at the given instant.

    Open Monday through Friday from 7:00 (inclusive) to 17:00 (exclusive),
    local time. There is no holiday calendar.
    """
    local = local_time(now, tz_name)
    hour = local.hour + local.minute / 60
    return local.weekday() in BUSINESS_DAYS and OPENING_HOUR <= hour < CLOSING_HOUR
