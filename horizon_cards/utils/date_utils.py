"""Calendar arithmetic for billing cycles"""

import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

from horizon_cards.config import settings


def days_in_month(year: int, month: int) -> int:
    """Number of days in a 1-indexed month"""
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp a day-of-month to the last day of the month (31 in April -> 30)"""
    return min(day, days_in_month(year, month))


def shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    """Move (year, month) by a number of months, wrapping across years"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def add_months(value: date, months: int) -> date:
    """
    Advance a date by whole calendar months keeping the day-of-month.

    Days that do not exist in the target month are clamped:
    2025-01-31 + 1 month -> 2025-02-28.
    """
    year, month = shift_month(value.year, value.month, months)
    return date(year, month, clamp_day(year, month, value.day))


def to_local_date(value: date | datetime, tz_name: str | None = None) -> date:
    """
    Resolve a date or datetime to a calendar date in the user's timezone.

    Plain dates pass through. Aware datetimes are converted to the configured
    timezone first; naive datetimes are taken as already local.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz_name or settings.timezone))
        return value.date()
    return value


def today_local(tz_name: str | None = None) -> date:
    """Today's date in the user's timezone"""
    return datetime.now(ZoneInfo(tz_name or settings.timezone)).date()
