"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone, tzinfo
from typing import List

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def month_start(day: date) -> date:
    return day.replace(day=1)


def shift_months(day: date, months: int) -> date:
    """Move by whole calendar months, clamping the day to the target month's length"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))


def month_end(day: date) -> date:
    """Last calendar day of the month containing day"""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def generate_month_range(reference: date, months: int) -> List[date]:
    """First days of the `months` calendar months ending at reference's month, oldest first"""
    start = month_start(reference)
    return [shift_months(start, -offset) for offset in range(months - 1, -1, -1)]


def month_label(day: date) -> str:
    """English label regardless of process locale, e.g. "Jan 2024" """
    return f"{MONTH_ABBR[day.month - 1]} {day.year}"


def localize(moment: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Express a timestamp in tz; naive timestamps are taken to already be in tz"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def js_weekday(day: date) -> int:
    """Day of week numbered 0 = Sunday .. 6 = Saturday"""
    return (day.weekday() + 1) % 7
