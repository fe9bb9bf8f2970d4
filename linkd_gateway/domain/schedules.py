"""Recurring report schedule matching"""

from datetime import datetime, timedelta
from typing import Iterable, List, Tuple

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.models import Frequency, ReportSchedule
from linkd_gateway.utils.date_utils import js_weekday, shift_months


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """
    Parse "HH:MM" (or the "HH:MM:SS" form Postgres returns) into (hour, minute).

    Raises:
        InvalidArgumentError: Malformed or out-of-range time
    """
    parts = value.strip().split(":") if isinstance(value, str) else []
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidArgumentError(f"time_of_day must look like HH:MM, got {value!r}")

    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidArgumentError(f"time_of_day out of range: {value!r}")
    return hour, minute


def validate_schedule(schedule: ReportSchedule) -> None:
    """
    Enforce the per-frequency field rules.

    - day_of_week (0 = Sunday .. 6) is set for WEEKLY schedules only
    - day_of_month (1..31) is set for MONTHLY schedules only
    """
    parse_time_of_day(schedule.time_of_day)

    if schedule.frequency == Frequency.WEEKLY:
        if schedule.day_of_week is None or not 0 <= schedule.day_of_week <= 6:
            raise InvalidArgumentError("Weekly schedules need day_of_week between 0 and 6")
    elif schedule.day_of_week is not None:
        raise InvalidArgumentError("day_of_week is only allowed on weekly schedules")

    if schedule.frequency == Frequency.MONTHLY:
        if schedule.day_of_month is None or not 1 <= schedule.day_of_month <= 31:
            raise InvalidArgumentError("Monthly schedules need day_of_month between 1 and 31")
    elif schedule.day_of_month is not None:
        raise InvalidArgumentError("day_of_month is only allowed on monthly schedules")


def is_due(schedule: ReportSchedule, now: datetime) -> bool:
    """
    True when an active schedule fires at now's exact hour and minute.

    now must already be expressed in the business timezone. A malformed
    time_of_day never fires.
    """
    if not schedule.is_active:
        return False

    try:
        hour, minute = parse_time_of_day(schedule.time_of_day)
    except InvalidArgumentError:
        return False

    if (now.hour, now.minute) != (hour, minute):
        return False

    if schedule.frequency == Frequency.DAILY:
        return True
    if schedule.frequency == Frequency.WEEKLY:
        return schedule.day_of_week == js_weekday(now)
    if schedule.frequency == Frequency.MONTHLY:
        return schedule.day_of_month == now.day
    return False


def due_schedules(schedules: Iterable[ReportSchedule], now: datetime) -> List[ReportSchedule]:
    """Schedules to dispatch at now; stamping last_sent_at is left to the caller"""
    return [schedule for schedule in schedules if is_due(schedule, now)]


def report_window(frequency: Frequency, now: datetime) -> Tuple[datetime, datetime]:
    """
    Period a dispatched report covers, ending at now.

    Daily: previous 24 hours. Weekly: previous 7 days.
    Monthly: same day one calendar month back, clamped to that month's length.
    """
    if frequency == Frequency.DAILY:
        start = now - timedelta(days=1)
    elif frequency == Frequency.WEEKLY:
        start = now - timedelta(days=7)
    else:
        previous = shift_months(now.date(), -1)
        start = now.replace(year=previous.year, month=previous.month, day=previous.day)
    return start, now
