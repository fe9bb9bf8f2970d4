"""Dashboard and report analytics - month bucketing, distributions, trends"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.models import (
    AmountRange,
    AnalyticsBucket,
    DashboardSummary,
    DistributionSlice,
    FloatDeposit,
    GrowthPoint,
    VolumeTrend,
)
from linkd_gateway.utils.date_utils import generate_month_range, localize, month_end, month_label
from linkd_gateway.utils.money import CENTS, FILS, Number, round_money, to_decimal

ZERO = Decimal("0")

# Common payment-link amounts shown on the dashboard pie chart
DEFAULT_AMOUNT_RANGES: Tuple[AmountRange, ...] = (
    AmountRange("10 KD", Decimal("9"), Decimal("11")),
    AmountRange("25 KD", Decimal("24"), Decimal("26")),
    AmountRange("50 KD", Decimal("49"), Decimal("51")),
    AmountRange("100 KD", Decimal("99"), Decimal("101")),
    AmountRange("200+ KD", Decimal("200"), None),
)
OTHER_LABEL = "Other"


def _amount(value: Optional[Number]) -> Decimal:
    """Missing amounts count as zero"""
    return ZERO if value is None else to_decimal(value)


def _as_date(reference: Union[date, datetime], tz: tzinfo) -> date:
    if isinstance(reference, datetime):
        return localize(reference, tz).date()
    return reference


def _check_window(window_months: int) -> None:
    if isinstance(window_months, bool) or not isinstance(window_months, int) or window_months < 1:
        raise InvalidArgumentError(f"window_months must be a positive integer, got {window_months!r}")


def percent_change(current: Number, previous: Number) -> Decimal:
    """
    Period-over-period change in percent, rounded to 2 places.

    Returns 0 when there is no positive previous value to compare against.
    """
    cur = to_decimal(current)
    prev = to_decimal(previous)
    if prev <= 0:
        return ZERO
    return round_money((cur - prev) / prev * 100)


def bucket_by_month(
    records: Iterable[Any],
    window_months: int,
    reference_date: Union[date, datetime],
    tz: tzinfo = timezone.utc,
) -> List[AnalyticsBucket]:
    """
    Roll records up into calendar-month buckets.

    Requirements:
    - Exactly window_months buckets, oldest first, ending at reference_date's month
    - Empty months are kept with zero count and sums
    - Records outside the window are ignored
    - Month membership is decided on the record's created_at date in tz

    Records need created_at, principal_kd and payout_kes attributes.
    """
    _check_window(window_months)

    months = generate_month_range(_as_date(reference_date, tz), window_months)
    index: Dict[Tuple[int, int], int] = {(m.year, m.month): i for i, m in enumerate(months)}

    counts = [0] * window_months
    principal = [ZERO] * window_months
    payout = [ZERO] * window_months

    for record in records:
        local_day = localize(record.created_at, tz).date()
        slot = index.get((local_day.year, local_day.month))
        if slot is None:
            continue
        counts[slot] += 1
        principal[slot] += _amount(record.principal_kd)
        payout[slot] += _amount(record.payout_kes)

    return [
        AnalyticsBucket(
            period_label=month_label(start),
            period_start=start,
            count=counts[i],
            total_principal_kd=principal[i],
            total_payout_kes=payout[i],
            avg_principal_kd=round_money(principal[i] / counts[i], FILS) if counts[i] else ZERO,
        )
        for i, start in enumerate(months)
    ]


def distribution_by_amount(
    records: Iterable[Any],
    ranges: Sequence[AmountRange] = DEFAULT_AMOUNT_RANGES,
) -> List[DistributionSlice]:
    """
    Classify records by principal_kd into named ranges plus a trailing "Other".

    Each record is counted once: the first declared range containing it wins,
    and anything no range contains goes to "Other".
    """
    counts = [0] * (len(ranges) + 1)
    totals = [ZERO] * (len(ranges) + 1)

    for record in records:
        amount = _amount(record.principal_kd)
        slot = next((i for i, r in enumerate(ranges) if r.contains(amount)), len(ranges))
        counts[slot] += 1
        totals[slot] += amount

    names = [r.name for r in ranges] + [OTHER_LABEL]
    return [
        DistributionSlice(name=name, count=counts[i], total_principal_kd=totals[i])
        for i, name in enumerate(names)
    ]


def client_growth(
    client_created_at: Iterable[datetime],
    window_months: int,
    reference_date: Union[date, datetime],
    tz: tzinfo = timezone.utc,
) -> List[GrowthPoint]:
    """Cumulative client count at each month end in the window"""
    _check_window(window_months)

    joined = sorted(localize(moment, tz).date() for moment in client_created_at)
    months = generate_month_range(_as_date(reference_date, tz), window_months)

    return [
        GrowthPoint(
            period_label=month_label(start),
            period_start=start,
            clients=sum(1 for day in joined if day <= month_end(start)),
        )
        for start in months
    ]


def volume_trend(
    records: Iterable[Any],
    now: datetime,
    days: int = 30,
    tz: tzinfo = timezone.utc,
) -> VolumeTrend:
    """
    Compare KD volume in (now - days, now] with the window before it.

    Records dated after now are not counted in either window.
    """
    end = localize(now, tz)
    current_start = end - timedelta(days=days)
    previous_start = current_start - timedelta(days=days)

    current = ZERO
    previous = ZERO
    for record in records:
        moment = localize(record.created_at, tz)
        if current_start < moment <= end:
            current += _amount(record.principal_kd)
        elif previous_start < moment <= current_start:
            previous += _amount(record.principal_kd)

    return VolumeTrend(
        current_kd=current,
        previous_kd=previous,
        percent_change=percent_change(current, previous),
    )


def summarize_dashboard(
    transactions: Sequence[Any],
    deposits: Sequence[FloatDeposit],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> DashboardSummary:
    """Headline figures for the dashboard overview cards"""
    today = localize(now, tz).date()
    todays = [t for t in transactions if localize(t.created_at, tz).date() == today]

    rates = [_amount(t.rate_kes_per_kd) for t in transactions]
    avg_rate = round_money(sum(rates, ZERO) / len(rates), CENTS) if rates else ZERO

    return DashboardSummary(
        transaction_count=len(transactions),
        total_principal_kd=sum((_amount(t.principal_kd) for t in transactions), ZERO),
        total_payout_kes=sum((_amount(t.payout_kes) for t in transactions), ZERO),
        today_count=len(todays),
        today_principal_kd=sum((_amount(t.principal_kd) for t in todays), ZERO),
        today_payout_kes=sum((_amount(t.payout_kes) for t in todays), ZERO),
        avg_rate=avg_rate,
        float_total_kd=sum((_amount(d.total_kd) for d in deposits), ZERO),
        float_total_kes=sum((_amount(d.total_kes) for d in deposits), ZERO),
        float_profit=sum((_amount(d.profit) for d in deposits), ZERO),
        volume_trend=volume_trend(transactions, now, tz=tz),
    )
