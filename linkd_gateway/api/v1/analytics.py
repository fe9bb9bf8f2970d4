"""Dashboard analytics - GET /v1/analytics/*"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from linkd_gateway.api.dependencies import get_business_tz, get_now
from linkd_gateway.api.v1.schemas import (
    AnalyticsBucketSchema,
    ClientGrowthResponse,
    DashboardSummaryResponse,
    DistributionResponse,
    DistributionSliceSchema,
    GrowthPointSchema,
    MonthlyAnalyticsResponse,
    VolumeTrendSchema,
)
from linkd_gateway.config import settings
from linkd_gateway.domain.analytics import (
    bucket_by_month,
    client_growth,
    distribution_by_amount,
    summarize_dashboard,
)
from linkd_gateway.infrastructure.database.repositories import (
    ClientRepository,
    FloatDepositRepository,
    TransactionRepository,
)
from linkd_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/analytics/monthly", response_model=MonthlyAnalyticsResponse)
def get_monthly_volume(
    window_months: int = Query(settings.analytics_window_months, ge=1, le=36),
    reference_date: Optional[date] = Query(None, description="Defaults to today in the business timezone"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    tz: ZoneInfo = Depends(get_business_tz),
):
    """Transaction count, KD volume and KES payout per calendar month, oldest first"""
    reference = reference_date or now.date()
    buckets = bucket_by_month(TransactionRepository(db).list_transactions(), window_months, reference, tz)

    return MonthlyAnalyticsResponse(
        window_months=window_months,
        reference_date=reference,
        buckets=[AnalyticsBucketSchema(**vars(b)) for b in buckets],
    )


@router.get("/analytics/distribution", response_model=DistributionResponse)
def get_amount_distribution(db: Session = Depends(get_db)):
    """Transactions grouped by common payment-link amounts"""
    transactions = TransactionRepository(db).list_transactions()
    slices = distribution_by_amount(transactions)

    return DistributionResponse(
        total=len(transactions),
        slices=[DistributionSliceSchema(**vars(s)) for s in slices],
    )


@router.get("/analytics/client-growth", response_model=ClientGrowthResponse)
def get_client_growth(
    window_months: int = Query(settings.analytics_window_months, ge=1, le=36),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    tz: ZoneInfo = Depends(get_business_tz),
):
    """Cumulative client count at each month end"""
    points = client_growth(ClientRepository(db).list_created_at(), window_months, now, tz)
    return ClientGrowthResponse(points=[GrowthPointSchema(**vars(p)) for p in points])


@router.get("/analytics/summary", response_model=DashboardSummaryResponse)
def get_dashboard_summary(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    tz: ZoneInfo = Depends(get_business_tz),
):
    """Headline totals, today's activity and the 30-day volume trend"""
    summary = summarize_dashboard(
        TransactionRepository(db).list_transactions(),
        FloatDepositRepository(db).list_deposits(),
        now,
        tz,
    )
    trend = summary.volume_trend

    return DashboardSummaryResponse(
        transaction_count=summary.transaction_count,
        total_principal_kd=summary.total_principal_kd,
        total_payout_kes=summary.total_payout_kes,
        today_count=summary.today_count,
        today_principal_kd=summary.today_principal_kd,
        today_payout_kes=summary.today_payout_kes,
        avg_rate=summary.avg_rate,
        float_total_kd=summary.float_total_kd,
        float_total_kes=summary.float_total_kes,
        float_profit=summary.float_profit,
        volume_trend=VolumeTrendSchema(
            current_kd=trend.current_kd,
            previous_kd=trend.previous_kd,
            percent_change=trend.percent_change,
            is_positive=trend.is_positive,
        ),
    )
