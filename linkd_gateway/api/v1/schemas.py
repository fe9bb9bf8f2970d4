"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from linkd_gateway.domain.models import Frequency


class FeeBracketSchema(BaseModel):
    """Single fee tier, inclusive on both ends"""

    min_amount: Decimal = Field(..., ge=0, description="Lowest KES amount in the tier")
    max_amount: Decimal = Field(..., ge=0, description="Highest KES amount in the tier")
    fee: Decimal = Field(..., ge=0, description="Flat fee in KES")


class FeeTableResponse(BaseModel):
    """Response for GET/PUT /v1/fees/{channel_type}"""

    channel_type: str
    brackets: List[FeeBracketSchema]


class FeeTableUpdate(BaseModel):
    """Request body for PUT /v1/fees/{channel_type}"""

    brackets: List[FeeBracketSchema] = Field(..., min_length=1)


class SeedResponse(BaseModel):
    brackets_added: int


class QuoteRequest(BaseModel):
    """Request body for POST /v1/fees/quote"""

    principal_kd: Decimal = Field(
        ..., max_digits=12, decimal_places=3, description="Amount received from the client in KD (up to 3 decimals)"
    )
    rate_kes_per_kd: Decimal = Field(..., max_digits=10, decimal_places=4, description="Exchange rate applied (up to 4 decimals)")
    channel_type: str = Field("SEND_MONEY", description="SEND_MONEY or PAYBILL")
    fee_override: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2, description="Manually entered fee in KES")


class QuoteResponse(BaseModel):
    """Response for POST /v1/fees/quote"""

    amount_kes: Decimal
    fee_kes: Decimal
    payout_kes: Decimal
    fee_outcome: str


class TransactionCreate(QuoteRequest):
    """Request body for POST /v1/transactions"""

    client_id: str = Field(..., min_length=1, description="Client identifier")
    created_at: Optional[datetime] = None
    notes: Optional[str] = None
    reference: Optional[str] = None


class TransactionUpdate(BaseModel):
    """
    Request body for PUT /v1/transactions/{id}

    Omitted fields keep their stored value; amount, fee and payout are always
    recomputed. Leaving fee_override out re-resolves the fee from the table.
    """

    client_id: Optional[str] = Field(None, min_length=1)
    principal_kd: Optional[Decimal] = Field(None, max_digits=12, decimal_places=3)
    rate_kes_per_kd: Optional[Decimal] = Field(None, max_digits=10, decimal_places=4)
    channel_type: Optional[str] = None
    fee_override: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    created_at: Optional[datetime] = None
    notes: Optional[str] = None
    reference: Optional[str] = None


class TransactionStatusUpdate(BaseModel):
    """Request body for PUT /v1/transactions/{id}/status"""

    status: str = Field(..., description="PENDING, VERIFIED, PAID or REJECTED")


class TransactionResponse(BaseModel):
    """Response for POST /v1/transactions and GET /v1/transactions/{id}"""

    id: str
    client_id: str
    principal_kd: Decimal
    rate_kes_per_kd: Decimal
    channel_type: str
    amount_kes: Decimal
    fee_kes: Decimal
    payout_kes: Decimal
    status: str
    created_at: datetime
    paid_at: Optional[datetime] = None


class AnalyticsBucketSchema(BaseModel):
    period_label: str
    period_start: date
    count: int
    total_principal_kd: Decimal
    total_payout_kes: Decimal
    avg_principal_kd: Decimal


class MonthlyAnalyticsResponse(BaseModel):
    """Response for GET /v1/analytics/monthly"""

    window_months: int
    reference_date: date
    buckets: List[AnalyticsBucketSchema]


class DistributionSliceSchema(BaseModel):
    name: str
    count: int
    total_principal_kd: Decimal


class DistributionResponse(BaseModel):
    """Response for GET /v1/analytics/distribution"""

    total: int
    slices: List[DistributionSliceSchema]


class GrowthPointSchema(BaseModel):
    period_label: str
    period_start: date
    clients: int


class ClientGrowthResponse(BaseModel):
    """Response for GET /v1/analytics/client-growth"""

    points: List[GrowthPointSchema]


class VolumeTrendSchema(BaseModel):
    current_kd: Decimal
    previous_kd: Decimal
    percent_change: Decimal
    is_positive: bool


class DashboardSummaryResponse(BaseModel):
    """Response for GET /v1/analytics/summary"""

    transaction_count: int
    total_principal_kd: Decimal
    total_payout_kes: Decimal
    today_count: int
    today_principal_kd: Decimal
    today_payout_kes: Decimal
    avg_rate: Decimal
    float_total_kd: Decimal
    float_total_kes: Decimal
    float_profit: Decimal
    volume_trend: VolumeTrendSchema


class FloatDepositCreate(BaseModel):
    """Request body for POST /v1/float-deposits"""

    deposit_date: date
    total_kd: Decimal = Field(..., max_digits=12, decimal_places=3)
    rate: Decimal = Field(..., max_digits=10, decimal_places=4)
    share_percentage: Decimal = Field(..., max_digits=5, decimal_places=2)
    transaction_fee: Decimal = Field(Decimal("0"), max_digits=10, decimal_places=2)
    profit: Decimal = Field(Decimal("0"), max_digits=14, decimal_places=2)


class FloatDepositResponse(FloatDepositCreate):
    id: str
    total_kes: Decimal
    share_total: Decimal


class ScheduleCreate(BaseModel):
    """Request body for POST /v1/reports/schedules"""

    report_type: str = Field("transactions", description="transactions, clients or float_deposits")
    report_name: str = Field(..., min_length=1)
    frequency: Frequency
    time_of_day: str = Field(..., description="HH:MM in the business timezone")
    day_of_week: Optional[int] = Field(None, description="0 = Sunday; weekly schedules only")
    day_of_month: Optional[int] = Field(None, description="1-31; monthly schedules only")
    email_recipients: List[str] = Field(default_factory=list)
    is_active: bool = True


class ScheduleResponse(ScheduleCreate):
    id: str
    last_sent_at: Optional[datetime] = None


class DispatchResult(BaseModel):
    schedule_id: str
    success: bool
    error: Optional[str] = None


class DispatchResponse(BaseModel):
    """Response for POST /v1/reports/dispatch"""

    processed_at: datetime
    due_count: int
    results: List[DispatchResult]
