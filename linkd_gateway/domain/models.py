"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class ChannelType(str, Enum):
    """Payment rail a payout fee schedule applies to"""

    SEND_MONEY = "SEND_MONEY"
    PAYBILL = "PAYBILL"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    PAID = "PAID"
    REJECTED = "REJECTED"


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class FeeOutcome(str, Enum):
    """How a fee lookup was resolved"""

    MATCHED = "matched"
    SATURATED = "saturated"  # amount above every bracket, highest tier used
    GAP_FILLED = "gap_filled"  # amount between two brackets, lower tier used
    AMBIGUOUS = "ambiguous"  # overlapping brackets matched
    CONFIGURATION_GAP = "configuration_gap"  # nothing matched, fee defaults to 0
    OVERRIDDEN = "overridden"  # fee entered manually


@dataclass(frozen=True)
class FeeBracket:
    """Single fee tier, inclusive on both ends"""

    channel_type: ChannelType
    min_amount: Decimal
    max_amount: Decimal
    fee: Decimal


@dataclass(frozen=True)
class FeeResolution:
    fee: Decimal
    outcome: FeeOutcome
    bracket: Optional[FeeBracket] = None


@dataclass(frozen=True)
class Payout:
    """Fee and payout figures for a KD principal converted to KES"""

    amount_kes: Decimal
    fee_kes: Decimal
    payout_kes: Decimal
    fee_outcome: FeeOutcome


@dataclass
class Transaction:
    """Client transaction as stored by the back office"""

    id: str
    client_id: str
    principal_kd: Decimal
    rate_kes_per_kd: Decimal
    channel_type: ChannelType
    fee_kes: Decimal
    amount_kes: Decimal
    payout_kes: Decimal
    created_at: datetime
    paid_at: Optional[datetime] = None
    status: TransactionStatus = TransactionStatus.PENDING


@dataclass
class FloatDeposit:
    """Batch of KD capital deposited and converted"""

    id: Optional[str]
    date: date
    total_kd: Decimal
    transaction_fee: Decimal
    share_percentage: Decimal
    share_total: Decimal
    total_kes: Decimal
    rate: Decimal
    profit: Decimal


@dataclass
class ReportSchedule:
    """Recurring report definition"""

    id: Optional[str]
    frequency: Frequency
    time_of_day: str  # "HH:MM" or "HH:MM:SS"
    is_active: bool = True
    day_of_week: Optional[int] = None  # 0 = Sunday
    day_of_month: Optional[int] = None
    last_sent_at: Optional[datetime] = None
    report_type: str = "transactions"
    report_name: str = ""
    email_recipients: List[str] = field(default_factory=list)


@dataclass
class AnalyticsBucket:
    """Rollup of transactions for one calendar month"""

    period_label: str
    period_start: date
    count: int
    total_principal_kd: Decimal
    total_payout_kes: Decimal
    avg_principal_kd: Decimal


@dataclass(frozen=True)
class AmountRange:
    """Named principal range; max_amount None means open-ended"""

    name: str
    min_amount: Decimal
    max_amount: Optional[Decimal] = None

    def contains(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


@dataclass
class DistributionSlice:
    name: str
    count: int
    total_principal_kd: Decimal


@dataclass
class GrowthPoint:
    period_label: str
    period_start: date
    clients: int


@dataclass
class VolumeTrend:
    """KD volume of the current trailing window against the one before it"""

    current_kd: Decimal
    previous_kd: Decimal
    percent_change: Decimal

    @property
    def is_positive(self) -> bool:
        return self.percent_change > 0


@dataclass
class DashboardSummary:
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
    volume_trend: VolumeTrend
