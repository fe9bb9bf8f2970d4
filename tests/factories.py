"""Shared test data builders"""

from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo
from linkd_gateway.domain.models import ChannelType, Transaction

KUWAIT = ZoneInfo("Asia/Kuwait")
# Monday 17 June 2024, 08:00 in Kuwait
FIXED_NOW = datetime(2024, 6, 17, 8, 0, tzinfo=KUWAIT)


def make_transaction(
    principal_kd: str,
    created_at: datetime,
    payout_kes: str = "0",
    rate: str = "250",
    channel_type: ChannelType = ChannelType.SEND_MONEY,
    txn_id: str = "tx",
) -> Transaction:
    """Transaction with only the fields analytics look at filled in meaningfully"""
    return Transaction(
        id=txn_id,
        client_id="client_1",
        principal_kd=Decimal(principal_kd),
        rate_kes_per_kd=Decimal(rate),
        channel_type=channel_type,
        fee_kes=Decimal("0"),
        amount_kes=Decimal(payout_kes),
        payout_kes=Decimal(payout_kes),
        created_at=created_at,
    )
