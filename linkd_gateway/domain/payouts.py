"""Payout calculation for KD principal converted to KES"""

from typing import Optional, Union

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.fees import FeeTable, parse_channel_type, resolve_fee_detailed
from linkd_gateway.domain.models import ChannelType, FeeOutcome, Payout
from linkd_gateway.utils.money import Number, round_money, to_decimal


def compute_payout(
    principal_kd: Number,
    rate_kes_per_kd: Number,
    channel_type: Union[str, ChannelType],
    table: FeeTable,
    fee_override: Optional[Number] = None,
) -> Payout:
    """
    Convert a KD principal and add the channel fee.

    Requirements:
    - amount_kes = principal_kd * rate, rounded half-up to 2 places
    - fee_kes resolved from amount_kes unless manually overridden
    - payout_kes = amount_kes + fee_kes (the fee is added, not deducted)

    Example:
        10 KD @ 150 on PAYBILL -> 1500.00 KES, fee 15 (1001-1500 tier), payout 1515.00

    Raises:
        InvalidArgumentError: Non-positive principal or rate, negative override
    """
    principal = to_decimal(principal_kd, "principal_kd")
    rate = to_decimal(rate_kes_per_kd, "rate_kes_per_kd")
    channel = parse_channel_type(channel_type)

    if principal <= 0:
        raise InvalidArgumentError(f"principal_kd must be positive, got {principal}")
    if rate <= 0:
        raise InvalidArgumentError(f"rate_kes_per_kd must be positive, got {rate}")

    amount_kes = round_money(principal * rate)

    if fee_override is not None:
        fee = to_decimal(fee_override, "fee_override")
        if fee < 0:
            raise InvalidArgumentError(f"fee_override must not be negative, got {fee}")
        outcome = FeeOutcome.OVERRIDDEN
    else:
        resolution = resolve_fee_detailed(amount_kes, channel, table)
        fee = resolution.fee
        outcome = resolution.outcome

    fee_kes = round_money(fee)

    return Payout(
        amount_kes=amount_kes,
        fee_kes=fee_kes,
        payout_kes=amount_kes + fee_kes,
        fee_outcome=outcome,
    )
