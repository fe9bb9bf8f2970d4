"""Float deposit derivation"""

from datetime import date
from decimal import Decimal
from typing import Optional

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.models import FloatDeposit
from linkd_gateway.utils.money import Number, round_money, to_decimal


def derive_float_deposit(
    total_kd: Number,
    rate: Number,
    share_percentage: Number,
    deposit_date: date,
    transaction_fee: Number = 0,
    profit: Number = 0,
    deposit_id: Optional[str] = None,
) -> FloatDeposit:
    """
    Build a float deposit with its derived KES figures.

    - total_kes = total_kd * rate, rounded to 2 places
    - share_total = total_kes * share_percentage / 100, rounded to 2 places
    - profit is recorded as entered; it is not derived from the share
    """
    kd = to_decimal(total_kd, "total_kd")
    fx = to_decimal(rate, "rate")
    share = to_decimal(share_percentage, "share_percentage")
    fee = to_decimal(transaction_fee, "transaction_fee")

    if kd <= 0:
        raise InvalidArgumentError(f"total_kd must be positive, got {kd}")
    if fx <= 0:
        raise InvalidArgumentError(f"rate must be positive, got {fx}")
    if not Decimal("0") <= share <= Decimal("100"):
        raise InvalidArgumentError(f"share_percentage must be between 0 and 100, got {share}")
    if fee < 0:
        raise InvalidArgumentError(f"transaction_fee must not be negative, got {fee}")

    total_kes = round_money(kd * fx)

    return FloatDeposit(
        id=deposit_id,
        date=deposit_date,
        total_kd=kd,
        transaction_fee=fee,
        share_percentage=share,
        share_total=round_money(total_kes * share / 100),
        total_kes=total_kes,
        rate=fx,
        profit=to_decimal(profit, "profit"),
    )
