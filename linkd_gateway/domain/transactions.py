"""Transaction status transitions"""

from datetime import datetime
from typing import Optional, Tuple, Union

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.models import TransactionStatus


def parse_transaction_status(value: Union[str, TransactionStatus]) -> TransactionStatus:
    """Accept enum names in any case ("paid", "PAID")"""
    if isinstance(value, TransactionStatus):
        return value
    try:
        return TransactionStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidArgumentError(f"Unknown transaction status: {value!r}")


def next_status(
    current_paid_at: Optional[datetime],
    status: Union[str, TransactionStatus],
    now: datetime,
) -> Tuple[TransactionStatus, Optional[datetime]]:
    """
    Resolve the new status and paid_at for a status change.

    - Moving to PAID stamps paid_at with now, unless it is already stamped
    - Moving to any other status clears paid_at
    """
    new_status = parse_transaction_status(status)
    if new_status == TransactionStatus.PAID:
        return new_status, current_paid_at or now
    return new_status, None
