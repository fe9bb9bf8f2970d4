"""Decimal helpers for currency amounts"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from linkd_gateway.domain.exceptions import InvalidArgumentError

Number = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")
FILS = Decimal("0.001")  # KD has three minor-unit digits


def to_decimal(value: Number, field: str = "amount") -> Decimal:
    """Coerce a numeric input to Decimal without binary float artifacts"""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidArgumentError(f"{field} must be numeric")
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidArgumentError(f"{field} is not a number: {value!r}") from e

    if not result.is_finite():
        raise InvalidArgumentError(f"{field} must be finite")
    return result


def round_money(value: Decimal, quantum: Decimal = CENTS) -> Decimal:
    """Round half-up to the given minor unit"""
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
