"""Tiered transaction fee tables and fee resolution"""

from decimal import Decimal
from typing import Dict, Iterable, List, Tuple, Union

from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.models import ChannelType, FeeBracket, FeeOutcome, FeeResolution
from linkd_gateway.utils.money import Number, to_decimal

# (min KES, max KES, fee KES), inclusive on both ends
SEND_MONEY_FEES: List[Tuple[int, int, int]] = [
    (1, 49, 0),
    (50, 100, 0),
    (101, 500, 7),
    (501, 1000, 13),
    (1001, 1500, 23),
    (1501, 2500, 33),
    (2501, 3500, 53),
    (3501, 5000, 57),
    (5001, 7500, 78),
    (7501, 10000, 90),
    (10001, 15000, 100),
    (15001, 20000, 105),
    (20001, 35000, 108),
    (35001, 50000, 108),
    (50001, 250000, 108),
]

PAYBILL_FEES: List[Tuple[int, int, int]] = [
    (1, 49, 0),
    (50, 100, 0),
    (101, 500, 5),
    (501, 1000, 10),
    (1001, 1500, 15),
    (1501, 2500, 20),
    (2501, 3500, 25),
    (3501, 5000, 34),
    (5001, 7500, 42),
    (7501, 10000, 48),
    (10001, 15000, 57),
    (15001, 20000, 62),
    (20001, 25000, 67),
    (25001, 30000, 72),
    (30001, 35000, 83),
    (35001, 40000, 99),
    (40001, 45000, 103),
    (45001, 50000, 108),
    (50001, 70000, 108),
    (70001, 250000, 108),
]

_CHANNEL_ALIASES: Dict[str, ChannelType] = {
    "send_money": ChannelType.SEND_MONEY,
    "mpesa_send": ChannelType.SEND_MONEY,
    "m-pesa send money": ChannelType.SEND_MONEY,
    "paybill": ChannelType.PAYBILL,
    "m-pesa paybill": ChannelType.PAYBILL,
}


def parse_channel_type(value: Union[str, ChannelType]) -> ChannelType:
    """
    Map a channel string from the UI, CSV imports or stored rows to ChannelType.

    Raises:
        InvalidArgumentError: For anything outside the known aliases
    """
    if isinstance(value, ChannelType):
        return value
    if not isinstance(value, str):
        raise InvalidArgumentError(f"Unknown channel type: {value!r}")

    channel = _CHANNEL_ALIASES.get(value.strip().lower())
    if channel is None:
        raise InvalidArgumentError(f"Unknown channel type: {value!r}")
    return channel


def _build_brackets(channel_type: ChannelType, rows: Iterable[Tuple[int, int, int]]) -> List[FeeBracket]:
    return [
        FeeBracket(
            channel_type=channel_type,
            min_amount=Decimal(low),
            max_amount=Decimal(high),
            fee=Decimal(fee),
        )
        for low, high, fee in rows
    ]


class FeeTable:
    """Queryable set of fee brackets, grouped per channel"""

    def __init__(self, brackets: Iterable[FeeBracket] = ()):
        grouped: Dict[ChannelType, List[FeeBracket]] = {}
        for bracket in brackets:
            grouped.setdefault(bracket.channel_type, []).append(bracket)

        self._brackets: Dict[ChannelType, Tuple[FeeBracket, ...]] = {
            channel: tuple(sorted(items, key=lambda b: (b.min_amount, b.max_amount)))
            for channel, items in grouped.items()
        }

    @classmethod
    def default(cls) -> "FeeTable":
        """Built-in M-PESA tariff used to seed an empty store"""
        return cls(
            _build_brackets(ChannelType.SEND_MONEY, SEND_MONEY_FEES)
            + _build_brackets(ChannelType.PAYBILL, PAYBILL_FEES)
        )

    def brackets_for(self, channel_type: ChannelType) -> Tuple[FeeBracket, ...]:
        """Brackets for a channel sorted by min_amount; empty if none configured"""
        return self._brackets.get(channel_type, ())

    def all_brackets(self) -> List[FeeBracket]:
        return [b for channel in ChannelType for b in self.brackets_for(channel)]


def resolve_fee_detailed(amount: Number, channel_type: Union[str, ChannelType], table: FeeTable) -> FeeResolution:
    """
    Find the fee for a KES payout amount.

    Policy:
    - Closed interval match: min_amount <= amount <= max_amount
    - Overlapping matches: bracket with the smallest min_amount wins (AMBIGUOUS)
    - Above every bracket: fee of the bracket with the largest max_amount (SATURATED)
    - Between two brackets: fee of the nearest lower bracket (GAP_FILLED)
    - Empty table or below every bracket: fee 0 (CONFIGURATION_GAP)

    Raises:
        InvalidArgumentError: Negative amount or unknown channel
    """
    value = to_decimal(amount)
    if value < 0:
        raise InvalidArgumentError(f"Amount must not be negative, got {value}")

    brackets = table.brackets_for(parse_channel_type(channel_type))
    if not brackets:
        return FeeResolution(fee=Decimal("0"), outcome=FeeOutcome.CONFIGURATION_GAP)

    matches = [b for b in brackets if b.min_amount <= value <= b.max_amount]
    if matches:
        outcome = FeeOutcome.AMBIGUOUS if len(matches) > 1 else FeeOutcome.MATCHED
        return FeeResolution(fee=matches[0].fee, outcome=outcome, bracket=matches[0])

    # max() keeps the first of equal maxima, i.e. the lowest min_amount
    top = max(brackets, key=lambda b: b.max_amount)
    if value > top.max_amount:
        return FeeResolution(fee=top.fee, outcome=FeeOutcome.SATURATED, bracket=top)

    below = [b for b in brackets if b.max_amount < value]
    if below:
        nearest = max(below, key=lambda b: b.max_amount)
        return FeeResolution(fee=nearest.fee, outcome=FeeOutcome.GAP_FILLED, bracket=nearest)

    return FeeResolution(fee=Decimal("0"), outcome=FeeOutcome.CONFIGURATION_GAP)


def resolve_fee(amount: Number, channel_type: Union[str, ChannelType], table: FeeTable) -> Decimal:
    """Fee in KES for a payout amount; see resolve_fee_detailed for the policy"""
    return resolve_fee_detailed(amount, channel_type, table).fee


def validate_brackets(brackets: Iterable[FeeBracket]) -> List[str]:
    """
    Check a bracket set before it is stored.

    Returns a list of problems (empty when valid): inverted bounds, negative
    fees, overlaps, and holes between whole-KES tiers.
    """
    problems: List[str] = []
    table = FeeTable(brackets)

    for channel in ChannelType:
        ordered = table.brackets_for(channel)
        for bracket in ordered:
            if bracket.min_amount > bracket.max_amount:
                problems.append(
                    f"{channel.value}: min {bracket.min_amount} is above max {bracket.max_amount}"
                )
            if bracket.fee < 0:
                problems.append(f"{channel.value}: negative fee {bracket.fee} for {bracket.min_amount}-{bracket.max_amount}")

        for prev, nxt in zip(ordered, ordered[1:]):
            if nxt.min_amount <= prev.max_amount:
                problems.append(
                    f"{channel.value}: {prev.min_amount}-{prev.max_amount} overlaps {nxt.min_amount}-{nxt.max_amount}"
                )
            elif nxt.min_amount - prev.max_amount > 1:
                problems.append(f"{channel.value}: no bracket covers {prev.max_amount}-{nxt.min_amount}")

    return problems
