"""Fee tables and payout quotes - /v1/fees"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from linkd_gateway.api.dependencies import get_fee_table, get_request_id
from linkd_gateway.api.v1.schemas import (
    FeeBracketSchema,
    FeeTableResponse,
    FeeTableUpdate,
    QuoteRequest,
    QuoteResponse,
    SeedResponse,
)
from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.fees import FeeTable, parse_channel_type, validate_brackets
from linkd_gateway.domain.models import ChannelType, FeeBracket
from linkd_gateway.domain.payouts import compute_payout
from linkd_gateway.infrastructure.database.repositories import FeeBracketRepository
from linkd_gateway.infrastructure.database.session import get_db
from linkd_gateway.infrastructure.observability.logging import log_fee_anomaly
from linkd_gateway.infrastructure.observability.metrics import record_fee_lookup

router = APIRouter()


def _table_response(table: FeeTable, channel_type: ChannelType) -> FeeTableResponse:
    return FeeTableResponse(
        channel_type=channel_type.value,
        brackets=[
            FeeBracketSchema(min_amount=b.min_amount, max_amount=b.max_amount, fee=b.fee)
            for b in table.brackets_for(channel_type)
        ],
    )


@router.post("/fees/quote", response_model=QuoteResponse)
def quote_payout(
    request_body: QuoteRequest,
    request: Request,
    table: FeeTable = Depends(get_fee_table),
):
    """
    Compute amount, fee and payout for a prospective transaction.

    Called on every form edit, so it never writes anything.
    """
    request_id = get_request_id(request)
    try:
        payout = compute_payout(
            request_body.principal_kd,
            request_body.rate_kes_per_kd,
            request_body.channel_type,
            table,
            fee_override=request_body.fee_override,
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    record_fee_lookup(payout.fee_outcome)
    log_fee_anomaly(request_id, request_body.channel_type, payout.amount_kes, payout.fee_outcome)

    return QuoteResponse(
        amount_kes=payout.amount_kes,
        fee_kes=payout.fee_kes,
        payout_kes=payout.payout_kes,
        fee_outcome=payout.fee_outcome.value,
    )


@router.post("/fees/seed", response_model=SeedResponse)
def seed_fee_table(db: Session = Depends(get_db)):
    """Load the built-in M-PESA tariff when no brackets are stored yet"""
    added = FeeBracketRepository(db).seed_defaults()
    db.commit()
    return SeedResponse(brackets_added=added)


@router.get("/fees/{channel_type}", response_model=FeeTableResponse)
def get_fee_brackets(channel_type: str, table: FeeTable = Depends(get_fee_table)):
    """List a channel's brackets in ascending order"""
    try:
        channel = parse_channel_type(channel_type)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _table_response(table, channel)


@router.put("/fees/{channel_type}", response_model=FeeTableResponse)
def replace_fee_brackets(
    channel_type: str,
    request_body: FeeTableUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Replace a channel's brackets.

    Rejects overlapping, inverted or non-contiguous tiers with 422 so the
    resolver never has to fall back on bad data.
    """
    request_id = get_request_id(request)
    try:
        channel = parse_channel_type(channel_type)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    brackets = [
        FeeBracket(channel_type=channel, min_amount=b.min_amount, max_amount=b.max_amount, fee=b.fee)
        for b in request_body.brackets
    ]
    problems = validate_brackets(brackets)
    if problems:
        raise HTTPException(status_code=422, detail=problems)

    repo = FeeBracketRepository(db)
    try:
        repo.replace_brackets(channel, brackets)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to store fee brackets: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Fee brackets replaced",
        extra={"request_id": request_id, "channel_type": channel.value, "bracket_count": len(brackets)},
    )
    return _table_response(repo.load_fee_table(), channel)
