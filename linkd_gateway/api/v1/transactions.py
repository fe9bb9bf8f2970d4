"""Transactions - create, read, edit and change status under /v1/transactions"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from linkd_gateway.api.dependencies import get_fee_table, get_now, get_request_id
from linkd_gateway.api.v1.schemas import (
    TransactionCreate,
    TransactionResponse,
    TransactionStatusUpdate,
    TransactionUpdate,
)
from linkd_gateway.domain.exceptions import InvalidArgumentError, NotFoundError
from linkd_gateway.domain.fees import FeeTable, parse_channel_type
from linkd_gateway.domain.models import Transaction
from linkd_gateway.domain.payouts import compute_payout
from linkd_gateway.domain.transactions import next_status
from linkd_gateway.infrastructure.database.repositories import ClientRepository, TransactionRepository
from linkd_gateway.infrastructure.database.session import get_db
from linkd_gateway.infrastructure.observability.logging import log_fee_anomaly, log_transaction_recorded
from linkd_gateway.infrastructure.observability.metrics import record_fee_lookup, record_transaction

router = APIRouter()


def _to_response(txn: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        client_id=txn.client_id,
        principal_kd=txn.principal_kd,
        rate_kes_per_kd=txn.rate_kes_per_kd,
        channel_type=txn.channel_type.value,
        amount_kes=txn.amount_kes,
        fee_kes=txn.fee_kes,
        payout_kes=txn.payout_kes,
        status=txn.status.value,
        created_at=txn.created_at,
        paid_at=txn.paid_at,
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    table: FeeTable = Depends(get_fee_table),
):
    """
    Record a client transaction.

    Flow:
    1. Check the client exists
    2. Convert principal, resolve the channel fee (or take the override)
    3. Persist with amount_kes, fee_kes and payout_kes filled in
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        ClientRepository(db).get_client(request_body.client_id)

        channel = parse_channel_type(request_body.channel_type)
        payout = compute_payout(
            request_body.principal_kd,
            request_body.rate_kes_per_kd,
            channel,
            table,
            fee_override=request_body.fee_override,
        )

        txn = TransactionRepository(db).create_transaction(
            client_id=request_body.client_id,
            principal_kd=request_body.principal_kd,
            rate_kes_per_kd=request_body.rate_kes_per_kd,
            channel_type=channel,
            payout=payout,
            created_at=request_body.created_at,
            notes=request_body.notes,
            reference=request_body.reference,
        )
        db.commit()

    except NotFoundError as e:
        db.rollback()
        logging.warning(f"Transaction rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidArgumentError as e:
        db.rollback()
        logging.warning(f"Invalid transaction: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Record metrics and logs
    duration_ms = (time.time() - start_time) * 1000
    record_fee_lookup(payout.fee_outcome)
    record_transaction(channel.value, payout.payout_kes)
    log_fee_anomaly(request_id, channel.value, payout.amount_kes, payout.fee_outcome)
    log_transaction_recorded(request_id, txn.id, txn.client_id, channel.value, txn.payout_kes, duration_ms)

    return _to_response(txn)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    """Retrieve one transaction with its stored KES figures"""
    try:
        txn = TransactionRepository(db).get_transaction(transaction_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")

    return _to_response(txn)


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    request_body: TransactionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    table: FeeTable = Depends(get_fee_table),
):
    """
    Edit a transaction and recompute its KES figures.

    Omitted fields keep their stored value. The fee is re-resolved from the
    current table unless fee_override is given.
    """
    request_id = get_request_id(request)
    repo = TransactionRepository(db)

    try:
        current = repo.get_transaction(transaction_id)
        client_id = request_body.client_id or current.client_id
        if client_id != current.client_id:
            ClientRepository(db).get_client(client_id)

        channel = parse_channel_type(request_body.channel_type or current.channel_type)
        principal_kd = request_body.principal_kd if request_body.principal_kd is not None else current.principal_kd
        rate = request_body.rate_kes_per_kd if request_body.rate_kes_per_kd is not None else current.rate_kes_per_kd
        payout = compute_payout(principal_kd, rate, channel, table, fee_override=request_body.fee_override)

        txn = repo.update_transaction(
            transaction_id,
            client_id=client_id,
            principal_kd=principal_kd,
            rate_kes_per_kd=rate,
            channel_type=channel,
            payout=payout,
            created_at=request_body.created_at,
            notes=request_body.notes,
            reference=request_body.reference,
        )
        db.commit()

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidArgumentError as e:
        db.rollback()
        logging.warning(f"Invalid transaction edit: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_fee_lookup(payout.fee_outcome)
    log_fee_anomaly(request_id, channel.value, payout.amount_kes, payout.fee_outcome)
    logging.info(
        "Transaction updated",
        extra={
            "request_id": request_id,
            "transaction_id": txn.id,
            "step": "transaction_updated",
            "payout_kes": str(txn.payout_kes),
        },
    )
    return _to_response(txn)


@router.put("/transactions/{transaction_id}/status", response_model=TransactionResponse)
def change_transaction_status(
    transaction_id: str,
    request_body: TransactionStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Move a transaction to a new status; PAID stamps paid_at"""
    request_id = get_request_id(request)
    repo = TransactionRepository(db)

    try:
        current = repo.get_transaction(transaction_id)
        status, paid_at = next_status(current.paid_at, request_body.status, now)
        txn = repo.set_status(transaction_id, status, paid_at)
        db.commit()

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidArgumentError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    logging.info(
        "Transaction status changed",
        extra={
            "request_id": request_id,
            "transaction_id": txn.id,
            "step": "status_changed",
            "from_status": current.status.value,
            "to_status": txn.status.value,
        },
    )
    return _to_response(txn)
