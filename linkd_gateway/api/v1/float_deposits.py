"""POST /v1/float-deposits - Record a float deposit with derived KES figures"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from linkd_gateway.api.dependencies import get_request_id
from linkd_gateway.api.v1.schemas import FloatDepositCreate, FloatDepositResponse
from linkd_gateway.domain.exceptions import InvalidArgumentError
from linkd_gateway.domain.floats import derive_float_deposit
from linkd_gateway.infrastructure.database.repositories import FloatDepositRepository
from linkd_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.post("/float-deposits", response_model=FloatDepositResponse, status_code=201)
def create_float_deposit(
    request_body: FloatDepositCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Derive total_kes and share_total, then persist; profit is stored as entered"""
    request_id = get_request_id(request)

    try:
        deposit = derive_float_deposit(
            total_kd=request_body.total_kd,
            rate=request_body.rate,
            share_percentage=request_body.share_percentage,
            deposit_date=request_body.deposit_date,
            transaction_fee=request_body.transaction_fee,
            profit=request_body.profit,
        )
        stored = FloatDepositRepository(db).create_deposit(deposit)
        db.commit()

    except InvalidArgumentError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return FloatDepositResponse(
        id=stored.id,
        deposit_date=stored.date,
        total_kd=stored.total_kd,
        rate=stored.rate,
        share_percentage=stored.share_percentage,
        transaction_fee=stored.transaction_fee,
        profit=stored.profit,
        total_kes=stored.total_kes,
        share_total=stored.share_total,
    )
