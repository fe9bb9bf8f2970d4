"""Scheduled reports - POST /v1/reports/schedules, POST /v1/reports/dispatch"""

import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from linkd_gateway.api.dependencies import get_dispatch_client, get_now, get_request_id
from linkd_gateway.api.v1.schemas import DispatchResponse, DispatchResult, ScheduleCreate, ScheduleResponse
from linkd_gateway.domain.exceptions import DispatchError, InvalidArgumentError
from linkd_gateway.domain.models import ReportSchedule
from linkd_gateway.domain.schedules import due_schedules, report_window, validate_schedule
from linkd_gateway.infrastructure.clients.dispatch import ReportDispatchClient
from linkd_gateway.infrastructure.database.repositories import ReportScheduleRepository
from linkd_gateway.infrastructure.database.session import get_db
from linkd_gateway.infrastructure.observability.logging import log_dispatch_result
from linkd_gateway.infrastructure.observability.metrics import record_dispatch

router = APIRouter()


@router.post("/reports/schedules", response_model=ScheduleResponse, status_code=201)
def create_schedule(
    request_body: ScheduleCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Store a recurring report after checking its frequency-specific fields"""
    request_id = get_request_id(request)
    schedule = ReportSchedule(id=None, **request_body.model_dump())

    try:
        validate_schedule(schedule)
        stored = ReportScheduleRepository(db).create_schedule(schedule)
        db.commit()

    except InvalidArgumentError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ScheduleResponse(
        id=stored.id,
        report_type=stored.report_type,
        report_name=stored.report_name,
        frequency=stored.frequency,
        time_of_day=stored.time_of_day,
        day_of_week=stored.day_of_week,
        day_of_month=stored.day_of_month,
        email_recipients=stored.email_recipients,
        is_active=stored.is_active,
        last_sent_at=stored.last_sent_at,
    )


@router.post("/reports/dispatch", response_model=DispatchResponse)
async def dispatch_due_reports(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    dispatch_client: ReportDispatchClient = Depends(get_dispatch_client),
):
    """
    Send every report due at the current minute.

    Meant to be hit by an external timer once a minute. Matching is exact to the
    minute, so a skipped tick skips that minute's reports.

    Flow:
    1. Load active schedules and keep those due now
    2. Ask the dispatcher to send each one (concurrently)
    3. Stamp last_sent_at on the ones that went out
    """
    repo = ReportScheduleRepository(db)
    due = due_schedules(repo.list_active(), now)

    outcomes = await asyncio.gather(
        *(dispatch_client.send_report(s, report_window(s.frequency, now)) for s in due),
        return_exceptions=True,
    )

    results = []
    for schedule, outcome in zip(due, outcomes):
        if isinstance(outcome, DispatchError):
            error = str(outcome)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            error = None
            repo.mark_sent(schedule.id, now)

        success = error is None
        record_dispatch(success)
        log_dispatch_result(schedule.id, success, error)
        results.append(DispatchResult(schedule_id=schedule.id, success=success, error=error))

    db.commit()
    return DispatchResponse(processed_at=now, due_count=len(due), results=results)
