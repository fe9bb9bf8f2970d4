"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from linkd_gateway.config import settings
from linkd_gateway.domain.fees import FeeTable
from linkd_gateway.infrastructure.clients.dispatch import ReportDispatchClient
from linkd_gateway.infrastructure.database.repositories import FeeBracketRepository
from linkd_gateway.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_business_tz() -> ZoneInfo:
    """Timezone used for month buckets, "today" and schedule minutes"""
    return settings.tz


def get_now(tz: ZoneInfo = Depends(get_business_tz)) -> datetime:
    """Current time in the business timezone"""
    return datetime.now(tz)


def get_fee_table(db: Session = Depends(get_db)) -> FeeTable:
    """Fee brackets as currently stored"""
    return FeeBracketRepository(db).load_fee_table()


def get_dispatch_client() -> ReportDispatchClient:
    """Provide report dispatcher client instance"""
    return ReportDispatchClient()
