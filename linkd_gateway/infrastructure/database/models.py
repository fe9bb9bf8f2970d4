"""SQLAlchemy ORM models for the back-office tables"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionCharge(Base):
    """Fee bracket for one channel, inclusive on both ends"""

    __tablename__ = "transaction_charges"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_type = Column(Text, nullable=False, index=True)
    min_amount = Column(Numeric(14, 2), nullable=False)
    max_amount = Column(Numeric(14, 2), nullable=False)
    charge_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())


class ClientRecord(Base):
    """Remittance customer"""

    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())

    transactions = relationship("TransactionRecord", back_populates="client", cascade="all, delete-orphan")


class TransactionRecord(Base):
    """KD principal converted and paid out in KES"""

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_kd = Column(Numeric(12, 3), nullable=False)
    rate_kes_per_kd = Column(Numeric(10, 4), nullable=False)
    transaction_type = Column(Text, nullable=False)
    amount_kes = Column(Numeric(14, 2), nullable=False)
    transaction_fee_kes = Column(Numeric(10, 2), nullable=False, default=0)
    payout_kes = Column(Numeric(14, 2), nullable=False)
    status = Column(Text, nullable=False, default="PENDING")
    notes = Column(Text, nullable=True)
    reference = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now(), index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    client = relationship("ClientRecord", back_populates="transactions")


class FloatDepositRecord(Base):
    """Batch of KD capital converted to KES"""

    __tablename__ = "float_deposits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False)
    total_kd = Column(Numeric(12, 3), nullable=False)
    transaction_fee = Column(Numeric(10, 2), nullable=False, default=0)
    share_percentage = Column(Numeric(5, 2), nullable=False)
    share_total = Column(Numeric(14, 2), nullable=False)
    total_kes = Column(Numeric(14, 2), nullable=False)
    rate = Column(Numeric(10, 4), nullable=False)
    profit = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())


class ReportScheduleRecord(Base):
    """Recurring emailed report"""

    __tablename__ = "report_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    report_type = Column(Text, nullable=False)
    report_name = Column(Text, nullable=False)
    frequency = Column(Text, nullable=False)
    day_of_week = Column(Integer, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    time_of_day = Column(Text, nullable=False)
    email_recipients = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now())
