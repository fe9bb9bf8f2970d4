"""Data access layer for back-office entities"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from linkd_gateway.domain.exceptions import InvalidArgumentError, NotFoundError
from linkd_gateway.domain.fees import FeeTable, parse_channel_type
from linkd_gateway.domain.models import (
    ChannelType,
    FeeBracket,
    FloatDeposit,
    Frequency,
    Payout,
    ReportSchedule,
    Transaction,
    TransactionStatus,
)
from linkd_gateway.infrastructure.database.models import (
    ClientRecord,
    FloatDepositRecord,
    ReportScheduleRecord,
    TransactionCharge,
    TransactionRecord,
)


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are UTC; some drivers hand them back naive"""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


def _for_storage(moment: Optional[datetime]) -> Optional[datetime]:
    """Normalise to UTC; SQLite drops offsets rather than converting"""
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


def _parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise NotFoundError(f"{label} {value} not found") from e


class FeeBracketRepository:
    """Repository for fee brackets (transaction_charges)"""

    def __init__(self, db: Session):
        self.db = db

    def load_fee_table(self) -> FeeTable:
        """
        Build the fee table from stored brackets.

        Rows with an unrecognised transaction_type are skipped and logged, so
        one bad row cannot take down every fee lookup.
        """
        brackets = []
        for row in self.db.query(TransactionCharge).all():
            try:
                channel = parse_channel_type(row.transaction_type)
            except InvalidArgumentError as e:
                logging.warning(
                    f"Skipping fee bracket: {e}",
                    extra={"step": "fee_table_load", "bracket_id": str(row.id)},
                )
                continue
            brackets.append(
                FeeBracket(
                    channel_type=channel,
                    min_amount=row.min_amount,
                    max_amount=row.max_amount,
                    fee=row.charge_amount,
                )
            )
        return FeeTable(brackets)

    def replace_brackets(self, channel_type: ChannelType, brackets: Iterable[FeeBracket]) -> None:
        """Swap a channel's whole bracket set"""
        self.db.query(TransactionCharge).filter(
            TransactionCharge.transaction_type == channel_type.value
        ).delete(synchronize_session=False)

        for bracket in brackets:
            self.db.add(
                TransactionCharge(
                    transaction_type=channel_type.value,
                    min_amount=bracket.min_amount,
                    max_amount=bracket.max_amount,
                    charge_amount=bracket.fee,
                )
            )
        self.db.flush()

    def seed_defaults(self) -> int:
        """Copy the built-in tariff into an empty table; returns rows added"""
        if self.db.query(TransactionCharge).first() is not None:
            return 0

        defaults = FeeTable.default()
        for channel in ChannelType:
            self.replace_brackets(channel, defaults.brackets_for(channel))
        return len(defaults.all_brackets())


class ClientRepository:
    """Repository for clients"""

    def __init__(self, db: Session):
        self.db = db

    def create_client(self, name: str, email: Optional[str] = None, phone: Optional[str] = None) -> ClientRecord:
        db_client = ClientRecord(name=name, email=email, phone=phone)
        self.db.add(db_client)
        self.db.flush()
        return db_client

    def get_client(self, client_id: str) -> ClientRecord:
        client = self.db.get(ClientRecord, _parse_uuid(client_id, "Client"))
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    def list_created_at(self) -> List[datetime]:
        """Join timestamps for client growth charts"""
        return [_as_utc(created_at) for (created_at,) in self.db.query(ClientRecord.created_at).all()]


class TransactionRepository:
    """Repository for client transactions"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def to_domain(row: TransactionRecord) -> Transaction:
        return Transaction(
            id=str(row.id),
            client_id=str(row.client_id),
            principal_kd=row.amount_kd,
            rate_kes_per_kd=row.rate_kes_per_kd,
            channel_type=parse_channel_type(row.transaction_type),
            fee_kes=row.transaction_fee_kes,
            amount_kes=row.amount_kes,
            payout_kes=row.payout_kes,
            created_at=_as_utc(row.created_at),
            paid_at=_as_utc(row.paid_at),
            status=TransactionStatus(row.status),
        )

    def create_transaction(
        self,
        client_id: str,
        principal_kd: Decimal,
        rate_kes_per_kd: Decimal,
        channel_type: ChannelType,
        payout: Payout,
        created_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Transaction:
        """Persist a transaction with its computed KES figures"""
        db_transaction = TransactionRecord(
            client_id=_parse_uuid(client_id, "Client"),
            amount_kd=principal_kd,
            rate_kes_per_kd=rate_kes_per_kd,
            transaction_type=channel_type.value,
            amount_kes=payout.amount_kes,
            transaction_fee_kes=payout.fee_kes,
            payout_kes=payout.payout_kes,
            status=TransactionStatus.PENDING.value,
            notes=notes,
            reference=reference,
            created_at=_for_storage(created_at) or datetime.now(timezone.utc),
        )
        self.db.add(db_transaction)
        self.db.flush()  # Get ID without committing
        self.db.refresh(db_transaction)  # Echo values as the columns stored them
        return self.to_domain(db_transaction)

    def _get_row(self, transaction_id: str) -> TransactionRecord:
        row = self.db.get(TransactionRecord, _parse_uuid(transaction_id, "Transaction"))
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return row

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self.to_domain(self._get_row(transaction_id))

    def update_transaction(
        self,
        transaction_id: str,
        client_id: str,
        principal_kd: Decimal,
        rate_kes_per_kd: Decimal,
        channel_type: ChannelType,
        payout: Payout,
        created_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Transaction:
        """Overwrite an edited transaction with its recomputed KES figures"""
        row = self._get_row(transaction_id)
        row.client_id = _parse_uuid(client_id, "Client")
        row.amount_kd = principal_kd
        row.rate_kes_per_kd = rate_kes_per_kd
        row.transaction_type = channel_type.value
        row.amount_kes = payout.amount_kes
        row.transaction_fee_kes = payout.fee_kes
        row.payout_kes = payout.payout_kes
        if created_at is not None:
            row.created_at = _for_storage(created_at)
        if notes is not None:
            row.notes = notes
        if reference is not None:
            row.reference = reference
        self.db.flush()
        self.db.refresh(row)
        return self.to_domain(row)

    def set_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        paid_at: Optional[datetime],
    ) -> Transaction:
        row = self._get_row(transaction_id)
        row.status = status.value
        row.paid_at = _for_storage(paid_at)
        self.db.flush()
        self.db.refresh(row)
        return self.to_domain(row)

    def list_transactions(self) -> List[Transaction]:
        rows = self.db.query(TransactionRecord).order_by(TransactionRecord.created_at.desc()).all()
        return [self.to_domain(row) for row in rows]


class FloatDepositRepository:
    """Repository for float deposits"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def to_domain(row: FloatDepositRecord) -> FloatDeposit:
        return FloatDeposit(
            id=str(row.id),
            date=row.date,
            total_kd=row.total_kd,
            transaction_fee=row.transaction_fee,
            share_percentage=row.share_percentage,
            share_total=row.share_total,
            total_kes=row.total_kes,
            rate=row.rate,
            profit=row.profit,
        )

    def create_deposit(self, deposit: FloatDeposit) -> FloatDeposit:
        db_deposit = FloatDepositRecord(
            date=deposit.date,
            total_kd=deposit.total_kd,
            transaction_fee=deposit.transaction_fee,
            share_percentage=deposit.share_percentage,
            share_total=deposit.share_total,
            total_kes=deposit.total_kes,
            rate=deposit.rate,
            profit=deposit.profit,
        )
        self.db.add(db_deposit)
        self.db.flush()
        self.db.refresh(db_deposit)
        return self.to_domain(db_deposit)

    def list_deposits(self) -> List[FloatDeposit]:
        rows = self.db.query(FloatDepositRecord).order_by(FloatDepositRecord.date.desc()).all()
        return [self.to_domain(row) for row in rows]


class ReportScheduleRepository:
    """Repository for recurring report schedules"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def to_domain(row: ReportScheduleRecord) -> ReportSchedule:
        return ReportSchedule(
            id=str(row.id),
            frequency=Frequency(row.frequency),
            time_of_day=row.time_of_day,
            is_active=row.is_active,
            day_of_week=row.day_of_week,
            day_of_month=row.day_of_month,
            last_sent_at=_as_utc(row.last_sent_at),
            report_type=row.report_type,
            report_name=row.report_name,
            email_recipients=list(row.email_recipients or []),
        )

    def create_schedule(self, schedule: ReportSchedule) -> ReportSchedule:
        db_schedule = ReportScheduleRecord(
            report_type=schedule.report_type,
            report_name=schedule.report_name,
            frequency=schedule.frequency.value,
            day_of_week=schedule.day_of_week,
            day_of_month=schedule.day_of_month,
            time_of_day=schedule.time_of_day,
            email_recipients=list(schedule.email_recipients),
            is_active=schedule.is_active,
        )
        self.db.add(db_schedule)
        self.db.flush()
        return self.to_domain(db_schedule)

    def list_active(self) -> List[ReportSchedule]:
        rows = self.db.query(ReportScheduleRecord).filter(ReportScheduleRecord.is_active.is_(True)).all()
        return [self.to_domain(row) for row in rows]

    def mark_sent(self, schedule_id: str, sent_at: datetime) -> None:
        """Stamp last_sent_at after a successful dispatch"""
        row = self.db.get(ReportScheduleRecord, _parse_uuid(schedule_id, "Schedule"))
        if row is None:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        row.last_sent_at = _for_storage(sent_at)
        self.db.flush()
