"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from linkd_gateway.domain.models import FeeOutcome

# Lookups that still produce a fee but point at bad bracket data
FEE_ANOMALIES = {FeeOutcome.AMBIGUOUS, FeeOutcome.CONFIGURATION_GAP, FeeOutcome.GAP_FILLED}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "linkd-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_fee_anomaly(
    request_id: str,
    channel_type: str,
    amount_kes: Decimal,
    outcome: FeeOutcome,
) -> None:
    """Warn about fee lookups that fell back instead of matching a bracket"""
    if outcome not in FEE_ANOMALIES:
        return
    logging.warning(
        "Fee bracket data quality issue",
        extra={
            "request_id": request_id,
            "step": "fee_lookup",
            "channel_type": channel_type,
            "amount_kes": str(amount_kes),
            "fee_outcome": outcome.value,
        },
    )


def log_transaction_recorded(
    request_id: str,
    transaction_id: str,
    client_id: str,
    channel_type: str,
    payout_kes: Decimal,
    duration_ms: float,
) -> None:
    """Log structured transaction outcome for analysis"""
    logging.info(
        "Transaction recorded",
        extra={
            "request_id": request_id,
            "transaction_id": transaction_id,
            "client_id": client_id,
            "step": "transaction_recorded",
            "channel_type": channel_type,
            "payout_kes": str(payout_kes),
            "duration_ms": duration_ms,
        },
    )


def log_dispatch_result(
    schedule_id: str,
    success: bool,
    error: Optional[str] = None,
) -> None:
    """Log the outcome of one scheduled report dispatch"""
    extra = {
        "schedule_id": schedule_id,
        "step": "report_dispatch",
        "dispatch_outcome": "sent" if success else "failed",
    }
    if success:
        logging.info("Scheduled report dispatched", extra=extra)
    else:
        logging.error(f"Scheduled report dispatch failed: {error}", extra=extra)
