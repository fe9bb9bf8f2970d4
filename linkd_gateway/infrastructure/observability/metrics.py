"""Prometheus metrics for monitoring transaction volume, fee lookups, and report dispatch"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

from linkd_gateway.domain.models import FeeOutcome

# Transaction metrics
transaction_counter = Counter(
    "linkd_transactions_total",
    "Total transactions recorded",
    ["channel"],  # SEND_MONEY | PAYBILL
)

payout_histogram = Histogram(
    "linkd_payout_kes",
    "Payout amounts in KES",
    buckets=[500, 1000, 2500, 5000, 10000, 20000, 50000, 100000, 250000],
)

fee_lookup_counter = Counter(
    "linkd_fee_lookup_total",
    "Fee resolutions by outcome",
    ["outcome"],  # matched | saturated | gap_filled | ambiguous | configuration_gap | overridden
)

# Report dispatch metrics
report_dispatch_counter = Counter(
    "linkd_reports_dispatched_total",
    "Scheduled report dispatch attempts",
    ["outcome"],  # sent | failed
)

dispatch_latency_histogram = Histogram(
    "dispatch_latency_seconds",
    "Report dispatcher response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

dispatch_failure_counter = Counter(
    "dispatch_failures_total",
    "Failed report dispatcher calls, including retried ones",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_fee_lookup(outcome: FeeOutcome) -> None:
    fee_lookup_counter.labels(outcome=outcome.value).inc()


def record_transaction(channel: str, payout_kes: Decimal) -> None:
    """Record transaction metrics for volume and payout distribution"""
    transaction_counter.labels(channel=channel).inc()
    payout_histogram.observe(float(payout_kes))


def record_dispatch(success: bool) -> None:
    report_dispatch_counter.labels(outcome="sent" if success else "failed").inc()
