"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal, ROUND_HALF_UP
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from linkd_gateway.domain.exceptions import DispatchError
from linkd_gateway.infrastructure.database.models import TransactionCharge
from linkd_gateway.infrastructure.database.repositories import ClientRepository

pytestmark = pytest.mark.integration


@pytest.fixture
def client_id(db: Session) -> str:
    """A stored client to hang transactions on"""
    record = ClientRepository(db).create_client("Amina Hassan", email="amina@example.com", phone="+96550000000")
    db.commit()
    return str(record.id)


@pytest.fixture
def seeded(client: TestClient) -> TestClient:
    """API client with the built-in tariff stored"""
    response = client.post("/v1/fees/seed")
    assert response.status_code == 200
    return client


def post_transaction(client: TestClient, client_id: str, principal: str, created_at: str, **extra):
    body = {
        "client_id": client_id,
        "principal_kd": principal,
        "rate_kes_per_kd": "250",
        "channel_type": "SEND_MONEY",
        "created_at": created_at,
    }
    body.update(extra)
    return client.post("/v1/transactions", json=body)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "linkd_transactions_total" in response.text


def test_seed_and_list_brackets(client: TestClient):
    first = client.post("/v1/fees/seed").json()
    second = client.post("/v1/fees/seed").json()

    assert first["brackets_added"] > 0
    assert second["brackets_added"] == 0

    response = client.get("/v1/fees/SEND_MONEY")
    assert response.status_code == 200
    brackets = response.json()["brackets"]
    assert len(brackets) == 15
    assert [Decimal(b["min_amount"]) for b in brackets] == sorted(Decimal(b["min_amount"]) for b in brackets)


def test_get_brackets_unknown_channel(client: TestClient):
    assert client.get("/v1/fees/western_union").status_code == 422


def test_quote_paybill(seeded: TestClient):
    """10 KD @ 150 on paybill -> 1500 + 15"""
    response = seeded.post(
        "/v1/fees/quote",
        json={"principal_kd": "10", "rate_kes_per_kd": "150", "channel_type": "PAYBILL"},
    )

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["amount_kes"]) == Decimal("1500")
    assert Decimal(data["fee_kes"]) == Decimal("15")
    assert Decimal(data["payout_kes"]) == Decimal("1515")
    assert data["fee_outcome"] == "matched"


def test_quote_without_stored_brackets(client: TestClient):
    response = client.post("/v1/fees/quote", json={"principal_kd": "10", "rate_kes_per_kd": "150"})

    assert response.status_code == 200
    assert Decimal(response.json()["fee_kes"]) == 0
    assert response.json()["fee_outcome"] == "configuration_gap"


@pytest.mark.parametrize(
    "body",
    [
        {"principal_kd": "-10", "rate_kes_per_kd": "150"},
        {"principal_kd": "10", "rate_kes_per_kd": "0"},
        {"principal_kd": "10", "rate_kes_per_kd": "150", "channel_type": "bank"},
        {"principal_kd": "10", "rate_kes_per_kd": "150", "fee_override": "-1"},
    ],
)
def test_quote_rejects_invalid_input(seeded: TestClient, body):
    assert seeded.post("/v1/fees/quote", json=body).status_code == 422


def test_replace_brackets_rejects_overlap(seeded: TestClient):
    response = seeded.put(
        "/v1/fees/PAYBILL",
        json={
            "brackets": [
                {"min_amount": "1", "max_amount": "1000", "fee": "5"},
                {"min_amount": "900", "max_amount": "5000", "fee": "20"},
            ]
        },
    )

    assert response.status_code == 422
    assert any("overlaps" in problem for problem in response.json()["detail"])


def test_replace_brackets_changes_quotes(seeded: TestClient):
    response = seeded.put(
        "/v1/fees/paybill",
        json={
            "brackets": [
                {"min_amount": "1", "max_amount": "1000", "fee": "5"},
                {"min_amount": "1001", "max_amount": "5000", "fee": "40"},
            ]
        },
    )
    assert response.status_code == 200
    assert response.json()["channel_type"] == "PAYBILL"
    assert len(response.json()["brackets"]) == 2

    quote = seeded.post(
        "/v1/fees/quote",
        json={"principal_kd": "10", "rate_kes_per_kd": "150", "channel_type": "PAYBILL"},
    ).json()
    assert Decimal(quote["fee_kes"]) == Decimal("40")

    # Other channel untouched
    assert len(seeded.get("/v1/fees/SEND_MONEY").json()["brackets"]) == 15


def test_create_and_get_transaction(seeded: TestClient, client_id: str):
    response = post_transaction(
        seeded,
        client_id,
        "10",
        "2024-06-17T05:00:00Z",
        rate_kes_per_kd="150",
        channel_type="PAYBILL",
        reference="LNK-001",
    )

    assert response.status_code == 201
    data = response.json()
    assert data["client_id"] == client_id
    assert data["status"] == "PENDING"
    assert Decimal(data["payout_kes"]) == Decimal("1515")

    fetched = seeded.get(f"/v1/transactions/{data['id']}")
    assert fetched.status_code == 200
    assert Decimal(fetched.json()["fee_kes"]) == Decimal("15")
    assert fetched.json()["channel_type"] == "PAYBILL"


def test_create_transaction_with_fee_override(seeded: TestClient, client_id: str):
    response = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z", fee_override="0")

    assert response.status_code == 201
    assert Decimal(response.json()["fee_kes"]) == 0
    assert Decimal(response.json()["payout_kes"]) == Decimal("2500")


def test_create_transaction_unknown_client(seeded: TestClient):
    response = post_transaction(seeded, "8f14e45f-ceea-467f-a0e6-5a3c2b1d9e70", "10", "2024-06-17T05:00:00Z")
    assert response.status_code == 404


def test_create_transaction_invalid_principal(seeded: TestClient, client_id: str):
    response = post_transaction(seeded, client_id, "0", "2024-06-17T05:00:00Z")
    assert response.status_code == 422


def test_get_transaction_not_found(client: TestClient):
    assert client.get("/v1/transactions/not-a-uuid").status_code == 404
    assert client.get("/v1/transactions/8f14e45f-ceea-467f-a0e6-5a3c2b1d9e70").status_code == 404


@pytest.mark.parametrize("field,value", [("principal_kd", "10.0004"), ("rate_kes_per_kd", "150.12345")])
def test_create_transaction_rejects_digits_the_ledger_cannot_store(seeded: TestClient, client_id: str, field, value):
    response = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z", **{field: value})
    assert response.status_code == 422


def test_stored_transaction_amount_matches_stored_inputs(seeded: TestClient, client_id: str):
    """amount_kes read back equals round(principal * rate, 2) on the stored inputs"""
    created = post_transaction(
        seeded, client_id, "10.125", "2024-06-17T05:00:00Z", rate_kes_per_kd="150.1234"
    ).json()
    fetched = seeded.get(f"/v1/transactions/{created['id']}").json()

    expected = (Decimal(fetched["principal_kd"]) * Decimal(fetched["rate_kes_per_kd"])).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    assert Decimal(fetched["amount_kes"]) == expected == Decimal("1520.00")
    assert Decimal(fetched["payout_kes"]) == Decimal(fetched["amount_kes"]) + Decimal(fetched["fee_kes"])
    for key in ("principal_kd", "rate_kes_per_kd", "amount_kes", "fee_kes", "payout_kes"):
        assert Decimal(created[key]) == Decimal(fetched[key])


def test_update_transaction_recomputes_payout(seeded: TestClient, client_id: str):
    created = post_transaction(
        seeded, client_id, "10", "2024-06-17T05:00:00Z", rate_kes_per_kd="150", channel_type="PAYBILL"
    ).json()

    response = seeded.put(f"/v1/transactions/{created['id']}", json={"principal_kd": "20", "notes": "corrected"})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["amount_kes"]) == Decimal("3000")
    assert Decimal(data["fee_kes"]) == Decimal("25")
    assert Decimal(data["payout_kes"]) == Decimal("3025")
    assert data["channel_type"] == "PAYBILL"

    fetched = seeded.get(f"/v1/transactions/{created['id']}").json()
    assert Decimal(fetched["payout_kes"]) == Decimal("3025")


def test_update_transaction_honours_fee_override(seeded: TestClient, client_id: str):
    created = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z").json()

    data = seeded.put(f"/v1/transactions/{created['id']}", json={"fee_override": "40"}).json()

    assert Decimal(data["fee_kes"]) == Decimal("40")
    assert Decimal(data["payout_kes"]) == Decimal("2540")


def test_update_transaction_errors(seeded: TestClient, client_id: str):
    created = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z").json()

    assert seeded.put("/v1/transactions/8f14e45f-ceea-467f-a0e6-5a3c2b1d9e70", json={}).status_code == 404
    assert seeded.put(f"/v1/transactions/{created['id']}", json={"rate_kes_per_kd": "-1"}).status_code == 422
    assert (
        seeded.put(
            f"/v1/transactions/{created['id']}", json={"client_id": "8f14e45f-ceea-467f-a0e6-5a3c2b1d9e70"}
        ).status_code
        == 404
    )
    # Failed edits leave the row untouched
    assert Decimal(seeded.get(f"/v1/transactions/{created['id']}").json()["payout_kes"]) == Decimal("2500")


def test_transaction_status_paid_stamps_paid_at(seeded: TestClient, client_id: str):
    created = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z").json()
    assert created["status"] == "PENDING"
    assert created["paid_at"] is None

    paid = seeded.put(f"/v1/transactions/{created['id']}/status", json={"status": "paid"})

    assert paid.status_code == 200
    assert paid.json()["status"] == "PAID"
    # Frozen clock is 08:00 in Kuwait
    assert paid.json()["paid_at"].startswith("2024-06-17T05:00:00")
    assert seeded.get(f"/v1/transactions/{created['id']}").json()["status"] == "PAID"

    reopened = seeded.put(f"/v1/transactions/{created['id']}/status", json={"status": "PENDING"}).json()
    assert reopened["status"] == "PENDING"
    assert reopened["paid_at"] is None


def test_transaction_status_rejects_unknown(seeded: TestClient, client_id: str):
    created = post_transaction(seeded, client_id, "10", "2024-06-17T05:00:00Z").json()

    assert seeded.put(f"/v1/transactions/{created['id']}/status", json={"status": "refunded"}).status_code == 422
    assert seeded.put("/v1/transactions/not-a-uuid/status", json={"status": "PAID"}).status_code == 404


def test_fee_lookups_skip_rows_with_unknown_channel(seeded: TestClient, db: Session):
    db.add(TransactionCharge(transaction_type="WESTERN_UNION", min_amount=1, max_amount=100000, charge_amount=999))
    db.commit()

    quote = seeded.post(
        "/v1/fees/quote",
        json={"principal_kd": "10", "rate_kes_per_kd": "150", "channel_type": "PAYBILL"},
    )
    assert quote.status_code == 200
    assert Decimal(quote.json()["fee_kes"]) == Decimal("15")
    assert len(seeded.get("/v1/fees/SEND_MONEY").json()["brackets"]) == 15


def test_monthly_analytics(seeded: TestClient, client_id: str):
    for principal, created_at in [
        ("10", "2024-05-10T12:00:00Z"),
        ("25", "2024-05-20T12:00:00Z"),
        ("50", "2024-06-02T12:00:00Z"),
        ("100", "2023-01-15T12:00:00Z"),
    ]:
        assert post_transaction(seeded, client_id, principal, created_at).status_code == 201

    response = seeded.get("/v1/analytics/monthly", params={"window_months": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["reference_date"] == "2024-06-17"
    assert [b["period_label"] for b in data["buckets"]] == ["Apr 2024", "May 2024", "Jun 2024"]
    assert [b["count"] for b in data["buckets"]] == [0, 2, 1]
    assert Decimal(data["buckets"][1]["avg_principal_kd"]) == Decimal("17.5")


def test_monthly_analytics_rejects_zero_window(client: TestClient):
    assert client.get("/v1/analytics/monthly", params={"window_months": 0}).status_code == 422


def test_distribution_analytics(seeded: TestClient, client_id: str):
    for principal in ("10", "10.5", "25", "300", "70"):
        assert post_transaction(seeded, client_id, principal, "2024-06-02T12:00:00Z").status_code == 201

    data = seeded.get("/v1/analytics/distribution").json()
    counts = {s["name"]: s["count"] for s in data["slices"]}

    assert data["total"] == 5
    assert counts == {"10 KD": 2, "25 KD": 1, "50 KD": 0, "100 KD": 0, "200+ KD": 1, "Other": 1}


def test_client_growth_analytics(client: TestClient, client_id: str):
    data = client.get("/v1/analytics/client-growth", params={"window_months": 2}).json()

    assert len(data["points"]) == 2
    assert data["points"][-1]["period_label"] == "Jun 2024"


def test_dashboard_summary(seeded: TestClient, client_id: str):
    # 04:00 UTC is 07:00 in Kuwait, earlier on the frozen "today"
    post_transaction(seeded, client_id, "10", "2024-06-17T04:00:00Z")
    post_transaction(seeded, client_id, "20", "2024-06-10T04:00:00Z")
    seeded.post(
        "/v1/float-deposits",
        json={"deposit_date": "2024-06-01", "total_kd": "1000", "rate": "410.5", "share_percentage": "10"},
    )

    response = seeded.get("/v1/analytics/summary")

    assert response.status_code == 200
    data = response.json()
    assert data["transaction_count"] == 2
    assert data["today_count"] == 1
    assert Decimal(data["today_principal_kd"]) == Decimal("10")
    assert Decimal(data["float_total_kes"]) == Decimal("410500")
    assert Decimal(data["volume_trend"]["current_kd"]) == Decimal("30")


def test_create_float_deposit(client: TestClient):
    response = client.post(
        "/v1/float-deposits",
        json={
            "deposit_date": "2024-06-01",
            "total_kd": "1000",
            "rate": "410.5",
            "share_percentage": "10",
            "profit": "900",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"]
    assert Decimal(data["total_kes"]) == Decimal("410500")
    assert Decimal(data["share_total"]) == Decimal("41050")
    assert Decimal(data["profit"]) == Decimal("900")


def test_create_float_deposit_rejects_share_over_100(client: TestClient):
    response = client.post(
        "/v1/float-deposits",
        json={"deposit_date": "2024-06-01", "total_kd": "1000", "rate": "410.5", "share_percentage": "120"},
    )
    assert response.status_code == 422


def test_create_schedule_requires_day_of_week(client: TestClient):
    response = client.post(
        "/v1/reports/schedules",
        json={"report_name": "Weekly volume", "frequency": "WEEKLY", "time_of_day": "08:00"},
    )
    assert response.status_code == 422


def create_monday_schedule(client: TestClient) -> dict:
    response = client.post(
        "/v1/reports/schedules",
        json={
            "report_name": "Weekly volume",
            "frequency": "WEEKLY",
            "time_of_day": "08:00",
            "day_of_week": 1,
            "email_recipients": ["ops@example.com"],
        },
    )
    assert response.status_code == 201
    return response.json()


@patch("linkd_gateway.infrastructure.clients.dispatch.ReportDispatchClient.send_report", new_callable=AsyncMock)
def test_dispatch_sends_due_reports(mock_send: AsyncMock, client: TestClient):
    """Monday 08:00 schedule goes out at the frozen Monday 08:00"""
    schedule = create_monday_schedule(client)
    client.post(
        "/v1/reports/schedules",
        json={"report_name": "Daily evening", "frequency": "DAILY", "time_of_day": "18:00"},
    )
    mock_send.return_value = {"status": "queued"}

    response = client.post("/v1/reports/dispatch")

    assert response.status_code == 200
    data = response.json()
    assert data["due_count"] == 1
    assert data["results"] == [{"schedule_id": schedule["id"], "success": True, "error": None}]

    sent_schedule, window = mock_send.call_args.args
    assert sent_schedule.id == schedule["id"]
    assert (window[1] - window[0]).days == 7


@patch("linkd_gateway.infrastructure.clients.dispatch.ReportDispatchClient.send_report", new_callable=AsyncMock)
def test_dispatch_reports_failures(mock_send: AsyncMock, client: TestClient):
    schedule = create_monday_schedule(client)
    mock_send.side_effect = DispatchError("Dispatcher returned 503")

    response = client.post("/v1/reports/dispatch")

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["schedule_id"] == schedule["id"]
    assert result["success"] is False
    assert "503" in result["error"]


@patch("linkd_gateway.infrastructure.clients.dispatch.ReportDispatchClient.send_report", new_callable=AsyncMock)
def test_dispatch_with_nothing_due(mock_send: AsyncMock, client: TestClient):
    client.post(
        "/v1/reports/schedules",
        json={"report_name": "Monthly", "frequency": "MONTHLY", "time_of_day": "08:00", "day_of_month": 1},
    )

    response = client.post("/v1/reports/dispatch")

    assert response.json()["due_count"] == 0
    mock_send.assert_not_called()
