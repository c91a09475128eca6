"""API tests with TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from returns_review.api import app
from returns_review.ledger import Ledger


@pytest.fixture
def api_client(ledger: Ledger, config: dict):
    """Client bound to a seeded ledger; lifespan is not run, so state is installed here."""
    app.state.ledger = ledger
    app.state.config = config
    try:
        yield TestClient(app)
    finally:
        app.state.ledger = None
        app.state.config = None


def _pending_id(ledger: Ledger) -> str:
    return next(t.id for t in ledger.transactions if t.approval_status == "pending")


def test_health(api_client: TestClient) -> None:
    resp = api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_request_id_echoed(api_client: TestClient) -> None:
    resp = api_client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert api_client.get("/health").headers["X-Request-ID"]


def test_overview_all_years(api_client: TestClient, ledger: Ledger) -> None:
    resp = api_client.get("/overview")
    assert resp.status_code == 200
    data = resp.json()
    assert data["year"] == "all"
    assert data["totals"]["distributor_count"] == 4
    assert len(data["distributors"]) == 4
    rates = [d["return_rate"] for d in data["distributors"]]
    assert rates == sorted(rates, reverse=True)
    periods = [m["period"] for m in data["monthly"]]
    assert periods == sorted(periods)
    assert len(data["top_products"]) <= 5
    pending = sum(1 for t in ledger.transactions if t.approval_status == "pending")
    assert data["totals"]["pending_count"] == pending


def test_overview_year_without_data(api_client: TestClient) -> None:
    data = api_client.get("/overview", params={"year": "2023"}).json()
    assert data["totals"]["purchase_qty"] == 0
    assert data["totals"]["return_rate"] == 0
    assert data["monthly"] == []
    assert all(d["return_rate"] == 0 for d in data["distributors"])


def test_overview_bad_year(api_client: TestClient) -> None:
    assert api_client.get("/overview", params={"year": "last"}).status_code == 400


def test_distributor_detail(api_client: TestClient) -> None:
    resp = api_client.get("/distributors/D004")
    assert resp.status_code == 200
    data = resp.json()
    assert data["distributor"]["id"] == "D004"
    assert data["insight"]
    assert all(t["kind"] == "return" for t in data["transactions"])
    dates = [t["date"] for t in data["transactions"]]
    assert dates == sorted(dates, reverse=True)
    assert "B004-2024-05-3" in {b["batch_id"] for b in data["batches"]}
    assert data["products"]

    purchases = api_client.get("/distributors/D004", params={"kind": "purchase"}).json()
    assert all(t["kind"] == "purchase" for t in purchases["transactions"])


def test_distributor_detail_not_found(api_client: TestClient) -> None:
    resp = api_client.get("/distributors/D999")
    assert resp.status_code == 404
    assert "D999" in resp.json()["detail"]


def test_product_trend(api_client: TestClient, ledger: Ledger) -> None:
    code = ledger.transactions[0].product_code
    data = api_client.get(f"/products/{code}/trend").json()
    assert data
    assert sum(p["purchase_qty"] for p in data) == sum(
        t.quantity for t in ledger.transactions if t.product_code == code and not t.is_return
    )
    assert api_client.get("/products/NOPE/trend").json() == []


def test_approve_pending_then_noop(api_client: TestClient, ledger: Ledger) -> None:
    txn_id = _pending_id(ledger)
    resp = api_client.post(f"/transactions/{txn_id}/approve", headers={"X-Reviewer": "qa"})
    assert resp.status_code == 200
    assert resp.json()["approval_status"] == "manually-approved"
    assert resp.json() == ledger.get_transaction(txn_id).model_dump(mode="json")
    assert resp.json()["rule_hits"]

    resp = api_client.post(f"/transactions/{txn_id}/reject", json={"reason": "changed mind"})
    assert resp.status_code == 200
    assert resp.json()["approval_status"] == "manually-approved"
    assert resp.json()["rejection_reason"] is None


def test_reject_pending(api_client: TestClient, ledger: Ledger) -> None:
    txn_id = _pending_id(ledger)
    resp = api_client.post(f"/transactions/{txn_id}/reject", json={"reason": "Seal intact"})
    assert resp.status_code == 200
    assert resp.json()["approval_status"] == "rejected"
    assert ledger.get_transaction(txn_id).rejection_reason == "Seal intact"

    resp = api_client.post(f"/transactions/{txn_id}/approve")
    assert resp.json()["approval_status"] == "rejected"


def test_reject_requires_reason(api_client: TestClient, ledger: Ledger) -> None:
    txn_id = _pending_id(ledger)
    assert api_client.post(f"/transactions/{txn_id}/reject", json={}).status_code == 422
    assert api_client.post(f"/transactions/{txn_id}/reject", json={"reason": ""}).status_code == 422
    assert ledger.get_transaction(txn_id).approval_status == "pending"


def test_decision_on_unknown_or_purchase_is_404(api_client: TestClient, ledger: Ledger) -> None:
    assert api_client.post("/transactions/R0/approve").status_code == 404
    purchase_id = next(t.id for t in ledger.transactions if not t.is_return)
    assert api_client.post(f"/transactions/{purchase_id}/approve").status_code == 404


def test_chat(api_client: TestClient) -> None:
    data = api_client.post("/chat", json={"query": "How many returns are pending?"}).json()
    assert data["intent"] == "pending"
    assert "waiting" in data["answer"]
    data = api_client.post("/chat", json={"query": "hello"}).json()
    assert data["intent"] == "unknown"
    assert data["answer"]
