"""Aggregation engine: time series, rankings, pivots, distributor summary."""

from __future__ import annotations

from datetime import date

import pytest

from returns_review.aggregation import (
    batch_pivot,
    distributor_summary,
    filter_by_kind,
    filter_by_product,
    filter_by_year,
    monthly_series,
    overall_return_rate,
    overview_totals,
    product_pivot,
    return_rate,
    top_returned_products,
    trend_level,
)


@pytest.fixture
def rows(make_purchase, make_return):
    return [
        make_purchase("T1", qty=100, value=10_000, batch_id="B001-2024-01-1", day=date(2024, 1, 5)),
        make_return("R2", qty=12, value=1200, batch_id="B001-2024-01-1", day=date(2024, 1, 20)),
        make_purchase(
            "T3", qty=40, value=2000, batch_id="B001-2024-03-2", product_code="MED-002",
            day=date(2024, 3, 8),
        ),
        make_return(
            "R4", qty=4, value=200, batch_id="B001-2024-03-2", product_code="MED-002",
            day=date(2024, 3, 30), status="auto-approved", rating="low",
        ),
        make_return(
            "R5", qty=2, value=100, batch_id="B001-2024-03-2", product_code="MED-003",
            day=date(2024, 4, 2),
        ),
        make_purchase(
            "T6", qty=50, value=900, batch_id="B002-2023-11-1", distributor_id="D002",
            day=date(2023, 11, 11),
        ),
    ]


def test_empty_input_is_total() -> None:
    assert monthly_series([]) == []
    assert top_returned_products([]) == []
    assert batch_pivot([]) == []
    assert product_pivot([]) == []
    assert overall_return_rate([]) == 0
    assert filter_by_year([], 2024) == []


def test_return_rate_zero_guard() -> None:
    assert return_rate(5, 0) == 0
    assert return_rate(5, 10) == 0.5


def test_filter_by_year(rows) -> None:
    assert filter_by_year(rows, "all") == rows
    assert [t.id for t in filter_by_year(rows, 2023)] == ["T6"]
    assert len(filter_by_year(rows, "2024")) == 5
    assert filter_by_year(rows, 2022) == []


def test_filter_by_kind_and_product(rows) -> None:
    assert [t.id for t in filter_by_kind(rows, "purchase")] == ["T1", "T3", "T6"]
    assert filter_by_kind(rows, "all") == rows
    assert [t.id for t in filter_by_product(rows, "MED-002")] == ["T3", "R4"]


def test_monthly_series_sorted_and_zero_safe(rows) -> None:
    series = monthly_series(rows)
    assert [p.period for p in series] == ["2023-11", "2024-01", "2024-03", "2024-04"]
    jan = series[1]
    assert (jan.purchase_qty, jan.return_qty) == (100, 12)
    assert jan.return_rate == pytest.approx(0.12)
    april = series[3]
    assert april.purchase_qty == 0
    assert april.return_qty == 2
    assert april.return_rate == 0


def test_overall_return_rate(rows) -> None:
    assert overall_return_rate(rows) == pytest.approx(18 / 190)


def test_top_returned_products_stable_ties(make_return) -> None:
    returns = [
        make_return("R1", qty=3, product_code="MED-004"),
        make_return("R2", qty=5, product_code="MED-001"),
        make_return("R3", qty=3, product_code="MED-002"),
        make_return("R4", qty=1, product_code="MED-003"),
        make_return("R5", qty=1, product_code="MED-005"),
        make_return("R6", qty=1, product_code="MED-006"),
    ]
    top = top_returned_products(returns)
    assert [p.product_code for p in top] == ["MED-001", "MED-004", "MED-002", "MED-003", "MED-005"]
    assert top[0].product_name == "Product MED-001"
    assert len(top_returned_products(returns, n=2)) == 2


def test_top_returned_products_ignores_purchases(rows) -> None:
    top = top_returned_products(rows)
    assert [(p.product_code, p.return_qty) for p in top] == [
        ("MED-001", 12),
        ("MED-002", 4),
        ("MED-003", 2),
    ]


def test_batch_pivot(rows) -> None:
    pivot = batch_pivot(rows)
    assert [b.batch_id for b in pivot] == ["B001-2024-03-2", "B001-2024-01-1", "B002-2023-11-1"]
    top = pivot[0]
    assert (top.purchase_qty, top.purchase_val, top.return_qty, top.return_val) == (40, 2000, 6, 300)
    assert top.return_rate == pytest.approx(0.15)
    assert pivot[-1].return_rate == 0


def test_product_pivot(rows) -> None:
    pivot = {p.product_code: p for p in product_pivot(rows)}
    assert pivot["MED-003"].purchase_qty == 0
    assert pivot["MED-003"].return_rate == 0
    assert pivot["MED-002"].product_name == "Product MED-002"
    assert pivot["MED-002"].return_rate == pytest.approx(0.1)
    assert pivot["MED-001"].purchase_qty == 150
    rates = [p.return_rate for p in product_pivot(rows)]
    assert rates == sorted(rates, reverse=True)


def test_distributor_summary(rows, distributors) -> None:
    summary = distributor_summary(distributors, rows)
    assert [s.distributor.id for s in summary] == ["D001", "D002"]
    d001 = summary[0]
    assert (d001.purchase_qty, d001.return_qty) == (140, 18)
    assert d001.return_val == 1500
    assert d001.pending_count == 2
    assert d001.return_rate == pytest.approx(18 / 140)
    assert summary[1].return_rate == 0
    assert summary[1].pending_count == 0


def test_distributor_summary_without_transactions(distributors) -> None:
    summary = distributor_summary(distributors, [])
    assert [s.return_rate for s in summary] == [0, 0]


def test_overview_totals(rows, distributors) -> None:
    totals = overview_totals(distributors, filter_by_year(rows, 2024))
    assert totals.purchase_qty == 140
    assert totals.return_qty == 18
    assert totals.distributor_count == 2
    assert totals.pending_count == 2


def test_trend_level() -> None:
    assert trend_level(0.2, 0.1) == "elevated"
    assert trend_level(0.12, 0.1) == "above_average"
    assert trend_level(0.1, 0.1) == "normal"
    assert trend_level(0, 0) == "normal"


def test_aggregations_idempotent_and_non_mutating(ledger) -> None:
    before = [t.model_dump() for t in ledger.transactions]
    rows = ledger.transactions
    for fn in (monthly_series, top_returned_products, batch_pivot, product_pivot):
        assert fn(rows) == fn(rows)
    assert distributor_summary(ledger.distributors, rows) == distributor_summary(
        ledger.distributors, rows
    )
    assert [t.model_dump() for t in ledger.transactions] == before


def test_pivots_reconcile_with_ledger(ledger) -> None:
    rows = ledger.transactions
    for b in batch_pivot(rows):
        batch_rows = [t for t in rows if t.batch_id == b.batch_id]
        assert b.purchase_qty == batch_rows[0].batch_total_qty
        assert b.purchase_val == batch_rows[0].batch_total_value
    total_returns = sum(t.quantity for t in rows if t.is_return)
    assert sum(p.return_qty for p in product_pivot(rows)) == total_returns
    assert sum(m.return_qty for m in monthly_series(rows)) == total_returns
    assert sum(s.return_qty for s in distributor_summary(ledger.distributors, rows)) == total_returns
