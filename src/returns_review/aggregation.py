"""
Aggregations over a transaction collection.

Every function is pure: it never mutates its input and can be recomputed at
any filter granularity. Return rates are returned quantity / purchased
quantity, 0 when nothing was purchased. Values are summed for context only.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from returns_review.approval_lifecycle import PENDING
from returns_review.schemas import (
    BatchPivotRow,
    Distributor,
    DistributorSummary,
    MonthlyPoint,
    OverviewTotals,
    ProductPivotRow,
    ProductReturn,
    Transaction,
)

ALL = "all"
DEFAULT_TOP_N = 5


def return_rate(return_qty: float, purchase_qty: float) -> float:
    return return_qty / purchase_qty if purchase_qty > 0 else 0.0


@dataclass
class _Totals:
    purchase_qty: int = 0
    purchase_val: float = 0.0
    return_qty: int = 0
    return_val: float = 0.0

    def add(self, t: Transaction) -> None:
        if t.kind == "purchase":
            self.purchase_qty += t.quantity
            self.purchase_val += t.value
        else:
            self.return_qty += t.quantity
            self.return_val += t.value

    @property
    def return_rate(self) -> float:
        return return_rate(self.return_qty, self.purchase_qty)


def _totals(transactions: Iterable[Transaction]) -> _Totals:
    totals = _Totals()
    for t in transactions:
        totals.add(t)
    return totals


# --- Filters ---
def filter_by_year(transactions: Sequence[Transaction], year: int | str) -> list[Transaction]:
    """Keep rows dated in `year`; the "all" sentinel keeps everything."""
    if str(year).lower() == ALL:
        return list(transactions)
    return [t for t in transactions if t.date.year == int(year)]


def filter_by_kind(transactions: Iterable[Transaction], kind: str) -> list[Transaction]:
    if kind == ALL:
        return list(transactions)
    return [t for t in transactions if t.kind == kind]


def filter_by_product(transactions: Iterable[Transaction], product_code: str) -> list[Transaction]:
    return [t for t in transactions if t.product_code == product_code]


# --- Time series ---
def monthly_series(transactions: Iterable[Transaction]) -> list[MonthlyPoint]:
    """Purchase/return quantity and return rate per YYYY-MM, ascending."""
    months: dict[str, _Totals] = {}
    for t in transactions:
        months.setdefault(t.date.strftime("%Y-%m"), _Totals()).add(t)
    return [
        MonthlyPoint(
            period=period,
            purchase_qty=m.purchase_qty,
            return_qty=m.return_qty,
            return_rate=m.return_rate,
        )
        for period, m in sorted(months.items())
    ]


def overall_return_rate(transactions: Iterable[Transaction]) -> float:
    """Average line for the trend chart: total returned / total purchased."""
    return _totals(transactions).return_rate


def trend_level(rate: float, average: float) -> str:
    """Classify a trend point against the average: elevated / above_average / normal."""
    if rate > average * 1.5:
        return "elevated"
    if rate > average:
        return "above_average"
    return "normal"


# --- Rankings and pivots ---
def top_returned_products(
    transactions: Iterable[Transaction], n: int = DEFAULT_TOP_N
) -> list[ProductReturn]:
    """Returned quantity per product, highest first; ties keep first-seen order."""
    qty: dict[str, int] = {}
    names: dict[str, str] = {}
    for t in transactions:
        if t.kind != "return":
            continue
        qty[t.product_code] = qty.get(t.product_code, 0) + t.quantity
        names.setdefault(t.product_code, t.product_name)
    ranked = sorted(qty.items(), key=lambda item: item[1], reverse=True)
    return [
        ProductReturn(product_code=code, product_name=names[code], return_qty=q)
        for code, q in ranked[:n]
    ]


def batch_pivot(transactions: Iterable[Transaction]) -> list[BatchPivotRow]:
    batches: dict[str, _Totals] = {}
    for t in transactions:
        batches.setdefault(t.batch_id, _Totals()).add(t)
    rows = [
        BatchPivotRow(
            batch_id=batch_id,
            purchase_qty=b.purchase_qty,
            purchase_val=b.purchase_val,
            return_qty=b.return_qty,
            return_val=b.return_val,
            return_rate=b.return_rate,
        )
        for batch_id, b in batches.items()
    ]
    return sorted(rows, key=lambda r: r.return_rate, reverse=True)


def product_pivot(transactions: Iterable[Transaction]) -> list[ProductPivotRow]:
    products: dict[str, _Totals] = {}
    names: dict[str, str] = {}
    for t in transactions:
        products.setdefault(t.product_code, _Totals()).add(t)
        names.setdefault(t.product_code, t.product_name)
    rows = [
        ProductPivotRow(
            product_code=code,
            product_name=names[code],
            purchase_qty=p.purchase_qty,
            purchase_val=p.purchase_val,
            return_qty=p.return_qty,
            return_val=p.return_val,
            return_rate=p.return_rate,
        )
        for code, p in products.items()
    ]
    return sorted(rows, key=lambda r: r.return_rate, reverse=True)


def pending_count(transactions: Iterable[Transaction]) -> int:
    return sum(1 for t in transactions if t.approval_status == PENDING)


def distributor_summary(
    distributors: Iterable[Distributor], transactions: Sequence[Transaction]
) -> list[DistributorSummary]:
    """Per-distributor totals over (already year-filtered) rows, highest return rate first."""
    rows = []
    for d in distributors:
        own = [t for t in transactions if t.distributor_id == d.id]
        totals = _totals(own)
        rows.append(
            DistributorSummary(
                distributor=d,
                purchase_qty=totals.purchase_qty,
                purchase_val=totals.purchase_val,
                return_qty=totals.return_qty,
                return_val=totals.return_val,
                return_rate=totals.return_rate,
                pending_count=pending_count(own),
            )
        )
    return sorted(rows, key=lambda r: r.return_rate, reverse=True)


def overview_totals(
    distributors: Sequence[Distributor], transactions: Sequence[Transaction]
) -> OverviewTotals:
    totals = _totals(transactions)
    return OverviewTotals(
        purchase_qty=totals.purchase_qty,
        return_qty=totals.return_qty,
        return_rate=totals.return_rate,
        distributor_count=len(distributors),
        pending_count=pending_count(transactions),
    )
