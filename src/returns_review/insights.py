"""Canned insight text: detected intent -> template. Keyword matching only, no model."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from returns_review.aggregation import overall_return_rate, pending_count, top_returned_products
from returns_review.ledger import Ledger
from returns_review.schemas import Distributor, Transaction


class Intent(str, Enum):
    RETURN_RATE = "return_rate"
    STRUCTURING = "structuring"
    PENDING = "pending"
    TOP_PRODUCTS = "top_products"
    UNKNOWN = "unknown"


# First match wins.
INTENT_KEYWORDS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.STRUCTURING, ("structuring", "split", "multiple return")),
    (Intent.PENDING, ("pending", "approve", "review", "queue")),
    (Intent.TOP_PRODUCTS, ("product", "item", "sku")),
    (Intent.RETURN_RATE, ("rate", "trend", "average")),
)

TEMPLATES: dict[Intent, str] = {
    Intent.RETURN_RATE: "The overall return rate is {rate:.1%} of purchased quantity.",
    Intent.STRUCTURING: (
        "{structured} returns were flagged because several returns were filed against the same batch."
    ),
    Intent.PENDING: "{pending} returns are waiting for a manual decision.",
    Intent.TOP_PRODUCTS: "The most returned product is {product} ({qty} units).",
    Intent.UNKNOWN: (
        "I can answer questions about return rates, pending approvals, "
        "split returns and the most returned products."
    ),
}


def detect_intent(query: str) -> Intent:
    text = (query or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(k in text for k in keywords):
            return intent
    return Intent.UNKNOWN


def repeat_return_count(transactions: Iterable[Transaction]) -> int:
    """Returns filed after an earlier return against the same batch."""
    seen: set[str] = set()
    count = 0
    for t in transactions:
        if not t.is_return:
            continue
        if t.batch_id in seen:
            count += 1
        seen.add(t.batch_id)
    return count


def answer(query: str, ledger: Ledger) -> tuple[Intent, str]:
    """Return (intent, text) for a free-text query."""
    intent = detect_intent(query)
    transactions = ledger.transactions
    if intent is Intent.RETURN_RATE:
        return intent, TEMPLATES[intent].format(rate=overall_return_rate(transactions))
    if intent is Intent.PENDING:
        return intent, TEMPLATES[intent].format(pending=pending_count(transactions))
    if intent is Intent.STRUCTURING:
        return intent, TEMPLATES[intent].format(structured=repeat_return_count(transactions))
    if intent is Intent.TOP_PRODUCTS:
        top = top_returned_products(transactions, n=1)
        if not top:
            return intent, "No products have been returned."
        return intent, TEMPLATES[intent].format(product=top[0].product_name, qty=top[0].return_qty)
    return intent, TEMPLATES[Intent.UNKNOWN]


def distributor_insight(distributor: Distributor) -> str:
    """Short note on a distributor chosen by its baseline return rate."""
    rate = distributor.avg_return_rate
    if rate >= 0.08:
        return (
            f"{distributor.name} has a high baseline return rate ({rate:.1%}); "
            "check batches with several returns first."
        )
    if rate >= 0.05:
        return f"{distributor.name} returns more than average ({rate:.1%}); watch near-expiry returns."
    return f"{distributor.name} has a low baseline return rate ({rate:.1%})."
