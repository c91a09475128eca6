"""Synthetic purchase/return ledger with risk-rated returns."""

from __future__ import annotations

import itertools
import math
import random
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

from returns_review.approval_lifecycle import PENDING, initial_approval_status
from returns_review.catalog import default_distributors, default_products
from returns_review.config import get_config, get_config_hash
from returns_review.ledger import Ledger
from returns_review.logging_config import get_logger
from returns_review.rules import BaseRule, RuleContext, get_all_rules
from returns_review.schemas import RETURN_REASON_VALUES, Distributor, Product, Transaction
from returns_review.scoring import rate_return

logger = get_logger(__name__)

PURCHASES_PER_BATCH = (1, 5)
PURCHASE_QTY_RANGE = (10, 59)
PURCHASE_VALUE_RANGE = (500, 2499)
RETURNS_PER_BATCH = (1, 3)
STRUCTURED_RETURN_COUNT = 3
RETURN_DELAY_DAYS = (5, 24)

RETURN_PROBABILITY_FACTOR = 8
SPIKE_MULTIPLIER = 3
NORMAL_MULTIPLIER = 0.8
MAX_RETURN_SHARE = 0.3
MIN_TARGET_RETURN_VALUE = 100
JITTER = (0.8, 1.2)
# Structured returns below the floor are bumped so the split stays visible.
STRUCTURED_MIN_VALUE = 200
STRUCTURED_BUMP_VALUE = 350
# Replacement for a return that would overrun the batch value.
OVERFLOW_SHARE = 0.05

FIRST_TRANSACTION_NUMBER = 1000


def batch_month(batch_index: int, batches_per_distributor: int) -> int:
    """1-based month, batches spread across the year by index."""
    return batch_index * 12 // batches_per_distributor + 1


def make_batch_id(distributor_id: str, year: int, month: int, sequence: int) -> str:
    return f"B{distributor_id[-3:]}-{year}-{month:02d}-{sequence}"


def return_quantity(value: float, batch_total_value: float, batch_total_qty: int) -> int:
    """Quantity proportional to the value share of the batch, rounded up, at least 1."""
    if batch_total_value <= 0:
        return 1
    return max(1, math.ceil(value * batch_total_qty / batch_total_value))


def target_return_value(
    rng: random.Random, batch_total_value: float, baseline_rate: float, spike_probability: float
) -> float:
    multiplier = SPIKE_MULTIPLIER if rng.random() < spike_probability else NORMAL_MULTIPLIER
    target = batch_total_value * baseline_rate * multiplier
    target = min(target, batch_total_value * MAX_RETURN_SHARE)
    return max(target, MIN_TARGET_RETURN_VALUE)


def split_return_values(
    rng: random.Random, target: float, batch_total_value: float, structured: bool = False
) -> list[float]:
    """
    Split the target into 1-3 jittered return values (exactly 3 when structured).
    Unstructured splits stop once the target is reached; no value overruns the batch.
    """
    count = STRUCTURED_RETURN_COUNT if structured else rng.randint(*RETURNS_PER_BATCH)
    share = math.floor(target / count)
    values: list[float] = []
    returned = 0.0
    for _ in range(count):
        if returned >= target and not structured:
            break
        value: float = math.floor(share * rng.uniform(*JITTER))
        if structured and value < STRUCTURED_MIN_VALUE:
            value = STRUCTURED_BUMP_VALUE
        remaining = batch_total_value - returned
        if value > remaining:
            value = min(batch_total_value * OVERFLOW_SHARE, remaining)
        values.append(value)
        returned += value
    return values


class LedgerGenerator:
    """Builds purchase batches per distributor, then injects and rates returns."""

    def __init__(
        self,
        config: dict[str, Any],
        products: Sequence[Product],
        rules: Sequence[BaseRule],
        rng: random.Random,
    ) -> None:
        gen_cfg = config.get("generator", {})
        self.year = int(gen_cfg.get("year", 2024))
        self.batches_per_distributor = int(gen_cfg.get("batches_per_distributor", 5))
        self.spike_probability = float(gen_cfg.get("spike_probability", 0.1))
        structuring = gen_cfg.get("structuring") or {}
        self.structured_batch = (
            structuring.get("distributor_id"),
            int(structuring.get("batch_index", -1)),
        )
        self.products = list(products)
        self.rules = list(rules)
        self.rng = rng
        self._numbers = itertools.count(FIRST_TRANSACTION_NUMBER)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._numbers)}"

    def generate(self, distributors: Sequence[Distributor]) -> list[Transaction]:
        transactions: list[Transaction] = []
        for distributor in distributors:
            for b in range(self.batches_per_distributor):
                transactions.extend(self._generate_batch(distributor, b))
        return transactions

    def _generate_batch(self, distributor: Distributor, b: int) -> list[Transaction]:
        month = batch_month(b, self.batches_per_distributor)
        batch_date = date(self.year, month, self.rng.randint(1, 28))
        batch_id = make_batch_id(distributor.id, self.year, month, b + 1)

        purchases = self._generate_purchases(distributor, batch_id, batch_date)
        batch_qty = purchases[0].batch_total_qty
        batch_value = purchases[0].batch_total_value

        structured = self.structured_batch == (distributor.id, b)
        has_returns = structured or self.rng.random() < min(
            1.0, distributor.avg_return_rate * RETURN_PROBABILITY_FACTOR
        )
        if not has_returns:
            return purchases

        target = target_return_value(
            self.rng, batch_value, distributor.avg_return_rate, self.spike_probability
        )
        values = split_return_values(self.rng, target, batch_value, structured=structured)
        returns: list[Transaction] = []
        cumulative = 0.0
        for index, value in enumerate(values):
            cumulative += value
            ctx = RuleContext(
                distributor_id=distributor.id,
                baseline_rate=distributor.avg_return_rate,
                batch_id=batch_id,
                batch_total_value=batch_value,
                cumulative_return_value=cumulative,
                return_index=index,
            )
            assessment = rate_return(ctx, self.rules)
            product = self.rng.choice(self.products)
            delay = self.rng.randint(*RETURN_DELAY_DAYS)
            returns.append(
                Transaction(
                    id=self._next_id("R"),
                    distributor_id=distributor.id,
                    kind="return",
                    product_code=product.code,
                    product_name=product.name,
                    quantity=return_quantity(value, batch_value, batch_qty),
                    value=value,
                    date=batch_date + timedelta(days=delay),
                    batch_id=batch_id,
                    batch_total_qty=batch_qty,
                    batch_total_value=batch_value,
                    confidence_rating=assessment.rating,
                    approval_status=initial_approval_status(assessment.rating),
                    return_reason=self.rng.choice(RETURN_REASON_VALUES),
                    risk_description=assessment.description,
                    rule_hits=assessment.rule_hits,
                )
            )
        if structured:
            logger.debug("Structured batch %s: %d returns", batch_id, len(returns))
        return purchases + returns

    def _generate_purchases(
        self, distributor: Distributor, batch_id: str, batch_date: date
    ) -> list[Transaction]:
        rows: list[dict[str, Any]] = []
        for _ in range(self.rng.randint(*PURCHASES_PER_BATCH)):
            product = self.rng.choice(self.products)
            rows.append(
                {
                    "id": self._next_id("T"),
                    "distributor_id": distributor.id,
                    "kind": "purchase",
                    "product_code": product.code,
                    "product_name": product.name,
                    "quantity": self.rng.randint(*PURCHASE_QTY_RANGE),
                    "value": float(self.rng.randint(*PURCHASE_VALUE_RANGE)),
                    "date": batch_date,
                    "batch_id": batch_id,
                }
            )
        # Batch totals are fixed here, once every purchase of the batch exists.
        total_qty = sum(r["quantity"] for r in rows)
        total_value = sum(r["value"] for r in rows)
        return [
            Transaction(**r, batch_total_qty=total_qty, batch_total_value=total_value)
            for r in rows
        ]


def generate_ledger(
    config: dict[str, Any] | None = None,
    distributors: Sequence[Distributor] | None = None,
    products: Sequence[Product] | None = None,
    rng: random.Random | None = None,
) -> Ledger:
    """Generate a complete ledger. Randomized; pass rng (or generator.seed) to repeat a run."""
    cfg = config if config is not None else get_config()
    distributors = list(distributors) if distributors is not None else default_distributors()
    products = list(products) if products is not None else default_products()
    if not products:
        raise ValueError("product catalog must not be empty")
    if rng is None:
        rng = random.Random(cfg.get("generator", {}).get("seed"))

    generator = LedgerGenerator(cfg, products, get_all_rules(cfg), rng)
    transactions = generator.generate(distributors)
    ledger = Ledger(distributors, transactions)

    returns = [t for t in transactions if t.is_return]
    logger.info(
        "Generated ledger: %d distributors, %d purchases, %d returns (%d pending), config_hash=%s",
        len(distributors),
        len(transactions) - len(returns),
        len(returns),
        sum(1 for t in returns if t.approval_status == PENDING),
        get_config_hash(cfg)[:12],
    )
    return ledger
