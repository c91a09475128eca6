"""Pydantic v2 schemas: ledger records, aggregation rows and API bodies."""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from returns_review.approval_lifecycle import APPROVAL_STATUS_VALUES

RETURN_REASON_VALUES = ("damaged packaging", "near expiry")

RiskRating = Literal["low", "medium", "high"]


# --- Reference data ---
class Distributor(BaseModel):
    """Distributor identity with its baseline (average) return rate."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    avg_return_rate: float = Field(..., ge=0, le=1)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str


# --- Rules ---
class RuleResult(BaseModel):
    """Output of a single risk rule evaluated against one return."""

    rule_id: str
    severity: RiskRating
    reason: str
    evidence_fields: dict[str, Any] | None = None


# --- Ledger ---
class Transaction(BaseModel):
    """One purchase or return row; batch totals are a copy taken when the batch was finalized."""

    model_config = ConfigDict(frozen=True)

    id: str
    distributor_id: str
    kind: Literal["purchase", "return"]
    product_code: str
    product_name: str
    quantity: int = Field(..., gt=0)
    value: float = Field(..., gt=0)
    date: dt.date
    batch_id: str
    batch_total_qty: int = Field(default=0, ge=0)
    batch_total_value: float = Field(default=0, ge=0)
    # Return-only
    confidence_rating: RiskRating | None = None
    approval_status: str | None = None
    return_reason: str | None = None
    risk_description: str | None = None
    rejection_reason: str | None = None
    rule_hits: list[RuleResult] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_return_fields(self) -> Transaction:
        return_fields = (
            self.confidence_rating,
            self.approval_status,
            self.return_reason,
            self.risk_description,
            self.rejection_reason,
        )
        if self.kind == "purchase":
            if any(f is not None for f in return_fields) or self.rule_hits:
                raise ValueError("purchase transactions do not carry risk/approval fields")
            return self
        if self.confidence_rating is None or self.approval_status is None:
            raise ValueError("return transactions need confidence_rating and approval_status")
        if self.approval_status not in APPROVAL_STATUS_VALUES:
            raise ValueError(f"approval_status must be one of {sorted(APPROVAL_STATUS_VALUES)}")
        return self

    @property
    def is_return(self) -> bool:
        return self.kind == "return"


class RiskAssessment(BaseModel):
    rating: RiskRating
    reasons: list[str]
    rule_hits: list[RuleResult] = []

    @property
    def description(self) -> str:
        return " ".join(self.reasons)


# --- Aggregation rows ---
class MonthlyPoint(BaseModel):
    period: str  # YYYY-MM
    purchase_qty: int
    return_qty: int
    return_rate: float


class ProductReturn(BaseModel):
    product_code: str
    product_name: str
    return_qty: int


class BatchPivotRow(BaseModel):
    batch_id: str
    purchase_qty: int
    purchase_val: float
    return_qty: int
    return_val: float
    return_rate: float


class ProductPivotRow(BaseModel):
    product_code: str
    product_name: str
    purchase_qty: int
    purchase_val: float
    return_qty: int
    return_val: float
    return_rate: float


class DistributorSummary(BaseModel):
    distributor: Distributor
    purchase_qty: int
    purchase_val: float
    return_qty: int
    return_val: float
    return_rate: float
    pending_count: int


class OverviewTotals(BaseModel):
    purchase_qty: int
    return_qty: int
    return_rate: float
    distributor_count: int
    pending_count: int


# --- API ---
class RejectRequest(BaseModel):
    """Body for POST /transactions/{id}/reject."""

    reason: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    query: str


class ChatResponse(BaseModel):
    intent: str
    answer: str


class OverviewResponse(BaseModel):
    year: str
    totals: OverviewTotals
    distributors: list[DistributorSummary]
    monthly: list[MonthlyPoint]
    average_return_rate: float
    top_products: list[ProductReturn]


class DistributorDetailResponse(BaseModel):
    distributor: Distributor
    insight: str
    transactions: list[Transaction]
    batches: list[BatchPivotRow]
    products: list[ProductPivotRow]
