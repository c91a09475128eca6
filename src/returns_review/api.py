"""FastAPI app: dashboard aggregates, distributor detail and the approval workflow."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from returns_review import GENERATOR_VERSION, __version__
from returns_review.aggregation import (
    ALL,
    batch_pivot,
    distributor_summary,
    filter_by_product,
    filter_by_year,
    monthly_series,
    overall_return_rate,
    overview_totals,
    product_pivot,
    top_returned_products,
)
from returns_review.config import get_config
from returns_review.generator import generate_ledger
from returns_review.insights import answer, distributor_insight
from returns_review.ledger import DistributorNotFoundError, Ledger
from returns_review.logging_config import setup_logging
from returns_review.review_context import set_review_context
from returns_review.schemas import (
    ChatRequest,
    ChatResponse,
    DistributorDetailResponse,
    MonthlyPoint,
    OverviewResponse,
    RejectRequest,
    Transaction,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    setup_logging(config.get("app", {}).get("log_level", "INFO"))
    app.state.config = config
    # One ledger per app instance; tests may install their own before startup.
    if getattr(app.state, "ledger", None) is None:
        app.state.ledger = generate_ledger(config)
    yield


app = FastAPI(title="Returns Review API", version=__version__, lifespan=lifespan)


class ReviewContextMiddleware(BaseHTTPMiddleware):
    """Bind request id and reviewer per request; echo X-Request-ID in response."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_review_context(request_id, request.headers.get("X-Reviewer") or "anonymous")
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(ReviewContextMiddleware)


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def _top_n(request: Request) -> int:
    config = getattr(request.app.state, "config", None) or {}
    return int(config.get("dashboard", {}).get("top_n", 5))


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok", "version": __version__, "generator_version": GENERATOR_VERSION}


@app.get("/overview", response_model=OverviewResponse)
def overview(
    request: Request,
    year: str = Query(ALL, description="Calendar year or 'all'"),
    ledger: Ledger = Depends(get_ledger),
) -> OverviewResponse:
    """Headline totals, distributor list, monthly trend and top returned products."""
    rows = _year_rows(ledger.transactions, year)
    return OverviewResponse(
        year=year,
        totals=overview_totals(ledger.distributors, rows),
        distributors=distributor_summary(ledger.distributors, rows),
        monthly=monthly_series(rows),
        average_return_rate=overall_return_rate(rows),
        top_products=top_returned_products(rows, n=_top_n(request)),
    )


@app.get("/distributors/{distributor_id}", response_model=DistributorDetailResponse)
def distributor_detail(
    distributor_id: str,
    year: str = Query(ALL),
    kind: str = Query("return", pattern="^(all|purchase|return)$"),
    ledger: Ledger = Depends(get_ledger),
) -> DistributorDetailResponse:
    """Transaction log (newest first), batch pivot and product pivot for one distributor."""
    try:
        distributor = ledger.get_distributor(distributor_id)
        own = _year_rows(ledger.distributor_transactions(distributor_id), year)
    except DistributorNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    return DistributorDetailResponse(
        distributor=distributor,
        insight=distributor_insight(distributor),
        transactions=[t for t in own if kind == ALL or t.kind == kind],
        batches=batch_pivot(own),
        products=product_pivot(own),
    )


@app.get("/products/{product_code}/trend", response_model=list[MonthlyPoint])
def product_trend(
    product_code: str,
    year: str = Query(ALL),
    ledger: Ledger = Depends(get_ledger),
) -> list[MonthlyPoint]:
    rows = _year_rows(ledger.transactions, year)
    return monthly_series(filter_by_product(rows, product_code))


@app.post("/transactions/{transaction_id}/approve", response_model=Transaction)
def approve_transaction(transaction_id: str, ledger: Ledger = Depends(get_ledger)) -> Transaction:
    """Approve a pending return. Non-pending returns are returned unchanged."""
    _require_return(ledger, transaction_id)
    ledger.approve(transaction_id)
    return ledger.get_transaction(transaction_id)


@app.post("/transactions/{transaction_id}/reject", response_model=Transaction)
def reject_transaction(
    transaction_id: str, body: RejectRequest, ledger: Ledger = Depends(get_ledger)
) -> Transaction:
    """Reject a pending return with a reason. Non-pending returns are returned unchanged."""
    _require_return(ledger, transaction_id)
    ledger.reject(transaction_id, body.reason)
    return ledger.get_transaction(transaction_id)


@app.post("/chat", response_model=ChatResponse)
def chat(body: ChatRequest, ledger: Ledger = Depends(get_ledger)) -> ChatResponse:
    intent, text = answer(body.query, ledger)
    return ChatResponse(intent=intent.value, answer=text)


def _year_rows(transactions: list[Transaction], year: str) -> list[Transaction]:
    if year != ALL and not year.isdigit():
        raise HTTPException(status_code=400, detail="year must be a 4-digit year or 'all'")
    return filter_by_year(transactions, year)


def _require_return(ledger: Ledger, transaction_id: str) -> Transaction:
    txn = ledger.get_transaction(transaction_id)
    if txn is None or not txn.is_return:
        raise HTTPException(status_code=404, detail="Return transaction not found")
    return txn
