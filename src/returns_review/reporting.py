"""Review report generation (JSON + CSV) for every return in a ledger."""

from __future__ import annotations

import csv
import json
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from returns_review import GENERATOR_VERSION
from returns_review.aggregation import overview_totals
from returns_review.ledger import Ledger
from returns_review.logging_config import get_logger
from returns_review.review_context import get_request_id, get_reviewer

logger = get_logger(__name__)

CSV_FIELDS = [
    "transaction_id",
    "distributor_id",
    "batch_id",
    "date",
    "product_code",
    "quantity",
    "value",
    "batch_total_qty",
    "batch_total_value",
    "confidence_rating",
    "approval_status",
    "return_reason",
    "risk_description",
    "rule_ids",
    "rejection_reason",
]


def generate_review_report(
    ledger: Ledger,
    output_dir: str | Path,
    output_prefix: str = "review",
    pending_only: bool = False,
) -> tuple[str, str]:
    """
    Write every return (or only pending ones) with rating, status, reasons and rule evidence.
    The CSV carries rule ids only; the JSON keeps each hit with its evidence fields.
    Returns (path_json, path_csv).
    """
    start = time.perf_counter()
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    ts_suffix = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    json_path = path / f"{output_prefix}_{ts_suffix}.json"
    csv_path = path / f"{output_prefix}_{ts_suffix}.csv"

    records: list[dict[str, Any]] = []
    for t in ledger.transactions:
        if not t.is_return:
            continue
        if pending_only and t.approval_status != "pending":
            continue
        records.append(
            {
                "transaction_id": t.id,
                "distributor_id": t.distributor_id,
                "batch_id": t.batch_id,
                "date": t.date.isoformat(),
                "product_code": t.product_code,
                "quantity": t.quantity,
                "value": t.value,
                "batch_total_qty": t.batch_total_qty,
                "batch_total_value": t.batch_total_value,
                "confidence_rating": t.confidence_rating,
                "approval_status": t.approval_status,
                "return_reason": t.return_reason,
                "risk_description": t.risk_description,
                "rule_ids": ";".join(h.rule_id for h in t.rule_hits),
                "rule_hits": [h.model_dump() for h in t.rule_hits],
                "rejection_reason": t.rejection_reason,
            }
        )

    totals = overview_totals(ledger.distributors, ledger.transactions)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "generated_at": datetime.now(UTC).isoformat(),
                "generator_version": GENERATOR_VERSION,
                "request_id": get_request_id(),
                "reviewer": get_reviewer(),
                "totals": totals.model_dump(),
                "returns": records,
            },
            f,
            indent=2,
        )

    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction="ignore")
        w.writeheader()
        w.writerows(records)

    logger.info(
        "Review report written: %d returns in %.3fs (%s)",
        len(records),
        time.perf_counter() - start,
        json_path.name,
    )
    return str(json_path), str(csv_path)
