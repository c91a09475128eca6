"""Pytest fixtures: temp config, seeded ledger, hand-built transactions."""

from __future__ import annotations

import os
import random
from datetime import date
from pathlib import Path

import pytest

# Env overrides would leak into every get_config() call.
_ENV_OVERRIDES = (
    "RRV_CONFIG_PATH",
    "RRV_SEED",
    "RRV_LOG_LEVEL",
    "RRV_ENV",
    "RRV_API_HOST",
    "RRV_API_PORT",
)
for _var in _ENV_OVERRIDES:
    os.environ.pop(_var, None)

from returns_review.config import get_config
from returns_review.generator import generate_ledger
from returns_review.ledger import Ledger
from returns_review.schemas import Distributor, Transaction


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    """Return path to a temporary config dir with default.yaml."""
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    (cfg_dir / "default.yaml").write_text(
        """
app:
  log_level: WARNING
generator:
  year: 2024
  batches_per_distributor: 5
  spike_probability: 0.1
  structuring: { distributor_id: D004, batch_index: 2 }
risk:
  high_multiplier: 2.5
  medium_multiplier: 1.5
reporting:
  output_dir: ./reports
"""
    )
    return str(cfg_dir / "default.yaml")


@pytest.fixture
def config(config_path: str) -> dict:
    return get_config(config_path)


@pytest.fixture
def ledger(config: dict) -> Ledger:
    """Generated ledger with a fixed seed."""
    return generate_ledger(config, rng=random.Random(7))


@pytest.fixture
def distributors() -> list[Distributor]:
    return [
        Distributor(id="D001", name="Alpha Pharma", avg_return_rate=0.02),
        Distributor(id="D002", name="Beta Drugstores", avg_return_rate=0.08),
    ]


@pytest.fixture
def make_purchase():
    def _make(
        id: str,
        qty: int = 10,
        value: float = 1000.0,
        batch_id: str = "B001-2024-01-1",
        distributor_id: str = "D001",
        product_code: str = "MED-001",
        day: date = date(2024, 1, 10),
    ) -> Transaction:
        return Transaction(
            id=id,
            distributor_id=distributor_id,
            kind="purchase",
            product_code=product_code,
            product_name=f"Product {product_code}",
            quantity=qty,
            value=value,
            date=day,
            batch_id=batch_id,
        )

    return _make


@pytest.fixture
def make_return():
    def _make(
        id: str,
        qty: int = 1,
        value: float = 100.0,
        batch_id: str = "B001-2024-01-1",
        distributor_id: str = "D001",
        product_code: str = "MED-001",
        day: date = date(2024, 1, 20),
        rating: str = "medium",
        status: str = "pending",
    ) -> Transaction:
        return Transaction(
            id=id,
            distributor_id=distributor_id,
            kind="return",
            product_code=product_code,
            product_name=f"Product {product_code}",
            quantity=qty,
            value=value,
            date=day,
            batch_id=batch_id,
            confidence_rating=rating,
            approval_status=status,
            return_reason="near expiry",
            risk_description="test",
        )

    return _make
