"""Typer CLI: generate, summary, pivot, detail, report, serve-api."""

from __future__ import annotations

import csv
import json
import os
import random
import uuid
from pathlib import Path

import typer

from returns_review.aggregation import (
    ALL,
    batch_pivot,
    distributor_summary,
    filter_by_year,
    overview_totals,
    product_pivot,
)
from returns_review.config import AppSettings, get_config
from returns_review.generator import generate_ledger
from returns_review.ledger import DistributorNotFoundError, Ledger
from returns_review.logging_config import setup_logging
from returns_review.reporting import generate_review_report
from returns_review.review_context import set_review_context
from returns_review.schemas import Transaction

app = typer.Typer(help="Distributor returns review CLI")


def _build_ledger(config: str | None, seed: int | None) -> Ledger:
    cfg = get_config(config)
    setup_logging(cfg.get("app", {}).get("log_level", "INFO"))
    set_review_context(str(uuid.uuid4()), os.environ.get("RRV_REVIEWER", "cli"))
    rng = random.Random(seed) if seed is not None else None
    return generate_ledger(cfg, rng=rng)


def _pct(rate: float) -> str:
    return f"{rate * 100:.1f}%"


def _year_rows(rows: list[Transaction], year: str) -> list[Transaction]:
    if year.lower() != ALL and not year.isdigit():
        typer.echo("--year must be a 4-digit year or 'all'", err=True)
        raise typer.Exit(1)
    return filter_by_year(rows, year)


@app.command()
def generate(
    output: str = typer.Option("data/ledger.json", "--output", "-o", help=".json or .csv path"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for a repeatable ledger"),
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Generate a synthetic ledger and write it to JSON or CSV."""
    ledger = _build_ledger(config, seed)
    path = Path(output)
    if path.suffix.lower() not in (".json", ".csv"):
        typer.echo("Output must be .json or .csv", err=True)
        raise typer.Exit(1)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [t.model_dump(mode="json") for t in ledger.transactions]
    if path.suffix.lower() == ".json":
        payload = {
            "distributors": [d.model_dump() for d in ledger.distributors],
            "transactions": rows,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    else:
        # Rule evidence is nested; the CSV keeps the flat columns only.
        rows = [t.model_dump(mode="json", exclude={"rule_hits"}) for t in ledger.transactions]
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=list(rows[0].keys()) if rows else [])
            w.writeheader()
            w.writerows(rows)
    returns = sum(1 for t in ledger.transactions if t.is_return)
    typer.echo(f"Wrote {len(ledger)} transactions ({returns} returns) to {path}")


@app.command()
def summary(
    year: str = typer.Option(ALL, "--year", "-y", help="Calendar year or 'all'"),
    seed: int | None = typer.Option(None, "--seed"),
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Print headline totals and distributors ranked by return rate."""
    ledger = _build_ledger(config, seed)
    rows = _year_rows(ledger.transactions, year)
    totals = overview_totals(ledger.distributors, rows)
    typer.echo(
        f"Purchased {totals.purchase_qty} | Returned {totals.return_qty} | "
        f"Return rate {_pct(totals.return_rate)} | Pending {totals.pending_count}"
    )
    for s in distributor_summary(ledger.distributors, rows):
        typer.echo(
            f"  {s.distributor.id} {s.distributor.name:<40} "
            f"rate={_pct(s.return_rate):>6} pending={s.pending_count}"
        )


@app.command()
def pivot(
    by: str = typer.Option("batch", "--by", help="batch | product"),
    distributor: str | None = typer.Option(None, "--distributor", "-d", help="Distributor id"),
    year: str = typer.Option(ALL, "--year", "-y"),
    seed: int | None = typer.Option(None, "--seed"),
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Print a batch or product pivot, highest return rate first."""
    if by not in ("batch", "product"):
        typer.echo("--by must be batch or product", err=True)
        raise typer.Exit(1)
    ledger = _build_ledger(config, seed)
    try:
        rows = (
            ledger.distributor_transactions(distributor) if distributor else ledger.transactions
        )
    except DistributorNotFoundError as err:
        typer.echo(str(err), err=True)
        raise typer.Exit(1) from err
    rows = _year_rows(rows, year)
    if by == "batch":
        for b in batch_pivot(rows):
            typer.echo(
                f"{b.batch_id:<18} purchased={b.purchase_qty:>4} returned={b.return_qty:>3} "
                f"rate={_pct(b.return_rate)}"
            )
    else:
        for p in product_pivot(rows):
            typer.echo(
                f"{p.product_code} {p.product_name:<48} purchased={p.purchase_qty:>4} "
                f"returned={p.return_qty:>3} rate={_pct(p.return_rate)}"
            )


@app.command()
def detail(
    distributor_id: str = typer.Argument(..., help="Distributor id, e.g. D004"),
    kind: str = typer.Option("return", "--kind", "-k", help="all | purchase | return"),
    seed: int | None = typer.Option(None, "--seed"),
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Print one distributor's transaction log, newest first."""
    ledger = _build_ledger(config, seed)
    try:
        distributor = ledger.get_distributor(distributor_id)
        rows = ledger.distributor_transactions(distributor_id, kind)
    except DistributorNotFoundError as err:
        typer.echo(str(err), err=True)
        raise typer.Exit(1) from err
    typer.echo(f"{distributor.id} {distributor.name} (baseline {_pct(distributor.avg_return_rate)})")
    for t in rows:
        line = f"  {t.id:<6} {t.date} {t.batch_id:<18} {t.kind:<8} qty={t.quantity:>3} value={t.value:,.0f}"
        if t.is_return:
            line += f" rating={t.confidence_rating} status={t.approval_status}"
        typer.echo(line)


@app.command()
def report(
    output_dir: str | None = typer.Option(None, "--output", "-o", help="Output directory"),
    pending_only: bool = typer.Option(False, "--pending-only", help="Only pending returns"),
    seed: int | None = typer.Option(None, "--seed"),
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Write the returns review report (JSON + CSV)."""
    ledger = _build_ledger(config, seed)
    cfg = get_config(config)
    out = output_dir or cfg.get("reporting", {}).get("output_dir", "./reports")
    jp, cp = generate_review_report(ledger, out, pending_only=pending_only)
    typer.echo(f"Reports: {jp}, {cp}")


@app.command("serve-api")
def serve_api(
    config: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
    host: str | None = typer.Option(None, "--host", "-h", help="Bind host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
) -> None:
    """Start the FastAPI server (one generated ledger per server process)."""
    if config:
        os.environ["RRV_CONFIG_PATH"] = config
    cfg = get_config(config)
    settings = AppSettings()
    api_cfg = cfg.get("api", {})
    h = host or settings.api_host or api_cfg.get("host", "0.0.0.0")
    p = port or settings.api_port or int(api_cfg.get("port", 8000))
    import uvicorn

    uvicorn.run("returns_review.api:app", host=h, port=p, reload=False)


if __name__ == "__main__":
    app()
