#!/usr/bin/env python3
"""
Returns Review Dashboard – overview, distributor drill-down and manual approvals.
Run: streamlit run scripts/dashboard.py
The ledger lives in the Streamlit session; a browser refresh keeps it, a new session regenerates it.
"""

from __future__ import annotations

import os

import pandas as pd
import streamlit as st

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
    trend_level,
)
from returns_review.config import get_config
from returns_review.generator import generate_ledger
from returns_review.insights import answer, distributor_insight
from returns_review.ledger import DistributorNotFoundError, Ledger

YEARS = [ALL, "2024", "2023"]
CONFIG_PATH = os.environ.get("RRV_CONFIG_PATH")


def _ledger() -> Ledger:
    if "ledger" not in st.session_state:
        st.session_state["ledger"] = generate_ledger(get_config(CONFIG_PATH))
    return st.session_state["ledger"]


def _frame(rows) -> pd.DataFrame:
    return pd.DataFrame([r.model_dump() for r in rows])


def _overview(ledger: Ledger, year: str) -> None:
    rows = filter_by_year(ledger.transactions, year)
    totals = overview_totals(ledger.distributors, rows)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Distributors", totals.distributor_count)
    c2.metric("Purchased units", totals.purchase_qty)
    c3.metric("Return rate", f"{totals.return_rate:.1%}")
    c4.metric("Pending review", totals.pending_count)
    st.divider()

    product = st.session_state.get("product")
    chart_rows = filter_by_product(rows, product) if product else rows
    series = monthly_series(chart_rows)
    avg = overall_return_rate(chart_rows)
    st.subheader(f"Return rate by month{' – ' + product if product else ''}")
    if series:
        df = _frame(series).set_index("period")
        df["average"] = avg
        st.line_chart(df[["return_rate", "average"]])
        df["level"] = [trend_level(r, avg) for r in df["return_rate"]]
        st.dataframe(df, width="stretch")
    else:
        st.info("No chart data.")

    top = top_returned_products(rows)
    if top:
        st.subheader("Most returned products")
        st.bar_chart(_frame(top).set_index("product_name")["return_qty"])
        codes = [""] + [p.product_code for p in top]
        st.session_state["product"] = st.selectbox("Trend for product", codes) or None

    st.subheader("Distributors by return rate")
    for s in distributor_summary(ledger.distributors, rows):
        cols = st.columns([3, 1, 1, 1])
        cols[0].write(f"**{s.distributor.name}** ({s.distributor.id})")
        cols[1].write(f"{s.return_rate:.1%}")
        cols[2].write(f"{s.pending_count} pending")
        if cols[3].button("Details", key=f"open_{s.distributor.id}"):
            st.session_state["distributor"] = s.distributor.id
            st.rerun()


def _detail(ledger: Ledger, distributor_id: str, highlight_rate: float) -> None:
    try:
        distributor = ledger.get_distributor(distributor_id)
    except DistributorNotFoundError as err:
        st.error(str(err))
        return
    if st.button("← Back"):
        del st.session_state["distributor"]
        st.rerun()
    st.header(distributor.name)
    st.caption(distributor_insight(distributor))

    tab_log, tab_batch, tab_product = st.tabs(["Log", "Batches", "Products"])
    own = ledger.distributor_transactions(distributor_id)
    with tab_log:
        kind = st.radio("Type", [ALL, "purchase", "return"], index=2, horizontal=True)
        for t in (r for r in own if kind == ALL or r.kind == kind):
            cols = st.columns([2, 2, 3, 2, 2])
            cols[0].write(f"{t.id}  \n{t.batch_id}")
            cols[1].write(f"{t.date} · {t.kind}")
            cols[2].write(f"{t.product_name} ×{t.quantity} · ${t.value:,.0f}")
            if t.is_return:
                cols[3].write(f"{t.confidence_rating} · {t.approval_status}")
                if t.approval_status == "pending":
                    if cols[4].button("Approve", key=f"approve_{t.id}"):
                        ledger.approve(t.id)
                        st.rerun()
                    reason = cols[4].text_input("Reject reason", key=f"reason_{t.id}")
                    if reason and cols[4].button("Reject", key=f"reject_{t.id}"):
                        ledger.reject(t.id, reason)
                        st.rerun()
    with tab_batch:
        df = _frame(batch_pivot(own))
        if not df.empty:
            df["flagged"] = df["return_rate"] > highlight_rate
        st.dataframe(df, width="stretch", hide_index=True)
    with tab_product:
        st.dataframe(_frame(product_pivot(own)), width="stretch", hide_index=True)


def main() -> None:
    st.set_page_config(page_title="Returns Review", page_icon="💊", layout="wide")
    config = get_config(CONFIG_PATH)
    ledger = _ledger()
    with st.sidebar:
        year = st.selectbox("Period", YEARS, index=0)
        query = st.text_input("Ask about returns")
        if query:
            st.write(answer(query, ledger)[1])

    highlight = float(config.get("dashboard", {}).get("batch_highlight_rate", 0.09))
    if "distributor" in st.session_state:
        _detail(ledger, st.session_state["distributor"], highlight)
    else:
        st.title("Return Approval Dashboard")
        _overview(ledger, year)


if __name__ == "__main__":
    main()
