import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import logging

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import plotly.express as px

from budget_core import config
from budget_core.alerts import BudgetStatus, format_money
from budget_core.domain import CATEGORIES, EXPENSE, INCOME
from budget_core.errors import InvalidBudgetConfig, InvalidTransaction
from budget_core.filters import all_of, by_category, by_kind, iter_transactions
from budget_core.reports import GeminiReportGenerator, month_label
from budget_core.services import AdvisorService, BudgetService, record_notices
from budget_core.storage import KeyValueStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Budget Tracker", layout="wide")

COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#6366f1"]
STATUS_COLORS = {"Under Budget": "green", "Near Budget": "orange", "Over Budget": "red"}

if "service" not in st.session_state:
    config.ensure_data_directories()
    st.session_state.service = BudgetService(KeyValueStore(config.STORE_PATH))
if "report" not in st.session_state:
    st.session_state.report = None
if "report_failed" not in st.session_state:
    st.session_state.report_failed = False
if "notices" not in st.session_state:
    st.session_state.notices = []

service: BudgetService = st.session_state.service
settings = service.settings
summary = service.dashboard()


def money(value) -> str:
    return format_money(value, settings.currency)


def tx_to_df(tx_list):
    rows = [
        {
            "id": t.id,
            "date": pd.Timestamp(t.ts),
            "type": t.kind,
            "category": t.category,
            "amount": float(t.amount),
            "note": t.note,
        }
        for t in tx_list
    ]
    return pd.DataFrame(rows, columns=["id", "date", "type", "category", "amount", "note"])


if summary.alert.status is BudgetStatus.EXCEEDED:
    st.error(f"⚠️ {summary.alert.message}")
elif summary.alert.status is BudgetStatus.WARNING:
    st.warning(f"⚠️ {summary.alert.message}")

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "➕ Add", "🧾 History", "🤖 Smart Advisor", "⚙️ Settings"]
)
st.sidebar.caption(f"{summary.transaction_count} transactions")

if menu == "🏠 Dashboard":
    result = summary.aggregate
    k1, k2, k3 = st.columns(3)
    with k1:
        st.metric("Total Income", money(result.total_income))
    with k2:
        st.metric("Total Expenses", money(result.total_expense))
    with k3:
        st.metric("Net Savings", money(result.net_savings))

    st.subheader("Monthly Budget")
    st.caption(f"{money(result.total_expense)} of {money(service.budget.limit)}")
    st.progress(float(result.display_usage_ratio))
    if result.is_over_budget:
        st.error("You have exceeded your budget targets.")
    else:
        st.caption(f"{result.remaining_percent:.1f}% remaining")

    col_pie, col_bar = st.columns(2)
    with col_pie:
        st.subheader("Spending by Category")
        if result.category_breakdown:
            df_cat = pd.DataFrame(
                {"Category": list(result.category_breakdown), "Total": [float(v) for v in result.category_breakdown.values()]}
            )
            fig_cat = px.pie(
                df_cat,
                values="Total",
                names="Category",
                hole=0.5,
                color_discrete_sequence=COLORS,
            )
            fig_cat.update_layout(height=320, margin=dict(t=10, b=10, l=10, r=10))
            st.plotly_chart(fig_cat, use_container_width=True)
        else:
            st.info("No expense data yet")
    with col_bar:
        st.subheader("Income vs Expense")
        fig_ie = go.Figure()
        fig_ie.add_trace(go.Bar(name="Income", x=["Financials"], y=[float(result.total_income)], marker_color="#10b981"))
        fig_ie.add_trace(go.Bar(name="Expense", x=["Financials"], y=[float(result.total_expense)], marker_color="#ef4444"))
        fig_ie.update_layout(height=320, margin=dict(t=10, b=10, l=10, r=10))
        st.plotly_chart(fig_ie, use_container_width=True)

elif menu == "➕ Add":
    st.title("➕ Add Transaction")
    # notices from the last save survive the rerun below, shown once
    for level, msg in st.session_state.notices:
        getattr(st, level)(msg)
    st.session_state.notices = []

    kind =st.radio("Type", [EXPENSE, INCOME], horizontal=True, format_func=str.title)
    with st.form("add_form", clear_on_submit=True):
        amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        category = st.selectbox("Category", CATEGORIES[kind])
        note = st.text_input("Note", placeholder="What was this for?")
        submitted = st.form_submit_button("Save Transaction")

    if submitted:
        try:
            # number_input returns a float; go through str() to keep cents exact
            t, results = service.record(kind, f"{amount:.2f}", category, note)
        except InvalidTransaction as e:
            st.error(f"Could not save transaction: {e}")
        else:
            st.session_state.notices = record_notices(t, results, settings.currency)
            st.rerun()

elif menu == "🧾 History":
    st.title("🧾 History")
    col1, col2 = st.columns(2)
    with col1:
        kind_filter = st.selectbox("Type", ["all", INCOME, EXPENSE])
    with col2:
        category_options = sorted(set(CATEGORIES[INCOME]) | set(CATEGORIES[EXPENSE]))
        category_filter = st.selectbox("Category", ["all"] + category_options)

    preds = []
    if kind_filter != "all":
        preds.append(by_kind(kind_filter))
    if category_filter != "all":
        preds.append(by_category(category_filter))
    shown = list(iter_transactions(service.transactions, all_of(*preds)))

    if not shown:
        st.info("No transactions yet.")
    for t in shown:
        c1, c2, c3, c4 = st.columns([3, 3, 2, 1])
        with c1:
            st.write(f"**{t.category}**")
            if t.note:
                st.caption(t.note)
        with c2:
            st.caption(t.ts.strftime("%Y-%m-%d %H:%M"))
        with c3:
            sign = "+" if t.is_income else "-"
            st.write(f"{sign}{money(t.amount)}")
        with c4:
            if st.button("🗑", key=f"del_{t.id}"):
                service.remove(t.id)
                st.rerun()

    if shown:
        csv = tx_to_df(shown).to_csv(index=False)
        st.download_button("⬇ Download CSV", csv, file_name="transactions.csv", mime="text/csv")

elif menu == "🤖 Smart Advisor":
    st.title("🤖 Smart Advisor")
    st.caption("AI-generated insights, spending graphs and a breakdown table for this month.")

    if st.button("Generate Monthly Report"):
        advisor = AdvisorService(GeminiReportGenerator())
        transactions, budget = service.snapshot()
        with st.spinner("Analyzing financials..."):
            outcome = asyncio.run(advisor.monthly_report(transactions, budget, month_label()))
        st.session_state.report = outcome.get_or_else(None)
        st.session_state.report_failed = outcome.is_none()

    report = st.session_state.report
    if st.session_state.report_failed:
        st.error("The advisor could not produce a report. Please try again.")
    elif report is None:
        st.info(f"Generate a report to analyze your {summary.transaction_count} transactions.")
    else:
        st.markdown(f"**Status:** :{STATUS_COLORS[report.status]}[{report.status}]")
        st.write(f"\"{report.summary}\"")

        m1, m2, m3 = st.columns(3)
        m1.metric("Income", money(report.total_income))
        m2.metric("Expenses", money(report.total_expense))
        m3.metric("Net Savings", money(report.net_savings))

        if report.breakdown:
            df_rep = pd.DataFrame(
                [
                    {"Category": b.category, "Amount": float(b.amount), "Share": b.percentage}
                    for b in report.breakdown
                ]
            )
            fig_rep = px.bar(df_rep, x="Category", y="Amount", color="Category", color_discrete_sequence=COLORS)
            fig_rep.update_layout(showlegend=False, height=300, margin=dict(t=10, b=10, l=10, r=10))
            st.plotly_chart(fig_rep, use_container_width=True)
            st.table(df_rep)

        st.subheader("Tips")
        for tip in report.tips:
            st.markdown(f"- {tip}")

        if st.button(f"📧 Email report to {settings.email}"):
            logging.getLogger(__name__).info("Monthly report queued for %s", settings.email)
            st.success("Report sent!")

elif menu == "⚙️ Settings":
    st.title("⚙️ Settings")
    with st.form("settings_form"):
        limit = st.number_input("Monthly Budget Limit", min_value=0.0, value=float(service.budget.limit), step=50.0)
        threshold = st.slider(
            "Alert threshold (%)", min_value=0, max_value=100, value=int(service.budget.alert_threshold_percent)
        )
        email = st.text_input("Email for alerts", value=settings.email)
        currency = st.text_input("Currency", value=settings.currency)
        st.caption("We will send budget alerts and monthly reports here.")
        saved = st.form_submit_button("Save Changes")

    if saved:
        try:
            service.update_budget(limit=f"{limit:.2f}", alert_threshold_percent=threshold)
        except InvalidBudgetConfig as e:
            st.error(f"Budget not saved: {e}")
        else:
            service.update_settings(email=email.strip(), currency=currency.strip().upper())
            st.success("Settings saved")
            st.rerun()
