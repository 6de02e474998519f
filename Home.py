import streamlit as st
from datetime import date

from config import configure_logging, load_config
from data_integrator import StoreError, get_store
from services.income_expense_service import compute_monthly_income_expense
from utils.formatting import format_rupee

configure_logging(load_config())

st.set_page_config(
    page_title="Couture Back Office",
    page_icon="🧵"
)

st.sidebar.header("🧵 Couture Back Office")

TREND_ICON = {"up": "📈", "down": "📉", "neutral": "➖"}

st.title("Monthly Income & Expense")

today = date.today()
col_year, col_month = st.columns(2)
with col_year:
    year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year, step=1)
with col_month:
    month = st.selectbox("Month", list(range(1, 13)), index=today.month - 1,
                         format_func=lambda m: date(2000, m, 1).strftime("%B"))

try:
    summary = compute_monthly_income_expense(get_store(), int(year), int(month))
except (StoreError, RuntimeError) as e:
    st.error(f"Could not load figures: {e}")
    st.stop()

c1, c2, c3 = st.columns(3)
c1.metric("Income", format_rupee(summary.total_income))
c2.metric("Expenses", format_rupee(summary.total_expenses))
c3.metric("Net Profit", format_rupee(summary.net_profit),
          delta=f"{summary.profit_margin:.1f}% {TREND_ICON[summary.trend]}")

st.caption(
    f"Cost of goods: {format_rupee(summary.cogs)} · "
    f"Staff salaries: {format_rupee(summary.salary_expense)}"
)
