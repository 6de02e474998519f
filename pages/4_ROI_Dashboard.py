import streamlit as st
import pandas as pd
from datetime import date, datetime, time, timedelta, timezone

from data_integrator import StoreError, get_store
from services.roi_service import compute_period_roi, top_performing_staff
from utils.formatting import format_rupee

st.set_page_config(
    page_title="ROI Dashboard",
    page_icon="💹"
)

st.sidebar.header("💹 ROI Dashboard")


def roi_frame(results, extra):
    rows = []
    for r in results:
        row = {
            "Name": r.name,
            "Category": r.category,
            "Income": format_rupee(r.total_income),
            "Cost": format_rupee(r.total_cost),
            "Profit": format_rupee(r.net_profit),
            "ROI %": round(r.roi_percentage, 2),
            "Items": r.item_count,
        }
        for title, attr in extra.items():
            row[title] = getattr(r, attr)
        rows.append(row)
    return pd.DataFrame(rows)


try:
    store = get_store()
except RuntimeError as e:
    st.error(str(e))
    st.stop()

st.title("Return on Investment")

today = date.today()
period_range = st.date_input(
    "Period",
    value=(today.replace(day=1), today),
    max_value=today + timedelta(days=365),
)
if len(period_range) != 2:
    st.info("Pick a start and an end date")
    st.stop()

start_day, end_day = period_range

start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)

try:
    period = compute_period_roi(store, start, end)
    top_staff = top_performing_staff(store, limit=5, start=start, end=end)
except StoreError as e:
    st.error(f"Could not load bills: {e}")
    st.stop()

c1, c2, c3, c4 = st.columns(4)
c1.metric("Income", format_rupee(period.total_income))
c2.metric("Cost", format_rupee(period.total_cost))
c3.metric("Net Profit", format_rupee(period.net_profit))
c4.metric("ROI", f"{period.roi_percentage:.2f}%")

tab_staff, tab_inventory, tab_service = st.tabs(["Staff", "Inventory", "Services"])

with tab_staff:
    st.dataframe(roi_frame(period.staff_roi, {"Billing Rate": "hourly_rate"}), hide_index=True)
    if top_staff:
        st.caption("Top performers: " + ", ".join(f"{s.name} ({s.roi_percentage:.1f}%)" for s in top_staff))

with tab_inventory:
    st.dataframe(roi_frame(period.inventory_roi, {
        "Units Sold": "units_sold",
        "Turnover": "turnover_rate",
    }), hide_index=True)

with tab_service:
    st.dataframe(roi_frame(period.service_roi, {
        "Times Provided": "times_provided",
        "Avg Rate": "avg_rate",
    }), hide_index=True)
