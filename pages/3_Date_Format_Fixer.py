import streamlit as st
import pandas as pd

from data_integrator import StoreError, get_store
from element_component import confirmation_dialog
from services.date_format_service import DATE_FIELDS, check_date_formats, fix_date_formats

st.set_page_config(
    page_title="Date Format Fixer",
    page_icon="📅"
)

st.sidebar.header("📅 Date Format Fixer")

st.session_state.setdefault("date_check", None)
st.session_state.setdefault("date_fix_result", None)


def run_date_fix():
    try:
        result = fix_date_formats(get_store())
    except StoreError as e:
        return False, f"Could not read bills: {e}", None
    return True, f"{result.success} fixed", result


try:
    store = get_store()
except RuntimeError as e:
    st.error(str(e))
    st.stop()

st.title("Date Format Fixer")
st.write("Convert bill dates stored as {seconds, nanoseconds} objects back into timestamps.")

if st.button("Check dates"):
    try:
        st.session_state["date_check"] = check_date_formats(store)
        st.session_state["date_fix_result"] = None
    except StoreError as e:
        st.error(f"Could not read bills: {e}")
        st.stop()

check = st.session_state["date_check"]
if check:
    c1, c2, c3 = st.columns(3)
    c1.metric("Total", check.total)
    c2.metric("Need fix", check.needs_fix)
    c3.metric("Correct", check.correct)

    only_broken = st.toggle("Only show bills that need a fix", value=True)
    rows = [
        {"Bill ID": b.bill_id, **{name: b.field_types[name] for name in DATE_FIELDS}}
        for b in check.bills
        if b.needs_fix or not only_broken
    ]
    st.dataframe(pd.DataFrame(rows, columns=["Bill ID", *DATE_FIELDS]), hide_index=True)

    if st.button("Fix dates", type="primary", disabled=check.needs_fix == 0):
        confirmation_dialog({"Bills to fix": check.needs_fix}, run_date_fix, "date_fix_result")

result = st.session_state["date_fix_result"]
if result:
    st.success(f"Fixed {result.success}, skipped {result.skipped}, failed {result.failed}")
    if result.failed:
        st.error("Some bills could not be updated")
    st.dataframe(pd.DataFrame([
        {"Bill ID": d.bill_id, "Action": d.action, "Reason": d.reason} for d in result.details
    ]), hide_index=True)
