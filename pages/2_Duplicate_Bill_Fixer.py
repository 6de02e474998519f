import streamlit as st
import pandas as pd

from data_integrator import StoreError, get_store
from element_component import confirmation_dialog
from services.bill_numbering import diagnose_duplicates, fix_duplicates, preview_duplicate_fix
from utils.formatting import format_date_display

st.set_page_config(
    page_title="Duplicate Bill Fixer",
    page_icon="🩹"
)

st.sidebar.header("🩹 Duplicate Bill Fixer")

for k in ("duplicate_bills", "duplicate_plan", "duplicate_fixed"):
    st.session_state.setdefault(k, None)


def fixes_frame(fixes):
    return pd.DataFrame([
        {
            "Customer": f.customer_name,
            "Old ID": f.old_bill_id,
            "New ID": f.new_bill_id,
            "Old #": f.old_bill_number,
            "New #": f.new_bill_number,
        }
        for f in fixes
    ])


def run_fix():
    try:
        result = fix_duplicates(get_store())
    except StoreError as e:
        return False, f"Could not read bills: {e}", None
    return True, f"{result.success} renumbered, {result.failed} failed", result


try:
    store = get_store()
except RuntimeError as e:
    st.error(str(e))
    st.stop()

st.title("Duplicate Bill Fixer")
st.write("The earliest bill keeps a shared id; later bills get the next free number.")

if st.button("Find duplicates"):
    try:
        st.session_state["duplicate_bills"] = diagnose_duplicates(store)
        st.session_state["duplicate_plan"] = preview_duplicate_fix(store)
        st.session_state["duplicate_fixed"] = None
    except StoreError as e:
        st.error(f"Could not read bills: {e}")
        st.stop()

duplicates = st.session_state["duplicate_bills"]
plan = st.session_state["duplicate_plan"]

if duplicates is not None:
    if not duplicates:
        st.success("No duplicate bill ids")
    else:
        st.dataframe(pd.DataFrame([
            {
                "Bill ID": s.bill_id,
                "Bill #": s.bill_number,
                "Customer": s.customer,
                "Date": format_date_display(s.date),
            }
            for s in duplicates
        ]), hide_index=True)

if plan:
    st.subheader("Planned changes")
    st.dataframe(fixes_frame(plan), hide_index=True)

    if st.button("Fix duplicates", type="primary"):
        confirmation_dialog({"Bills to renumber": len(plan)}, run_fix, "duplicate_fixed")

result = st.session_state["duplicate_fixed"]
if result is not None:
    if result.failed:
        st.error(f"{result.success} renumbered, {result.failed} failed")
        st.dataframe(pd.DataFrame([
            {"Document": o.id, "Error": o.message} for o in result.outcomes if not o.ok
        ]), hide_index=True)
    else:
        st.success(f"{result.success} bill(s) renumbered")
    if result.fixes:
        st.dataframe(fixes_frame(result.fixes), hide_index=True)
