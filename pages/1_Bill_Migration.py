import streamlit as st
import pandas as pd

from data_integrator import StoreError, get_store
from element_component import confirmation_dialog
from services.bill_numbering import (
    diagnose_bills,
    execute_migration,
    list_bills_by_number,
    preview_migration,
)
from utils.formatting import format_date_display

st.set_page_config(
    page_title="Bill Migration",
    page_icon="🔢"
)

st.sidebar.header("🔢 Bill Migration")

for k in ("diagnosis", "migration_plan", "migration_result"):
    st.session_state.setdefault(k, None)


def summaries_frame(summaries):
    return pd.DataFrame([
        {
            "Bill ID": s.bill_id,
            "Bill #": s.bill_number,
            "Customer": s.customer,
            "Date": format_date_display(s.date),
            "Format": s.format.value,
        }
        for s in summaries
    ])


def run_migration():
    try:
        result = execute_migration(get_store())
    except StoreError as e:
        return False, f"Could not read bills: {e}", None
    msg = f"{result.success} updated, {result.failed} failed"
    return True, msg, result


try:
    store = get_store()
except RuntimeError as e:
    st.error(str(e))
    st.stop()

st.title("Bill Number Migration")
st.write("Renumber every bill as Bill001, Bill002, ... in date order.")

# -------------------------------------------------------------------
# Step 1: Diagnose
# -------------------------------------------------------------------

st.subheader("1. Diagnose")
if st.button("Diagnose bills"):
    try:
        st.session_state["diagnosis"] = diagnose_bills(store)
        st.session_state["migration_plan"] = None
        st.session_state["migration_result"] = None
    except StoreError as e:
        st.error(f"Could not read bills: {e}")
        st.stop()

diagnosis = st.session_state["diagnosis"]
if diagnosis:
    cols = st.columns(len(diagnosis.formats) + 1)
    cols[0].metric("Total", diagnosis.total)
    for col, (fmt, count) in zip(cols[1:], diagnosis.formats.items()):
        col.metric(fmt.value.title(), count)

    if diagnosis.duplicates:
        st.warning(f"Duplicate bill ids: {', '.join(diagnosis.duplicates)}")
    if diagnosis.invalid_dates:
        st.warning(f"{len(diagnosis.invalid_dates)} bill(s) have no valid date and will be numbered last")
    if diagnosis.unreadable:
        st.warning(
            f"{len(diagnosis.unreadable)} bill(s) have line items or payments that could not be read: "
            + ", ".join(diagnosis.unreadable)
        )

    st.dataframe(summaries_frame(diagnosis.bills), hide_index=True)

# -------------------------------------------------------------------
# Step 2: Preview
# -------------------------------------------------------------------

st.subheader("2. Preview")
if st.button("Preview changes", disabled=diagnosis is None):
    try:
        st.session_state["migration_plan"] = preview_migration(store)
    except StoreError as e:
        st.error(f"Could not read bills: {e}")
        st.stop()

plan = st.session_state["migration_plan"]
if plan:
    if not plan.changes:
        st.success(f"All {plan.total} bills are already numbered correctly")
    else:
        st.write(f"{len(plan.changes)} of {plan.total} bills will change")
        st.dataframe(pd.DataFrame([
            {
                "Old ID": c.old_bill_id,
                "New ID": c.new_bill_id,
                "Bill #": c.bill_number,
                "Date": format_date_display(c.date),
            }
            for c in plan.changes
        ]), hide_index=True)

# -------------------------------------------------------------------
# Step 3: Execute
# -------------------------------------------------------------------

st.subheader("3. Execute")
if st.button("Run migration", type="primary", disabled=not (plan and plan.changes)):
    confirmation_dialog(
        {"Bills to update": len(plan.changes), "Total bills": plan.total},
        run_migration,
        "migration_result",
    )

result = st.session_state["migration_result"]
if result:
    if result.failed:
        st.error(f"{result.success} updated, {result.failed} failed")
        st.dataframe(pd.DataFrame([
            {"Document": o.id, "Error": o.message} for o in result.outcomes if not o.ok
        ]), hide_index=True)
    else:
        st.success(f"{result.success} bills updated")

# -------------------------------------------------------------------
# Step 4: Verify
# -------------------------------------------------------------------

st.subheader("4. Verify")
if st.button("Verify numbering", disabled=result is None):
    try:
        st.dataframe(summaries_frame(list_bills_by_number(store)), hide_index=True)
    except StoreError as e:
        st.error(f"Could not read bills: {e}")
