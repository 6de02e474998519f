import streamlit as st
import pandas as pd

from data_integrator import StoreError, get_store
from domain.models import PaymentType
from element_component import confirmation_dialog
from services.bill_numbering import load_bills, sort_bills
from services.billing_service import (
    calculate_bill_status,
    customer_stats,
    new_payment_record,
    record_payment,
)
from services.export_service import default_bill_columns, export_bills_xlsx
from services.settings_service import load_business_settings
from services.share_links import payment_note, upi_link, whatsapp_link
from utils.formatting import format_date_display, format_rupee

st.set_page_config(
    page_title="Billing & Export",
    page_icon="🧾"
)

st.sidebar.header("🧾 Billing & Export")

st.session_state.setdefault("payment_saved", None)

try:
    store = get_store()
    bills = sort_bills(load_bills(store))
    settings = load_business_settings(store)
except (StoreError, RuntimeError) as e:
    st.error(f"Could not load bills: {e}")
    st.stop()

st.title("Bills")

if st.session_state["payment_saved"]:
    saved = st.session_state["payment_saved"]
    st.success(f"Payment recorded on {saved.bill_id}, status {saved.status.value}")
    st.session_state["payment_saved"] = None

st.dataframe(pd.DataFrame([
    {
        "Bill ID": b.bill_id or "N/A",
        "Customer": b.customer_name,
        "Date": format_date_display(b.date),
        "Total": format_rupee(b.total_amount),
        "Paid": format_rupee(b.paid_amount),
        "Balance": format_rupee(b.balance),
        "Status": calculate_bill_status(b.total_amount, b.paid_amount).value,
    }
    for b in bills
]), hide_index=True)

# -------------------------------------------------------------------
# Export
# -------------------------------------------------------------------

st.subheader("Export to Excel")
columns = default_bill_columns()
chosen = st.multiselect(
    "Columns",
    [c.title for c in columns],
    default=[c.title for c in columns if c.enabled],
)
for c in columns:
    c.enabled = c.title in chosen

try:
    filename, content = export_bills_xlsx(bills, columns)
except ValueError as e:
    st.error(str(e))
else:
    st.download_button(
        "Download .xlsx",
        data=content,
        file_name=filename,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

# -------------------------------------------------------------------
# Payments and share links
# -------------------------------------------------------------------

st.subheader("Record a payment")
by_label = {f"{b.bill_id or b.id} - {b.customer_name}": b for b in bills}
label = st.selectbox("Bill", list(by_label), index=None, placeholder="Pick a bill")

if label:
    bill = by_label[label]
    stats = customer_stats([b for b in bills if b.customer_name == bill.customer_name])
    st.caption(
        f"{bill.customer_name}: {stats.total_bills} bill(s), spent {format_rupee(stats.total_spent)}, "
        f"outstanding {format_rupee(stats.outstanding_balance)} ({stats.payment_status})"
    )

    if bill.customer_phone and bill.balance > 0:
        message = f"Hello {bill.customer_name}, {format_rupee(bill.balance)} is due on {bill.bill_id}."
        try:
            st.link_button("Send WhatsApp reminder", whatsapp_link(bill.customer_phone, message, settings))
        except ValueError as e:
            st.warning(str(e))
        if settings.upi_id:
            note = payment_note(bill.bill_id or bill.id, settings, order_id=bill.order_id)
            st.code(upi_link(bill.customer_name, bill.balance, note, settings))

    with st.form("payment_form", enter_to_submit=False):
        payment_type = st.radio("Mode", [t.value for t in PaymentType], horizontal=True)
        amount = st.number_input("Amount", min_value=0.0, step=100.0)
        cash_part = st.number_input("Cash part (split only)", min_value=0.0, step=100.0)
        online_part = st.number_input("Online part (split only)", min_value=0.0, step=100.0)
        notes = st.text_input("Notes")
        submitted = st.form_submit_button("Submit")

    if submitted:
        try:
            payment = new_payment_record(
                PaymentType(payment_type),
                amount=amount,
                cash_amount=cash_part,
                online_amount=online_part,
                notes=notes,
            )
        except ValueError as e:
            st.error(str(e))
        else:
            confirmation_dialog(
                {"Bill": bill.bill_id, "Mode": payment.type.value, "Amount": format_rupee(payment.amount)},
                lambda: record_payment(store, bill.id, payment),
                "payment_saved",
            )
