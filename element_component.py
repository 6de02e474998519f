import streamlit as st
import pandas as pd


@st.dialog("Confirm")
def confirmation_dialog(summary, action, state_name):
    """
    Show `summary` (a dict) and run `action()` when confirmed.
    `action` returns (ok, message, payload); payload lands in session_state[state_name].
    """
    df = pd.DataFrame(list(summary.items()), columns=["Key", "Value"])
    df["Value"] = df["Value"].astype("string")
    st.dataframe(df, hide_index=True)

    col_yes, col_no = st.columns(2)

    with col_yes:
        if st.button("Yes", type="primary", key=f"{state_name}_confirm_yes"):
            ok, msg, payload = action()
            if not ok:
                st.error(msg)
            else:
                st.session_state[state_name] = payload
                st.rerun()
    with col_no:
        if st.button("No", key=f"{state_name}_confirm_no"):
            st.rerun()
