import streamlit as st
import pandas as pd

from config import load_config
from data_integrator import StoreError, get_store
from google_client import get_drive_service
from services.barcode_service import items_missing_barcodes, publish_inventory_barcode
from services.drive_service import image_filename, store_image
from utils.barcode import render_barcode_png

st.set_page_config(
    page_title="Inventory Barcodes",
    page_icon="🏷️"
)

st.sidebar.header("🏷️ Inventory Barcodes")

config = load_config()

try:
    store = get_store()
    missing = items_missing_barcodes(store)
except (StoreError, RuntimeError) as e:
    st.error(f"Could not load inventory: {e}")
    st.stop()

st.title("Inventory Barcodes")

if not missing:
    st.success("Every inventory item has a barcode")
else:
    st.dataframe(pd.DataFrame([
        {"Item": i.name, "Category": i.category, "Barcode": i.barcode or "-"} for i in missing
    ]), hide_index=True)

    if not config.barcode_folder_id:
        st.error("BARCODE_FOLDER_ID is not set")
    elif st.button("Generate barcodes", type="primary"):
        drive = get_drive_service(config)
        progress = st.progress(0.0)
        failed = []
        for n, item in enumerate(missing, start=1):
            ok, msg, image = publish_inventory_barcode(store, drive, config.barcode_folder_id, item)
            if not ok:
                failed.append(f"{item.name}: {msg}")
            else:
                st.image(render_barcode_png(item.barcode), caption=f"{item.name} ({item.barcode})", width=240)
            progress.progress(n / len(missing))

        if failed:
            st.error("Failed: " + "; ".join(failed))
        else:
            st.success(f"{len(missing)} barcode(s) published")

# -------------------------------------------------------------------
# Design sketches and payment screenshots
# -------------------------------------------------------------------

st.subheader("Upload an image")
with st.form("image_upload_form", enter_to_submit=False):
    kind = st.selectbox("Kind", ["design", "payment"])
    owner_id = st.text_input("Order or bill id")
    upload = st.file_uploader("Image", type=["jpg", "jpeg", "png", "webp", "gif"])
    submitted = st.form_submit_button("Upload")

if submitted:
    if not owner_id or upload is None:
        st.error("Pick an image and enter the order or bill id")
    elif not config.image_folder_id:
        st.error("IMAGE_FOLDER_ID is not set")
    else:
        try:
            stored = store_image(
                get_drive_service(config),
                config.image_folder_id,
                image_filename(kind, owner_id, upload.name),
                upload.getvalue(),
            )
        except ValueError as e:
            st.error(str(e))
        else:
            st.success("Uploaded")
            st.code(stored.url)
