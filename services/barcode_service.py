# services/barcode_service.py
import logging
from typing import List, Optional, Tuple

from googleapiclient.discovery import Resource

from data_integrator import DocumentStore, StoreError
from domain.models import InventoryItem, StoredImage
from services.drive_service import store_image
from utils.barcode import generate_barcode_value, render_barcode_png

logger = logging.getLogger(__name__)

INVENTORY = "inventory"


def barcode_image_name(value: str) -> str:
    return f"barcode-{value}.png"


def publish_inventory_barcode(
        store: DocumentStore,
        drive: Resource,
        folder_id: str,
        item: InventoryItem,
) -> Tuple[bool, str, Optional[StoredImage]]:
    """
    Make sure an inventory item has a barcode value and a hosted image,
    then write both back to the item.
    Returns (ok, message, image)
    """
    value = item.barcode or generate_barcode_value()

    try:
        content = render_barcode_png(value)
    except ValueError as e:
        logger.error("Barcode render failed for %s: %s", item.id, e)
        return False, str(e), None

    image = store_image(drive, folder_id, barcode_image_name(value), content, reuse_existing=True)

    ok, msg = store.update(INVENTORY, item.id, {"barcode": value, "barcodeUrl": image.url})
    if not ok:
        logger.error("Failed to save barcode for %s: %s", item.id, msg)
        return False, msg, image

    item.barcode = value
    item.barcode_url = image.url
    logger.info("Published barcode %s for inventory item %s", value, item.id)
    return True, value, image


def items_missing_barcodes(store: DocumentStore) -> List[InventoryItem]:
    try:
        docs = store.fetch_all(INVENTORY)
    except StoreError as e:
        logger.error("Failed to load inventory: %s", e)
        raise

    items = [InventoryItem.from_document(d) for d in docs]
    return [i for i in items if not i.barcode or not i.barcode_url]
