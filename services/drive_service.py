# services/drive_service.py
"""
Image hosting on a Google Drive folder: design sketches, payment
screenshots and inventory barcodes. Every stored file is shared
read-only by link and addressed by a direct download URL.
"""
import io
import logging
import uuid
from pathlib import PurePath
from typing import Dict, List, Optional

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaIoBaseUpload

from domain.models import StoredImage

logger = logging.getLogger(__name__)

IMAGE_MIMETYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

IMAGE_KINDS = ("design", "payment", "barcode")


def public_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?id={file_id}&export=download"


def image_filename(kind: str, owner_id: str, original_name: str) -> str:
    """
    Stable, collision-free name: <kind>-<owner id>-<random>.<ext>
    Example: ("design", "ord42", "Sketch 1.PNG") -> "design-ord42-1f3a9c0d.png"
    """
    if kind not in IMAGE_KINDS:
        raise ValueError(f"Unknown image kind: {kind}")

    ext = PurePath(original_name).suffix.lower()
    if ext not in IMAGE_MIMETYPES:
        raise ValueError(f"Unsupported image type: {ext or original_name}")

    return f"{kind}-{owner_id}-{uuid.uuid4().hex[:8]}{ext}"


def find_file_in_folder(drive: Resource, folder_id: str, filename: str) -> Optional[Dict]:
    safe_name = filename.replace("\\", "\\\\").replace("'", "\\'")
    query = (
        f"name = '{safe_name}' and "
        f"'{folder_id}' in parents and "
        f"trashed = false"
    )

    resp = drive.files().list(
        q=query,
        fields="files(id, name, mimeType)",
        pageSize=1,
    ).execute()

    files: List[Dict] = resp.get("files", [])
    return files[0] if files else None


def share_publicly(drive: Resource, file_id: str) -> str:
    drive.permissions().create(
        fileId=file_id,
        body={"type": "anyone", "role": "reader"},
        fields="id",
    ).execute()
    return public_url(file_id)


def store_image(
        drive: Resource,
        folder_id: str,
        filename: str,
        content: bytes,
        *,
        reuse_existing: bool = False,
) -> StoredImage:
    """
    Upload image bytes into the folder and return its durable URL.
    With reuse_existing, a file of the same name in the folder is returned
    instead of uploading a second copy.
    """
    if not folder_id:
        raise ValueError("Image folder id is not configured")
    if not content:
        raise ValueError("Image is empty")

    mimetype = IMAGE_MIMETYPES.get(PurePath(filename).suffix.lower())
    if mimetype is None:
        raise ValueError(f"Unsupported image type: {filename}")

    if reuse_existing:
        existing = find_file_in_folder(drive, folder_id, filename)
        if existing:
            logger.info('Image "%s" already stored (fileId=%s)', filename, existing["id"])
            return StoredImage(file_id=existing["id"], url=share_publicly(drive, existing["id"]))

    media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mimetype, resumable=False)
    created = drive.files().create(
        body={"name": filename, "parents": [folder_id]},
        media_body=media,
        fields="id",
    ).execute()

    file_id = created["id"]
    logger.info('Uploaded image "%s" as fileId=%s', filename, file_id)
    return StoredImage(file_id=file_id, url=share_publicly(drive, file_id))
