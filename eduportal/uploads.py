# uploads.py
# File upload endpoint for content items

# POST /api/upload (multipart: file, contentType)
# The file lands at "{contentType}/{uploader id}/{timestamp}-{random}.{ext}"
# in the blob store. The caller then creates the content item with the returned
# fileUrl and publicId.

# @see: blob_store.py - LocalBlobStore / FirebaseBlobStore
# @see: content/router.py - POST /api/content

import secrets
import time

from fastapi import APIRouter, Depends, File, Form, UploadFile
from google.api_core.exceptions import GoogleAPIError

from eduportal import config
from eduportal.auth import get_current_user
from eduportal.blob_store import blob_path, get_blob_store
from eduportal.errors import Invalid, Unexpected
from eduportal.logging_config import get_logger
from eduportal.models import ContentType, CurrentUser


logger = get_logger("uploads")

router = APIRouter(prefix="/api/upload", tags=["upload"])

DOCUMENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
VIDEO_TYPES = ("video/mp4", "video/mpeg", "video/quicktime", "video/webm")

ALLOWED_FILE_TYPES = {
    ContentType.NOTES: DOCUMENT_TYPES + ("text/plain",),
    ContentType.VIDEO: VIDEO_TYPES,
    ContentType.ASSIGNMENT: DOCUMENT_TYPES + ("text/plain",),
    ContentType.QUESTION_PAPER: DOCUMENT_TYPES,
    ContentType.ANSWER_PAPER: DOCUMENT_TYPES,
}


def validate_file_size(size: int, max_size: int) -> None:
    """Raise Invalid if the upload is empty or larger than max_size."""
    if size == 0:
        raise Invalid("Empty file")
    if size > max_size:
        max_mb = max_size / (1024 * 1024)
        raise Invalid(f"File size exceeds the limit ({max_mb:.0f}MB)")


def storage_name(content_type: ContentType, owner_id: str, original_name: str) -> str:
    """Unique object path for an upload under its uploader, keeping the extension."""
    extension = original_name.rsplit(".", 1)[-1].lower() if "." in original_name else ""
    if not extension.isalnum():
        extension = "bin"
    timestamp = int(time.time() * 1000)
    return blob_path(content_type, owner_id, f"{timestamp}-{secrets.token_hex(6)}.{extension}")


@router.post("")
async def upload_file(
    file: UploadFile = File(...),
    contentType: ContentType = Form(...),
    actor: CurrentUser = Depends(get_current_user),
    blobs=Depends(get_blob_store),
):
    """
    Store one file for a content item.

    Returns:
        {success, fileUrl, publicId, filename, size, type}
    """
    if file.content_type not in ALLOWED_FILE_TYPES[contentType]:
        raise Invalid("Invalid file type for this content", details=file.content_type)

    data = await file.read()
    validate_file_size(len(data), config.MAX_UPLOAD_BYTES)

    path = storage_name(contentType, actor.id, file.filename or "")
    try:
        url = blobs.save(path, data, file.content_type)
    except (OSError, GoogleAPIError) as exc:
        logger.error("Storing %s failed: %s", path, exc)
        raise Unexpected("Failed to upload file to storage") from exc

    logger.info("Uploaded %s (%d bytes) for %s", path, len(data), actor.id)
    return {
        "success": True,
        "fileUrl": url,
        "publicId": path,
        "filename": file.filename,
        "size": len(data),
        "type": file.content_type,
    }
