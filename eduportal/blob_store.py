# blob_store.py
# Storage backends for uploaded files

# Both backends take a relative object path such as
# "notes/<uploader id>/1718000000000-ab12cd.pdf" and return a URL the
# browser can load. The uploader id in the path is what lets content writes
# refuse files that someone else uploaded.
# LocalBlobStore writes below UPLOAD_DIR, which main.py serves at /uploads.
# FirebaseBlobStore writes to the default Cloud Storage bucket and makes
# the object public.

# @see: uploads.py - POST /api/upload
# @see: content/service.py - deletes the blob when content is removed

from pathlib import Path
from typing import Optional

from eduportal import config
from eduportal.logging_config import get_logger
from eduportal.models import ContentType


logger = get_logger("blob_store")


def blob_path(content_type: ContentType, owner_id: str, filename: str) -> str:
    return f"{ContentType(content_type).value}/{owner_id}/{filename}"


def owner_of(path: Optional[str]) -> Optional[str]:
    """Uploader id of a path built by blob_path(), or None for any other shape."""
    parts = (path or "").split("/")
    if len(parts) != 3 or not all(parts) or ".." in parts:
        return None
    if parts[0] not in {content_type.value for content_type in ContentType}:
        return None
    return parts[1]


class LocalBlobStore:
    """Files on local disk, served by the app's static mount."""

    def __init__(self, root: Path, base_url: str = ""):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Blob path escapes upload directory: {path}")
        return target

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/uploads/{path}"

    def save(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %d bytes at %s (%s)", len(data), target, content_type)
        return self.url_for(path)

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        target.unlink()
        return True


class FirebaseBlobStore:
    """Objects in the Firebase Storage bucket configured by STORAGE_BUCKET."""

    def __init__(self, bucket=None):
        if bucket is None:
            from firebase_admin import storage

            config.init_firebase()
            bucket = storage.bucket(config.STORAGE_BUCKET or None)
        self.bucket = bucket

    def save(self, path: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        blob.make_public()
        return blob.public_url

    def delete(self, path: str) -> bool:
        blob = self.bucket.blob(path)
        if not blob.exists():
            return False
        blob.delete()
        return True


_blob_store: Optional[object] = None


def get_blob_store():
    """Dependency returning the configured blob backend."""
    global _blob_store
    if _blob_store is None:
        if config.USE_MOCK_DB:
            _blob_store = LocalBlobStore(config.UPLOAD_DIR, config.PUBLIC_BASE_URL)
        else:
            _blob_store = FirebaseBlobStore()
    return _blob_store
