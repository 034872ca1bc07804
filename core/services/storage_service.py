# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles object upload/delete in the public media bucket and turns object
# keys into public URLs.
# =============================================================================

import logging
import mimetypes
from dataclasses import dataclass
from uuid import uuid4

from supabase import Client

from app.exceptions import StorageUploadError

logger = logging.getLogger(__name__)

# Folder for direct uploads; saved edit results go to a subfolder
UPLOAD_FOLDER = "smartphoto"
EDITED_FOLDER = "smartphoto/edited"


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str
    size: int


class StorageService:
    """
    Service for Supabase Storage operations.

    Args:
        client: Supabase client
        bucket: Bucket name (must be public)
        public_url_base: Optional CDN base; when set, URLs are built as
            "{public_url_base}/{key}" instead of asking Supabase
    """

    def __init__(self, client: Client, bucket: str, public_url_base: str | None = None):
        self._client = client
        self._bucket = bucket
        self._public_url_base = public_url_base.rstrip("/") if public_url_base else None

    @staticmethod
    def build_key(folder: str, filename: str | None = None, content_type: str | None = None) -> str:
        """
        Build a unique object key, keeping the file extension.

        Example:
            build_key("smartphoto", "cat.PNG") -> "smartphoto/1b4e...c2.png"
        """
        extension = ""
        if filename and "." in filename:
            extension = "." + filename.rsplit(".", 1)[-1].lower()
        elif content_type:
            extension = mimetypes.guess_extension(content_type) or ""
        return f"{folder}/{uuid4().hex}{extension}"

    def public_url(self, key: str) -> str:
        if self._public_url_base:
            return f"{self._public_url_base}/{key}"
        return self._client.storage.from_(self._bucket).get_public_url(key)

    def upload_bytes(self, key: str, content: bytes, content_type: str) -> StoredObject:
        """
        Upload raw bytes.

        Raises:
            StorageUploadError: If upload fails
        """
        try:
            self._client.storage.from_(self._bucket).upload(
                path=key,
                file=content,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            logger.error(f"Storage upload failed for {key}: {e}")
            raise StorageUploadError(str(e)) from e

        logger.info(f"Uploaded {len(content)} bytes to storage: {key}")
        return StoredObject(key=key, url=self.public_url(key), size=len(content))

    def delete(self, key: str) -> bool:
        """
        Delete an object. Returns False instead of raising when it fails,
        so a dangling object never blocks deleting the database row.
        """
        try:
            self._client.storage.from_(self._bucket).remove([key])
            logger.info(f"Deleted file from storage: {key}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete file {key}: {e}")
            return False

    def ping(self) -> None:
        """Used by the readiness probe."""
        self._client.storage.list_buckets()
