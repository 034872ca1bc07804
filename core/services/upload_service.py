# =============================================================================
# core/services/upload_service.py - Upload Business Logic
# =============================================================================
# Validates incoming media, stores it in the bucket and records the upload
# row. Uploads are the originals referenced by image edit tasks.
# =============================================================================

import logging
from uuid import UUID

from app.config import settings
from app.exceptions import FileTooLargeError, InvalidFileTypeError, UploadNotFoundError
from core.models.upload import ALLOWED_CONTENT_TYPES, MediaType, UploadResponse
from core.services.storage_service import UPLOAD_FOLDER, StorageService
from lib.task_store import TaskStore, TaskStoreError

logger = logging.getLogger(__name__)


class UploadService:
    """
    Service for upload operations.

    Args:
        store: Database access
        storage: Object storage
        max_image_bytes / max_video_bytes: Size limits per media type
    """

    def __init__(
        self,
        store: TaskStore,
        storage: StorageService,
        max_image_bytes: int = settings.max_image_upload_bytes,
        max_video_bytes: int = settings.max_video_upload_bytes,
    ):
        self._store = store
        self._storage = storage
        self._limits = {
            MediaType.IMAGE: max_image_bytes,
            MediaType.VIDEO: max_video_bytes,
        }

    def create_upload(
        self,
        user_id: UUID | str,
        content: bytes,
        content_type: str | None,
        filename: str | None = None,
    ) -> UploadResponse:
        """
        Validate and store a file.

        Raises:
            InvalidFileTypeError: Content type not accepted
            FileTooLargeError: Over the limit for its media type
            StorageUploadError: Bucket upload failed
        """
        content_type = (content_type or "").split(";")[0].strip().lower()
        media_type = ALLOWED_CONTENT_TYPES.get(content_type)
        if media_type is None:
            raise InvalidFileTypeError(content_type or "unknown", list(ALLOWED_CONTENT_TYPES))

        limit = self._limits[media_type]
        if len(content) > limit:
            raise FileTooLargeError(len(content) / (1024 * 1024), limit // (1024 * 1024))

        key = StorageService.build_key(UPLOAD_FOLDER, filename=filename, content_type=content_type)
        stored = self._storage.upload_bytes(key, content, content_type)

        try:
            row = self._store.insert_upload(str(user_id), stored.key, stored.url, media_type.value)
        except TaskStoreError:
            self._storage.delete(stored.key)
            raise

        logger.info(f"User {user_id} uploaded {media_type.value} {row['id']} ({stored.size} bytes)")
        return UploadResponse(**row)

    def list_uploads(self, user_id: UUID | str, limit: int = 20, offset: int = 0) -> list[UploadResponse]:
        rows = self._store.list_uploads(str(user_id), limit=limit, offset=offset)
        return [UploadResponse(**row) for row in rows]

    def delete_upload(self, user_id: UUID | str, upload_id: UUID | str) -> None:
        """
        Delete an upload and its stored object.

        Tasks that used it as their original are removed by the database
        cascade; results that saved into it lose their saved_image_id.

        Raises:
            UploadNotFoundError: Missing or owned by someone else
        """
        upload_id = str(upload_id)
        row = self._store.get_upload(upload_id, user_id=str(user_id))
        if not row:
            raise UploadNotFoundError(upload_id)

        self._store.delete_upload(row["id"])
        self._storage.delete(row["key"])
        logger.info(f"Deleted upload {upload_id} for user {user_id}")
