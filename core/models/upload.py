# =============================================================================
# core/models/upload.py - Upload Schemas
# =============================================================================
# An upload is a file the user owns in object storage: either sent directly
# through POST /uploads or created when an edit result is saved.
# =============================================================================

from datetime import datetime
from enum import Enum

from .base import CamelModel


class MediaType(str, Enum):
    """Kind of media stored in an upload row."""
    IMAGE = "image"
    VIDEO = "video"


# content-type -> media type accepted by POST /uploads
ALLOWED_CONTENT_TYPES: dict[str, MediaType] = {
    "image/jpeg": MediaType.IMAGE,
    "image/png": MediaType.IMAGE,
    "image/webp": MediaType.IMAGE,
    "video/mp4": MediaType.VIDEO,
    "video/webm": MediaType.VIDEO,
}


class UploadResponse(CamelModel):
    """
    Schema for returning an upload to clients.

    Example:
        {
            "id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
            "key": "smartphoto/7c9e6679.png",
            "type": "image",
            "url": "https://cdn.example.com/smartphoto/7c9e6679.png"
        }
    """
    id: str
    key: str
    type: MediaType
    url: str
    created_at: datetime | None = None
