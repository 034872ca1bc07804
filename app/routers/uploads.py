# =============================================================================
# app/routers/uploads.py - Direct Media Upload Endpoints
# =============================================================================
# Multipart upload of images (jpeg/png/webp, 4MB) and videos (mp4/webm,
# 64MB) into the caller's storage.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Path, Query, UploadFile

from app.auth import CurrentUser
from app.dependencies import UploadServiceDep
from core.models import ApiResponse, MessageResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ApiResponse[UploadResponse])
async def create_upload(
    file: Annotated[UploadFile, File(description="Image or video file")],
    user: CurrentUser,
    service: UploadServiceDep,
):
    """
    Upload a file.

    This endpoint:
    1. Validates the content type
    2. Checks the size limit for the media type
    3. Stores the file in the bucket
    4. Records the upload row
    """
    content = await file.read()
    logger.info(f"Processing upload: {file.filename} ({len(content)} bytes, {file.content_type})")

    upload = service.create_upload(
        user.id,
        content=content,
        content_type=file.content_type,
        filename=file.filename,
    )
    return ApiResponse(data=upload)


@router.get("", response_model=ApiResponse[list[UploadResponse]])
def list_uploads(
    user: CurrentUser,
    service: UploadServiceDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return ApiResponse(data=service.list_uploads(user.id, limit=limit, offset=offset))


@router.delete("/{upload_id}", response_model=ApiResponse[MessageResponse])
def delete_upload(
    upload_id: Annotated[UUID, Path(description="Upload UUID")],
    user: CurrentUser,
    service: UploadServiceDep,
):
    """Delete an upload. Tasks that edited it are deleted with it."""
    service.delete_upload(user.id, upload_id)
    return ApiResponse(data=MessageResponse(message="upload deleted"))
