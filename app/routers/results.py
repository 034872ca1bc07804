# =============================================================================
# app/routers/results.py - Edit Result Endpoints
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from app.auth import CurrentUser
from app.dependencies import TaskServiceDep
from core.models import ApiResponse, SavedResultResponse

router = APIRouter()


@router.post("/{result_id}/save", response_model=ApiResponse[SavedResultResponse])
def save_result(
    result_id: Annotated[UUID, Path(description="Result UUID")],
    user: CurrentUser,
    service: TaskServiceDep,
):
    """
    Copy a result image into the caller's storage.

    Remote result URLs expire, so clients call this to keep an image.
    Calling it again returns the already saved copy.
    """
    return ApiResponse(data=service.save_result_locally(user.id, result_id))
