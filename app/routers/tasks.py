# =============================================================================
# app/routers/tasks.py - Image Edit Task Endpoints
# =============================================================================
# Create, list, poll and delete image edit tasks. Polling GET /{task_id}
# is what advances a task: each call reconciles it with the remote job.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from app.auth import CurrentUser
from app.dependencies import TaskServiceDep
from core.models import (
    ApiResponse,
    ImageEditRequest,
    MessageResponse,
    TaskCreateResponse,
    TaskDetail,
    TaskStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=ApiResponse[TaskCreateResponse])
def create_task(
    request: ImageEditRequest,
    user: CurrentUser,
    service: TaskServiceDep,
):
    """
    Submit an image edit job for one of the caller's images.

    Returns the local task id; poll GET /tasks/{taskId} every
    `pollIntervalSeconds` until the status is succeeded or failed.
    """
    return ApiResponse(data=service.create_task(user.id, request))


@router.get("", response_model=ApiResponse[list[TaskDetail]])
def list_tasks(
    user: CurrentUser,
    service: TaskServiceDep,
    limit: Annotated[int, Query(ge=1, le=50, description="Page size")] = 20,
    offset: Annotated[int, Query(ge=0, description="Rows to skip")] = 0,
):
    """List the caller's tasks, newest first, with original image and results."""
    return ApiResponse(data=service.list_tasks(user.id, limit=limit, offset=offset))


@router.get("/{task_id}", response_model=ApiResponse[TaskStatusResponse])
def get_task_status(
    task_id: Annotated[UUID, Path(description="Task UUID")],
    user: CurrentUser,
    service: TaskServiceDep,
):
    """
    Get the status of a task.

    Pending/running tasks are checked against the remote service on every
    call; succeeded/failed tasks are answered from the database.
    """
    return ApiResponse(data=service.get_task_status(user.id, task_id))


@router.delete("/{task_id}", response_model=ApiResponse[MessageResponse])
def delete_task(
    task_id: Annotated[UUID, Path(description="Task UUID")],
    user: CurrentUser,
    service: TaskServiceDep,
):
    service.delete_task(user.id, task_id)
    return ApiResponse(data=MessageResponse(message="task deleted"))
