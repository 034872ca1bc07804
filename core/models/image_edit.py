# =============================================================================
# core/models/image_edit.py - Image Edit Task Schemas
# =============================================================================
# These models define the API contract for image edit operations:
# - EditFunction: the ten edit modes offered by the Wanx image edit model
# - TaskStatus: local four-state task lifecycle
# - ImageEditRequest: input for creating a task
# - TaskStatusResponse / TaskDetail: output when returning tasks to clients
#
# Field names are snake_case in Python and camelCase on the wire.
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, HttpUrl, model_validator

from .base import CamelModel
from .upload import UploadResponse

# Interval the browser uses when polling GET /tasks/{id}
POLL_INTERVAL_SECONDS = 3


class EditFunction(str, Enum):
    """
    Edit modes supported by the remote image edit model.

    Only DESCRIPTION_EDIT_WITH_MASK needs a mask image.
    """
    STYLIZATION_ALL = "stylization_all"
    STYLIZATION_LOCAL = "stylization_local"
    DESCRIPTION_EDIT = "description_edit"
    DESCRIPTION_EDIT_WITH_MASK = "description_edit_with_mask"
    REMOVE_WATERMARK = "remove_watermark"
    EXPAND = "expand"
    SUPER_RESOLUTION = "super_resolution"
    COLORIZATION = "colorization"
    DOODLE = "doodle"
    CONTROL_CARTOON_FEATURE = "control_cartoon_feature"


class TaskStatus(str, Enum):
    """
    Lifecycle of an image edit task.

    Flow: pending -> running -> succeeded | failed
    (pending may jump straight to a terminal state between two polls)
    """
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)

    @property
    def rank(self) -> int:
        # Both terminal states share the highest rank
        return {
            TaskStatus.PENDING: 0,
            TaskStatus.RUNNING: 1,
            TaskStatus.SUCCEEDED: 2,
            TaskStatus.FAILED: 2,
        }[self]

    def can_transition_to(self, new_status: "TaskStatus") -> bool:
        """True when moving from this status to `new_status` is a forward step."""
        if self.is_terminal:
            return False
        return new_status.rank > self.rank


NON_TERMINAL_STATUSES = [TaskStatus.PENDING.value, TaskStatus.RUNNING.value]


# =============================================================================
# Requests
# =============================================================================

class ImageEditRequest(CamelModel):
    """
    Schema for creating an image edit task.

    Example:
        {
            "editFunction": "colorization",
            "originalImageId": "3f1c2a9e-8d4b-4c1e-9a7f-2b6d0e5c4a31",
            "prompt": "colorize this old photo",
            "imageCount": 1
        }
    """

    edit_function: EditFunction = Field(
        ...,
        description="Which edit operation to run"
    )

    original_image_id: UUID = Field(
        ...,
        description="Id of an image upload owned by the caller"
    )

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=800,
        description="Instruction for the edit model"
    )

    mask_image_url: HttpUrl | None = Field(
        default=None,
        description="Mask marking the region to repaint (description_edit_with_mask)"
    )

    strength: float | None = Field(
        default=None,
        ge=0.1,
        le=1.0,
        description="Edit strength"
    )

    image_count: int = Field(
        default=1,
        ge=1,
        le=4,
        description="Number of result images to generate"
    )

    @model_validator(mode="after")
    def check_mask_for_masked_edit(self) -> "ImageEditRequest":
        if self.edit_function == EditFunction.DESCRIPTION_EDIT_WITH_MASK and self.mask_image_url is None:
            raise ValueError("maskImageUrl is required for description_edit_with_mask")
        return self


# =============================================================================
# Responses
# =============================================================================

class EditResult(CamelModel):
    """One output image of a succeeded task."""
    id: str
    result_image_url: str
    saved_image_id: str | None = None


class TaskCreateResponse(CamelModel):
    """Returned by POST /tasks."""
    task_id: str
    status: TaskStatus
    poll_interval_seconds: int = POLL_INTERVAL_SECONDS


class TaskStatusResponse(CamelModel):
    """
    Returned by GET /tasks/{id}.

    `results` is empty until the task succeeds; `error_message` is only set
    for failed tasks.
    """
    task_id: str
    status: TaskStatus
    error_message: str | None = None
    results: list[EditResult] = Field(default_factory=list)
    completed_at: datetime | None = None


class TaskDetail(CamelModel):
    """A task with its original image and results, as listed by GET /tasks."""
    id: str
    edit_function: EditFunction
    prompt: str
    mask_image_url: str | None = None
    strength: float | None = None
    image_count: int
    status: TaskStatus
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    original_image: UploadResponse | None = None
    results: list[EditResult] = Field(default_factory=list)


class SavedResultResponse(CamelModel):
    """Returned by POST /results/{id}/save."""
    saved_image_id: str
    url: str
