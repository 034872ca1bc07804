# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - base.py: camelCase base model and the {success, data} envelope
# - upload.py: Upload schemas and allowed media types
# - image_edit.py: Image edit task/result schemas and status enum
# - payment.py: Stripe checkout / payment intent schemas
#
# These models define the "contract" between API and clients.
# =============================================================================

from .base import (
    ApiResponse,
    CamelModel,
    MessageResponse,
)

from .upload import (
    ALLOWED_CONTENT_TYPES,
    MediaType,
    UploadResponse,
)

from .image_edit import (
    NON_TERMINAL_STATUSES,
    POLL_INTERVAL_SECONDS,
    EditFunction,
    EditResult,
    ImageEditRequest,
    SavedResultResponse,
    TaskCreateResponse,
    TaskDetail,
    TaskStatus,
    TaskStatusResponse,
)

from .payment import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)

__all__ = [
    # Base
    "ApiResponse",
    "CamelModel",
    "MessageResponse",
    # Upload
    "ALLOWED_CONTENT_TYPES",
    "MediaType",
    "UploadResponse",
    # Image edit
    "NON_TERMINAL_STATUSES",
    "POLL_INTERVAL_SECONDS",
    "EditFunction",
    "EditResult",
    "ImageEditRequest",
    "SavedResultResponse",
    "TaskCreateResponse",
    "TaskDetail",
    "TaskStatus",
    "TaskStatusResponse",
    # Payment
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "PaymentConfigResponse",
    "PaymentIntentRequest",
    "PaymentIntentResponse",
]
