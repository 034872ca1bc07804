# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .storage_service import StorageService, StoredObject
from .task_service import TaskService, map_remote_status
from .upload_service import UploadService
from .payment_service import PaymentService

__all__ = [
    "StorageService",
    "StoredObject",
    "TaskService",
    "map_remote_status",
    "UploadService",
    "PaymentService",
]
