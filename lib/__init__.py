# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable clients and utilities:
# - supabase_client.py: Process-wide Supabase client
# - task_store.py: Table access for uploads, edit tasks and results
# - wanx_client.py: DashScope Wanx image edit API client
# - utils.py: Shared utilities (error handling, UUID normalization)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.task_store import TaskStore, TaskStoreError
from lib.wanx_client import (
    RemoteJob,
    RemoteJobError,
    RemoteJobResult,
    RemoteJobStatus,
    WanxJobClient,
)
from lib.utils import ApplicationError, normalize_uuid, utc_now_iso

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    "TaskStore",
    "TaskStoreError",
    # DashScope
    "RemoteJob",
    "RemoteJobError",
    "RemoteJobResult",
    "RemoteJobStatus",
    "WanxJobClient",
    # Utils
    "ApplicationError",
    "normalize_uuid",
    "utc_now_iso",
]
