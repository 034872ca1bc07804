# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# Long-lived clients (Supabase, DashScope, the download client) are built
# once per process. Tests replace any of these via app.dependency_overrides.
# =============================================================================

from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends

from app.config import settings
from core.services import PaymentService, StorageService, TaskService, UploadService
from lib.supabase_client import SupabaseClient
from lib.task_store import TaskStore
from lib.wanx_client import WanxJobClient


def get_task_store() -> TaskStore:
    """Task store bound to the shared Supabase client."""
    return TaskStore(SupabaseClient.get_client())


def get_storage_service() -> StorageService:
    return StorageService(
        SupabaseClient.get_client(),
        bucket=settings.STORAGE_BUCKET,
        public_url_base=settings.STORAGE_PUBLIC_URL,
    )


@lru_cache
def get_job_client() -> WanxJobClient:
    """Process-wide DashScope client."""
    return WanxJobClient.from_settings(settings)


@lru_cache
def get_download_client() -> httpx.Client:
    """Client used to fetch remote result images."""
    return httpx.Client(timeout=httpx.Timeout(60.0, connect=10.0), follow_redirects=True)


TaskStoreDep = Annotated[TaskStore, Depends(get_task_store)]
StorageDep = Annotated[StorageService, Depends(get_storage_service)]
JobClientDep = Annotated[WanxJobClient, Depends(get_job_client)]
DownloadClientDep = Annotated[httpx.Client, Depends(get_download_client)]


def get_task_service(
    store: TaskStoreDep,
    job_client: JobClientDep,
    storage: StorageDep,
    http_client: DownloadClientDep,
) -> TaskService:
    return TaskService(store, job_client, storage, http_client)


def get_upload_service(store: TaskStoreDep, storage: StorageDep) -> UploadService:
    return UploadService(store, storage)


def get_payment_service() -> PaymentService:
    return PaymentService(
        secret_key=settings.STRIPE_SECRET_KEY,
        publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
    )


# Type aliases for dependency injection
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
