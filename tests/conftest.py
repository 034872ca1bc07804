# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides in-memory Supabase/DashScope fakes and wired services
# - Issues signed test tokens for the API tests
# =============================================================================

import os
import time
import uuid

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("DASHSCOPE_API_KEY", "test-dashscope-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from jose import jwt

from app.config import settings
from core.services import StorageService, TaskService, UploadService
from lib.task_store import TaskStore
from tests.fakes import FakeJobClient, FakeSupabaseClient, make_download_client

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"


def make_token(
    user_id: str = USER_ID,
    email: str | None = "user@example.com",
    expires_in: int = 3600,
    audience: str = "authenticated",
    secret: str | None = None,
) -> str:
    """Sign an HS256 token shaped like a Supabase access token."""
    now = int(time.time())
    claims = {"sub": user_id, "aud": audience, "iat": now, "exp": now + expires_in, "role": "authenticated"}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret or settings.SUPABASE_JWT_SECRET, algorithm="HS256")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def db():
    """Empty in-memory database and bucket."""
    return FakeSupabaseClient()


@pytest.fixture
def store(db):
    return TaskStore(db)


@pytest.fixture
def storage(db):
    return StorageService(db, bucket="smartphoto")


@pytest.fixture
def job_client():
    return FakeJobClient()


@pytest.fixture
def download_client():
    client = make_download_client()
    yield client
    client.close()


@pytest.fixture
def task_service(store, job_client, storage, download_client):
    return TaskService(store, job_client, storage, download_client)


@pytest.fixture
def upload_service(store, storage):
    return UploadService(store, storage, max_image_bytes=1024, max_video_bytes=4096)


@pytest.fixture
def image_upload(store):
    """An image upload owned by USER_ID."""
    return store.insert_upload(USER_ID, "smartphoto/original.png", "https://storage.test/smartphoto/original.png", "image")


@pytest.fixture
def video_upload(store):
    """A video upload owned by USER_ID."""
    return store.insert_upload(USER_ID, "smartphoto/clip.mp4", "https://storage.test/smartphoto/clip.mp4", "video")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def random_id():
    return str(uuid.uuid4())
