# =============================================================================
# tests/test_task_service.py - Task Service Tests
# =============================================================================
# Covers task creation, poll-driven reconciliation, listing, deletion and
# saving results, using the in-memory Supabase fake and a scripted
# DashScope client.
# =============================================================================

import httpx
import pytest

from app.exceptions import (
    ImageNotFoundError,
    InvalidImageTypeError,
    RemoteStatusUnknownError,
    ResultDownloadError,
    ResultNotFoundError,
    StorageUploadError,
    TaskNotFoundError,
)
from core.models import ImageEditRequest, TaskStatus
from core.services import TaskService, map_remote_status
from lib.task_store import RESULTS_TABLE, TASKS_TABLE, UPLOADS_TABLE, TaskStoreError
from lib.wanx_client import RemoteJobError, RemoteJobStatus
from tests.conftest import OTHER_USER_ID, USER_ID
from tests.fakes import make_download_client, remote_result


def edit_request(image_id, **overrides):
    body = {
        "edit_function": "colorization",
        "original_image_id": image_id,
        "prompt": "colorize this photo",
    }
    body.update(overrides)
    return ImageEditRequest(**body)


@pytest.fixture
def task_id(task_service, image_upload):
    """A pending task owned by USER_ID."""
    return task_service.create_task(USER_ID, edit_request(image_upload["id"])).task_id


# =============================================================================
# create_task
# =============================================================================

class TestCreateTask:
    """Tests for TaskService.create_task."""

    def test_creates_pending_task(self, task_service, job_client, store, image_upload):
        """Test that a task is submitted remotely and stored as pending."""
        # Act
        response = task_service.create_task(
            USER_ID,
            edit_request(image_upload["id"], strength=0.4, image_count=3),
        )

        # Assert: remote job got the image URL and parameters
        assert job_client.created == [{
            "base_image_url": image_upload["url"],
            "function": "colorization",
            "prompt": "colorize this photo",
            "mask_image_url": None,
            "strength": 0.4,
            "count": 3,
        }]

        # Assert: row stored with the remote id
        task = store.get_task(response.task_id)
        assert response.status == TaskStatus.PENDING
        assert response.poll_interval_seconds == 3
        assert task["status"] == "pending"
        assert task["remote_task_id"] == "remote-1"
        assert task["user_id"] == USER_ID
        assert task["completed_at"] is None

    def test_mask_url_forwarded(self, task_service, job_client, image_upload):
        """Test that the mask URL reaches the remote job."""
        task_service.create_task(USER_ID, edit_request(
            image_upload["id"],
            edit_function="description_edit_with_mask",
            mask_image_url="https://cdn.example.com/mask.png",
        ))

        assert job_client.created[0]["mask_image_url"] == "https://cdn.example.com/mask.png"

    def test_other_users_image_rejected(self, task_service, job_client, db, image_upload):
        """Test that another user's image cannot be edited."""
        with pytest.raises(ImageNotFoundError):
            task_service.create_task(OTHER_USER_ID, edit_request(image_upload["id"]))

        assert job_client.created == []
        assert db.rows(TASKS_TABLE) == []

    def test_missing_image_rejected(self, task_service, random_id):
        """Test that an unknown image id is rejected."""
        with pytest.raises(ImageNotFoundError):
            task_service.create_task(USER_ID, edit_request(random_id))

    def test_video_rejected(self, task_service, job_client, video_upload):
        """Test that a video upload cannot be edited."""
        with pytest.raises(InvalidImageTypeError) as exc_info:
            task_service.create_task(USER_ID, edit_request(video_upload["id"]))

        assert exc_info.value.message == "only image files can be edited"
        assert job_client.created == []

    def test_remote_failure_writes_nothing(self, task_service, job_client, db, image_upload):
        """Test that no task row exists when job submission fails."""
        job_client.create_error = RemoteJobError("image edit api error: 500")

        with pytest.raises(RemoteJobError):
            task_service.create_task(USER_ID, edit_request(image_upload["id"]))

        assert db.rows(TASKS_TABLE) == []


# =============================================================================
# get_task_status
# =============================================================================

class TestStatusMapping:
    """Tests for the remote to local status mapping."""

    @pytest.mark.parametrize("remote,local", [
        (RemoteJobStatus.PENDING, TaskStatus.PENDING),
        (RemoteJobStatus.RUNNING, TaskStatus.RUNNING),
        (RemoteJobStatus.SUCCEEDED, TaskStatus.SUCCEEDED),
        (RemoteJobStatus.FAILED, TaskStatus.FAILED),
    ])
    def test_known_statuses(self, remote, local):
        """Test the mapping of each known remote status."""
        assert map_remote_status(remote) == local

    def test_unknown_status_unmapped(self):
        """Test that UNKNOWN has no local status."""
        assert map_remote_status(RemoteJobStatus.UNKNOWN) is None


class TestGetTaskStatus:
    """Tests for poll-driven status reconciliation."""

    def test_pending_to_running(self, task_service, job_client, store, task_id):
        """Test a pending task moving to running."""
        job_client.statuses = [remote_result("RUNNING")]

        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.RUNNING
        assert response.results == []
        assert store.get_task(task_id)["status"] == "running"
        assert store.get_task(task_id)["completed_at"] is None

    def test_still_pending_refreshes_updated_at(self, task_service, job_client, db, store, task_id):
        """Test that an unchanged remote status only bumps updated_at."""
        # Arrange: Age the row so the refresh is visible
        row = next(t for t in db.rows(TASKS_TABLE) if t["id"] == task_id)
        row["updated_at"] = "2020-01-01T00:00:00+00:00"
        job_client.statuses = [remote_result("PENDING")]

        # Act
        response = task_service.get_task_status(USER_ID, task_id)

        # Assert: Same status, fresh timestamp, nothing completed
        task = store.get_task(task_id)
        assert response.status == TaskStatus.PENDING
        assert task["status"] == "pending"
        assert task["updated_at"] > "2020-01-01T00:00:00+00:00"
        assert task["completed_at"] is None

    def test_succeeded_records_results(self, task_service, job_client, store, task_id):
        """Test that success stores every result URL."""
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png", "https://r/2.png"])]

        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.SUCCEEDED
        assert [r.result_image_url for r in response.results] == ["https://r/1.png", "https://r/2.png"]
        assert response.completed_at is not None
        assert response.error_message is None
        assert all(r.saved_image_id is None for r in response.results)

        task = store.get_task(task_id)
        assert task["status"] == "succeeded"
        assert task["completed_at"] is not None

    def test_failed_records_message(self, task_service, job_client, store, task_id):
        """Test that failure stores the remote message."""
        job_client.statuses = [remote_result("FAILED", message="NSFW content detected")]

        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.FAILED
        assert response.error_message == "NSFW content detected"
        assert response.results == []
        assert store.get_task(task_id)["error_message"] == "NSFW content detected"
        assert store.get_results(task_id) == []

    def test_failed_without_message(self, task_service, job_client, task_id):
        """Test the fallback failure message."""
        job_client.statuses = [remote_result("FAILED")]

        response = task_service.get_task_status(USER_ID, task_id)

        assert response.error_message == "unknown error"

    def test_terminal_task_not_requeried(self, task_service, job_client, task_id):
        """Once succeeded, polls are answered from the database."""
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        task_service.get_task_status(USER_ID, task_id)
        assert job_client.query_calls == 1

        job_client.statuses = [remote_result("FAILED", message="late failure")]
        again = task_service.get_task_status(USER_ID, task_id)

        assert job_client.query_calls == 1
        assert again.status == TaskStatus.SUCCEEDED
        assert [r.result_image_url for r in again.results] == ["https://r/1.png"]

    def test_backward_remote_status_ignored(self, task_service, job_client, store, task_id):
        """Test that a remote status going backwards keeps the local one."""
        job_client.statuses = [remote_result("RUNNING")]
        task_service.get_task_status(USER_ID, task_id)

        job_client.statuses = [remote_result("PENDING")]
        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.RUNNING
        assert store.get_task(task_id)["status"] == "running"

    def test_unknown_remote_status(self, task_service, job_client, store, task_id):
        """An unrecognized remote status is an error and leaves the row alone."""
        job_client.statuses = [remote_result("CANCELED")]
        before = dict(store.get_task(task_id))

        with pytest.raises(RemoteStatusUnknownError) as exc_info:
            task_service.get_task_status(USER_ID, task_id)

        assert exc_info.value.status_code == 500
        assert store.get_task(task_id) == before

    def test_remote_query_failure_propagates(self, task_service, job_client, store, task_id):
        """Test that a failed remote query leaves the row alone."""
        job_client.statuses = [RemoteJobError("image edit api error: 503")]

        with pytest.raises(RemoteJobError):
            task_service.get_task_status(USER_ID, task_id)

        assert store.get_task(task_id)["status"] == "pending"

    def test_other_users_task(self, task_service, job_client, task_id):
        """Test that another user's task looks missing."""
        with pytest.raises(TaskNotFoundError) as exc_info:
            task_service.get_task_status(OTHER_USER_ID, task_id)

        assert exc_info.value.status_code == 400
        assert job_client.query_calls == 0

    def test_missing_task(self, task_service, random_id):
        """Test polling an unknown task id."""
        with pytest.raises(TaskNotFoundError):
            task_service.get_task_status(USER_ID, random_id)

    def test_concurrent_success_records_results_once(self, task_service, job_client, store, task_id):
        """Two polls racing on the same success leave one set of results."""
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        stale_task = dict(store.get_task(task_id))

        task_service.get_task_status(USER_ID, task_id)

        # Second poll read the row before the first one committed
        original_get_task = store.get_task
        reads = []

        def stale_get_task(tid, user_id=None):
            reads.append(tid)
            return stale_task if len(reads) == 1 else original_get_task(tid, user_id=user_id)

        store.get_task = stale_get_task
        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.SUCCEEDED
        assert len(store.get_results(task_id)) == 1
        assert job_client.query_calls == 2

    def test_refresh_does_not_reopen_finished_task(self, task_service, job_client, store, task_id):
        """Test that a stale non-terminal poll reports the row another poll finished."""
        stale_task = dict(store.get_task(task_id))
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        task_service.get_task_status(USER_ID, task_id)

        original_get_task = store.get_task
        reads = []

        def stale_get_task(tid, user_id=None):
            reads.append(tid)
            return stale_task if len(reads) == 1 else original_get_task(tid, user_id=user_id)

        store.get_task = stale_get_task
        job_client.statuses = [remote_result("PENDING")]
        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.SUCCEEDED
        assert original_get_task(task_id)["status"] == "succeeded"

    def test_results_retried_when_status_write_fails(self, task_service, job_client, db, store, task_id):
        """A failed status write leaves the task pending so the next poll retries."""
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        db.failures[(TASKS_TABLE, "update")] = RuntimeError("connection reset")

        with pytest.raises(TaskStoreError):
            task_service.get_task_status(USER_ID, task_id)
        assert store.get_task(task_id)["status"] == "pending"

        del db.failures[(TASKS_TABLE, "update")]
        response = task_service.get_task_status(USER_ID, task_id)

        assert response.status == TaskStatus.SUCCEEDED
        assert len(response.results) == 1


# =============================================================================
# list_tasks / delete_task
# =============================================================================

class TestListTasks:
    """Tests for TaskService.list_tasks."""

    def test_lists_newest_first_with_relations(self, task_service, job_client, image_upload):
        """Test ordering and the attached image and results."""
        first = task_service.create_task(USER_ID, edit_request(image_upload["id"])).task_id
        second = task_service.create_task(USER_ID, edit_request(image_upload["id"], prompt="second")).task_id
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        task_service.get_task_status(USER_ID, first)

        tasks = task_service.list_tasks(USER_ID)

        assert [t.id for t in tasks] == [second, first]
        assert tasks[0].prompt == "second"
        assert tasks[0].results == []
        assert tasks[1].status == TaskStatus.SUCCEEDED
        assert [r.result_image_url for r in tasks[1].results] == ["https://r/1.png"]
        assert tasks[1].original_image.id == image_upload["id"]

    def test_only_own_tasks(self, task_service, task_id):
        assert task_service.list_tasks(OTHER_USER_ID) == []
        assert [t.id for t in task_service.list_tasks(USER_ID)] == [task_id]

    def test_pagination(self, task_service, image_upload):
        """Test limit and offset."""
        ids = [task_service.create_task(USER_ID, edit_request(image_upload["id"])).task_id for _ in range(3)]

        page = task_service.list_tasks(USER_ID, limit=1, offset=1)

        assert [t.id for t in page] == [ids[1]]


class TestDeleteTask:
    """Tests for TaskService.delete_task."""

    def test_deletes_task_and_results(self, task_service, job_client, db, store, task_id):
        """Test that deleting a task removes its results."""
        job_client.statuses = [remote_result("SUCCEEDED", urls=["https://r/1.png"])]
        task_service.get_task_status(USER_ID, task_id)

        task_service.delete_task(USER_ID, task_id)

        assert store.get_task(task_id) is None
        assert db.rows(RESULTS_TABLE) == []
        with pytest.raises(TaskNotFoundError):
            task_service.get_task_status(USER_ID, task_id)

    def test_other_user_cannot_delete(self, task_service, store, task_id):
        """Test that another user's task cannot be deleted."""
        with pytest.raises(TaskNotFoundError):
            task_service.delete_task(OTHER_USER_ID, task_id)

        assert store.get_task(task_id) is not None


# =============================================================================
# save_result_locally
# =============================================================================

@pytest.fixture
def result_id(task_service, job_client, store, task_id):
    job_client.statuses = [remote_result("SUCCEEDED", urls=["https://dashscope.test/out/1.png"])]
    return task_service.get_task_status(USER_ID, task_id).results[0].id


class TestSaveResult:
    """Tests for TaskService.save_result_locally."""

    def test_saves_into_storage(self, task_service, db, store, download_client, result_id):
        """Test copying a result into the bucket and linking it."""
        saved = task_service.save_result_locally(USER_ID, result_id)

        # Downloaded the remote image
        assert [str(r.url) for r in download_client.requests] == ["https://dashscope.test/out/1.png"]

        # Stored under the edited folder
        upload = store.get_upload(saved.saved_image_id, user_id=USER_ID)
        assert upload["type"] == "image"
        assert upload["key"].startswith("smartphoto/edited/")
        assert upload["key"].endswith(".png")
        assert saved.url == upload["url"]
        assert db.storage.objects[upload["key"]] == (b"\x89PNG fake", "image/png")

        # Result points at the upload
        assert store.get_result(result_id)["saved_image_id"] == saved.saved_image_id

    def test_second_save_returns_same_image(self, task_service, db, download_client, result_id):
        """Test that saving twice downloads once."""
        first = task_service.save_result_locally(USER_ID, result_id)
        second = task_service.save_result_locally(USER_ID, result_id)

        assert second == first
        assert len(download_client.requests) == 1
        assert len(db.storage.objects) == 1

    def test_deleted_saved_image_can_be_saved_again(self, task_service, store, result_id):
        """Test re-saving after the saved upload was deleted."""
        first = task_service.save_result_locally(USER_ID, result_id)
        store.delete_upload(first.saved_image_id)

        second = task_service.save_result_locally(USER_ID, result_id)

        assert second.saved_image_id != first.saved_image_id

    def test_other_user_cannot_save(self, task_service, result_id):
        """Test that another user's result looks missing."""
        with pytest.raises(ResultNotFoundError):
            task_service.save_result_locally(OTHER_USER_ID, result_id)

    def test_missing_result(self, task_service, random_id):
        """Test saving an unknown result id."""
        with pytest.raises(ResultNotFoundError):
            task_service.save_result_locally(USER_ID, random_id)

    def test_download_failure_writes_nothing(self, store, job_client, storage, db, result_id):
        """Test that an HTTP error on download writes nothing."""
        service = TaskService(store, job_client, storage, make_download_client(status_code=404))
        uploads_before = len(db.rows(UPLOADS_TABLE))

        with pytest.raises(ResultDownloadError) as exc_info:
            service.save_result_locally(USER_ID, result_id)

        assert exc_info.value.status_code == 500
        assert len(db.rows(UPLOADS_TABLE)) == uploads_before
        assert store.get_result(result_id)["saved_image_id"] is None

    def test_download_transport_error(self, store, job_client, storage, result_id):
        """Test that a network error on download is wrapped."""
        client = make_download_client(error=httpx.ConnectError("connection refused"))
        service = TaskService(store, job_client, storage, client)

        with pytest.raises(ResultDownloadError):
            service.save_result_locally(USER_ID, result_id)

    def test_storage_failure_writes_nothing(self, task_service, db, store, result_id):
        """Test that a bucket failure leaves no upload row."""
        db.storage.fail_uploads = True
        uploads_before = len(db.rows(UPLOADS_TABLE))

        with pytest.raises(StorageUploadError):
            task_service.save_result_locally(USER_ID, result_id)

        assert len(db.rows(UPLOADS_TABLE)) == uploads_before
        assert store.get_result(result_id)["saved_image_id"] is None

    def test_upload_row_failure_removes_object(self, task_service, db, result_id):
        """Test that a failed row insert deletes the stored object."""
        db.failures[(UPLOADS_TABLE, "insert")] = RuntimeError("connection reset")

        with pytest.raises(TaskStoreError):
            task_service.save_result_locally(USER_ID, result_id)

        assert db.storage.objects == {}

    def test_non_image_content_type_stored_as_png(self, store, job_client, storage, db, result_id):
        """Test the content type fallback for saved results."""
        client = make_download_client(content_type="application/octet-stream")
        service = TaskService(store, job_client, storage, client)

        saved = service.save_result_locally(USER_ID, result_id)

        upload = store.get_upload(saved.saved_image_id)
        assert db.storage.objects[upload["key"]][1] == "image/png"
