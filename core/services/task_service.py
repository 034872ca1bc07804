# =============================================================================
# core/services/task_service.py - Image Edit Task Business Logic
# =============================================================================
# Orchestrates the remote job client, the task store and object storage:
# - create_task: validate the original image, submit the remote job, persist
# - get_task_status: reconcile remote status into the local row on each poll
# - delete_task / list_tasks: owner-scoped housekeeping
# - save_result_locally: copy a remote result image into the user's bucket
#
# Status reconciliation happens only when a client polls. Terminal tasks are
# answered from the database without contacting the remote service.
# =============================================================================

import logging
from uuid import UUID

import httpx

from app.exceptions import (
    ImageNotFoundError,
    InvalidImageTypeError,
    RemoteStatusUnknownError,
    ResultDownloadError,
    ResultNotFoundError,
    TaskNotFoundError,
)
from core.models.image_edit import (
    NON_TERMINAL_STATUSES,
    EditResult,
    ImageEditRequest,
    SavedResultResponse,
    TaskCreateResponse,
    TaskDetail,
    TaskStatus,
    TaskStatusResponse,
)
from core.models.upload import MediaType, UploadResponse
from core.services.storage_service import EDITED_FOLDER, StorageService
from lib.task_store import TaskStore, TaskStoreError
from lib.utils import utc_now_iso
from lib.wanx_client import RemoteJobStatus, WanxJobClient

logger = logging.getLogger(__name__)

# Exhaustive mapping; RemoteJobStatus.UNKNOWN is deliberately absent
REMOTE_TO_LOCAL_STATUS: dict[RemoteJobStatus, TaskStatus] = {
    RemoteJobStatus.PENDING: TaskStatus.PENDING,
    RemoteJobStatus.RUNNING: TaskStatus.RUNNING,
    RemoteJobStatus.SUCCEEDED: TaskStatus.SUCCEEDED,
    RemoteJobStatus.FAILED: TaskStatus.FAILED,
}

DEFAULT_RESULT_CONTENT_TYPE = "image/png"


def map_remote_status(remote_status: RemoteJobStatus) -> TaskStatus | None:
    """Local status for a remote one, or None when the remote status is unknown."""
    return REMOTE_TO_LOCAL_STATUS.get(remote_status)


class TaskService:
    """
    Service for image edit task operations.

    All collaborators are injected so tests can replace them.

    Args:
        store: Database access for uploads/tasks/results
        job_client: DashScope image edit client
        storage: Object storage for saved results
        http_client: Client used to download remote result images
    """

    def __init__(
        self,
        store: TaskStore,
        job_client: WanxJobClient,
        storage: StorageService,
        http_client: httpx.Client,
    ):
        self._store = store
        self._jobs = job_client
        self._storage = storage
        self._http = http_client

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_task(self, user_id: UUID | str, request: ImageEditRequest) -> TaskCreateResponse:
        """
        Create an image edit task.

        Args:
            user_id: The caller
            request: Validated edit request

        Returns:
            TaskCreateResponse with status pending

        Raises:
            ImageNotFoundError: Original image missing or owned by someone else
            InvalidImageTypeError: Original upload is not an image
            RemoteJobError: The remote service rejected the job
        """
        user_id = str(user_id)
        image_id = str(request.original_image_id)
        image = self._store.get_upload(image_id, user_id=user_id)
        if not image:
            raise ImageNotFoundError(image_id)
        if image.get("type") != MediaType.IMAGE.value:
            raise InvalidImageTypeError(image_id, str(image.get("type")))

        mask_image_url = str(request.mask_image_url) if request.mask_image_url else None

        job = self._jobs.create_job(
            base_image_url=image["url"],
            function=request.edit_function.value,
            prompt=request.prompt,
            mask_image_url=mask_image_url,
            strength=request.strength,
            count=request.image_count,
        )

        task = self._store.insert_task({
            "user_id": user_id,
            "original_image_id": image["id"],
            "edit_function": request.edit_function.value,
            "prompt": request.prompt,
            "mask_image_url": mask_image_url,
            "strength": request.strength,
            "image_count": request.image_count,
            "status": TaskStatus.PENDING.value,
            "remote_task_id": job.remote_task_id,
        })

        logger.info(f"Created task {task['id']} (remote {job.remote_task_id}) for user {user_id}")
        return TaskCreateResponse(task_id=task["id"], status=TaskStatus.PENDING)

    # -------------------------------------------------------------------------
    # Status / reconciliation
    # -------------------------------------------------------------------------

    def get_task_status(self, user_id: UUID | str, task_id: UUID | str) -> TaskStatusResponse:
        """
        Return the task status, reconciling with the remote job if needed.

        Terminal tasks are served from the database. For pending/running
        tasks the remote job is queried once; a forward transition is
        persisted, otherwise only updated_at is refreshed. On success the
        result rows are written before the status flips so a failed write
        can be retried by the next poll.

        Raises:
            TaskNotFoundError: Missing or not owned by the caller
            RemoteStatusUnknownError: Remote service reported an unknown status
            RemoteJobError: Remote query failed
        """
        task_id = str(task_id)
        task = self._get_owned_task(user_id, task_id)
        current = TaskStatus(task["status"])

        if current.is_terminal:
            return self._status_response(task)

        remote = self._jobs.query_job(task["remote_task_id"])
        new_status = map_remote_status(remote.status)

        if new_status is None:
            logger.warning(
                f"Task {task_id}: remote task {task['remote_task_id']} reported "
                f"unrecognized status {remote.raw_status!r}; leaving row unchanged"
            )
            raise RemoteStatusUnknownError(task_id, str(remote.raw_status))

        now = utc_now_iso()

        if not current.can_transition_to(new_status):
            # Status stays; only record the check, and only if no other poll moved the row
            touched = self._store.update_task_if_status(task["id"], {"updated_at": now}, [current.value])
            return self._status_response(touched or self._get_owned_task(user_id, task_id))

        update = {"status": new_status.value, "updated_at": now}

        if new_status == TaskStatus.SUCCEEDED:
            self._store.insert_results(task["id"], remote.result_urls)
            update["completed_at"] = now
        elif new_status == TaskStatus.FAILED:
            update["completed_at"] = now
            update["error_message"] = remote.error_message or "unknown error"

        updated = self._store.update_task_if_status(task["id"], update, NON_TERMINAL_STATUSES)

        if updated is None:
            # A concurrent poll already moved the row; report what it stored
            task = self._get_owned_task(user_id, task_id)
        else:
            task = updated
            logger.info(f"Task {task_id}: {current.value} -> {new_status.value}")

        return self._status_response(task)

    def _status_response(self, task: dict) -> TaskStatusResponse:
        status = TaskStatus(task["status"])
        results: list[EditResult] = []
        if status == TaskStatus.SUCCEEDED:
            results = [self._to_result(r) for r in self._store.get_results(task["id"])]

        return TaskStatusResponse(
            task_id=task["id"],
            status=status,
            error_message=task.get("error_message") if status == TaskStatus.FAILED else None,
            results=results,
            completed_at=task.get("completed_at"),
        )

    # -------------------------------------------------------------------------
    # Delete / list
    # -------------------------------------------------------------------------

    def delete_task(self, user_id: UUID | str, task_id: UUID | str) -> None:
        """
        Delete a task owned by the caller. Results are removed by the
        database cascade.

        Raises:
            TaskNotFoundError: Missing or not owned by the caller
        """
        task = self._get_owned_task(user_id, task_id)
        self._store.delete_task(task["id"])
        logger.info(f"Deleted task {task_id} for user {user_id}")

    def list_tasks(self, user_id: UUID | str, limit: int = 20, offset: int = 0) -> list[TaskDetail]:
        """
        List the caller's tasks, newest first, with original image and results.

        Related rows are loaded in two extra queries and stitched together.
        """
        tasks = self._store.list_tasks(str(user_id), limit=limit, offset=offset)
        if not tasks:
            return []

        uploads = self._store.get_uploads_by_ids(t["original_image_id"] for t in tasks)
        results = self._store.get_results_for_tasks(t["id"] for t in tasks)

        details = []
        for task in tasks:
            original = uploads.get(task["original_image_id"])
            details.append(TaskDetail(
                id=task["id"],
                edit_function=task["edit_function"],
                prompt=task["prompt"],
                mask_image_url=task.get("mask_image_url"),
                strength=task.get("strength"),
                image_count=task.get("image_count") or 1,
                status=task["status"],
                error_message=task.get("error_message"),
                created_at=task["created_at"],
                updated_at=task.get("updated_at"),
                completed_at=task.get("completed_at"),
                original_image=UploadResponse(**original) if original else None,
                results=[self._to_result(r) for r in results.get(task["id"], [])],
            ))
        return details

    # -------------------------------------------------------------------------
    # Save result
    # -------------------------------------------------------------------------

    def save_result_locally(self, user_id: UUID | str, result_id: UUID | str) -> SavedResultResponse:
        """
        Copy a remote result image into the caller's storage.

        Idempotent: a result that was already saved returns the existing
        upload. If the download or the storage upload fails, nothing is
        written and the call can be retried.

        Raises:
            ResultNotFoundError: Missing, or parent task owned by someone else
            ResultDownloadError: Remote image could not be fetched
            StorageUploadError: Upload to the bucket failed
        """
        user_id, result_id = str(user_id), str(result_id)
        result = self._store.get_result(result_id)
        if not result or not self._store.get_task(result["task_id"], user_id=user_id):
            raise ResultNotFoundError(result_id)

        existing = self._saved_image(result)
        if existing:
            return existing

        content, content_type = self._download(result["result_image_url"])
        key = StorageService.build_key(EDITED_FOLDER, content_type=content_type)
        stored = self._storage.upload_bytes(key, content, content_type)

        try:
            upload = self._store.insert_upload(user_id, stored.key, stored.url, MediaType.IMAGE.value)
        except TaskStoreError:
            self._storage.delete(stored.key)
            raise

        if self._store.attach_saved_image(result["id"], upload["id"]) is None:
            # Another save attached its image first; keep theirs
            self._store.delete_upload(upload["id"])
            self._storage.delete(stored.key)
            winner = self._saved_image(self._store.get_result(result["id"]) or {})
            if winner:
                return winner
            raise TaskStoreError("attach saved image", "result row changed concurrently",
                                 details={"result_id": result_id})

        logger.info(f"Saved result {result_id} as upload {upload['id']}")
        return SavedResultResponse(saved_image_id=upload["id"], url=stored.url)

    def _saved_image(self, result: dict) -> SavedResultResponse | None:
        saved_id = result.get("saved_image_id")
        if not saved_id:
            return None
        saved = self._store.get_upload(saved_id)
        if not saved:
            return None
        return SavedResultResponse(saved_image_id=saved["id"], url=saved["url"])

    def _download(self, url: str) -> tuple[bytes, str]:
        try:
            response = self._http.get(url)
        except httpx.RequestError as e:
            raise ResultDownloadError(url, str(e)) from e

        if not response.is_success:
            raise ResultDownloadError(url, f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            content_type = DEFAULT_RESULT_CONTENT_TYPE
        return response.content, content_type

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_owned_task(self, user_id: UUID | str, task_id: UUID | str) -> dict:
        task = self._store.get_task(task_id, user_id=str(user_id))
        if not task:
            raise TaskNotFoundError(str(task_id))
        return task

    @staticmethod
    def _to_result(row: dict) -> EditResult:
        return EditResult(
            id=row["id"],
            result_image_url=row["result_image_url"],
            saved_image_id=row.get("saved_image_id"),
        )
