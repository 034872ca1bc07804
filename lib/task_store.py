# =============================================================================
# lib/task_store.py - Relational Persistence for Uploads, Tasks and Results
# =============================================================================
# Typed wrapper around the three tables behind the image edit workflow:
# - uploads             files owned by a user (originals and saved results)
# - image_edit_tasks    one row per remote edit job
# - image_edit_results  output images of succeeded tasks
#
# Foreign keys (see supabase/migrations) delete results with their task and
# null out result.saved_image_id when the saved upload is removed.
#
# Relations are assembled explicitly: callers fetch tasks first, then the
# related uploads/results by id in a second query.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import uuid4

from supabase import Client

from lib.utils import ApplicationError, normalize_uuid

logger = logging.getLogger(__name__)

UPLOADS_TABLE = "uploads"
TASKS_TABLE = "image_edit_tasks"
RESULTS_TABLE = "image_edit_results"

# Unique constraint that makes result inserts idempotent
RESULTS_CONFLICT_KEY = "task_id,result_image_url"


class TaskStoreError(ApplicationError):
    """A database call failed."""

    def __init__(self, operation: str, error: Exception | str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Failed to {operation}: {error}",
            code="TASK_STORE_ERROR",
            suggestion="Check Supabase availability and that the migrations were applied",
            details=details,
        )


class TaskStore:
    """
    Database access for the image edit workflow.

    Every method is a single PostgREST round trip. Failures are wrapped in
    TaskStoreError.

    Example:
        store = TaskStore(SupabaseClient.get_client())
        task = store.get_task(task_id, user_id=user_id)
    """

    def __init__(self, client: Client):
        self._client = client

    def _run(self, operation: str, query: Any, **details: Any) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"Task store failed to {operation}: {e}")
            raise TaskStoreError(operation, e, details=details) from e
        return response.data or []

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    def insert_upload(self, user_id: str, key: str, url: str, media_type: str) -> dict[str, Any]:
        data = {
            "id": str(uuid4()),
            "user_id": normalize_uuid(user_id),
            "key": key,
            "url": url,
            "type": media_type,
        }
        rows = self._run(
            "insert upload",
            self._client.table(UPLOADS_TABLE).insert(data),
            key=key,
        )
        if not rows:
            raise TaskStoreError("insert upload", "insert returned no data", details={"key": key})
        return rows[0]

    def get_upload(self, upload_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        """Fetch an upload, optionally restricted to its owner."""
        query = self._client.table(UPLOADS_TABLE).select("*").eq("id", normalize_uuid(upload_id))
        if user_id is not None:
            query = query.eq("user_id", normalize_uuid(user_id))
        rows = self._run("fetch upload", query.limit(1), upload_id=upload_id)
        return rows[0] if rows else None

    def get_uploads_by_ids(self, upload_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        ids = sorted({normalize_uuid(i) for i in upload_ids if i})
        if not ids:
            return {}
        rows = self._run(
            "fetch uploads",
            self._client.table(UPLOADS_TABLE).select("*").in_("id", ids),
        )
        return {row["id"]: row for row in rows}

    def list_uploads(self, user_id: str, limit: int, offset: int) -> list[dict[str, Any]]:
        query = (
            self._client.table(UPLOADS_TABLE)
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        return self._run("list uploads", query)

    def delete_upload(self, upload_id: str) -> None:
        self._run(
            "delete upload",
            self._client.table(UPLOADS_TABLE).delete().eq("id", normalize_uuid(upload_id)),
            upload_id=upload_id,
        )

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def insert_task(self, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a task row. An `id` is generated when absent."""
        row = {"id": str(uuid4()), **data}
        rows = self._run(
            "insert task",
            self._client.table(TASKS_TABLE).insert(row),
            remote_task_id=data.get("remote_task_id"),
        )
        if not rows:
            raise TaskStoreError("insert task", "insert returned no data")
        return rows[0]

    def get_task(self, task_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        """Fetch a task, optionally restricted to its owner."""
        query = self._client.table(TASKS_TABLE).select("*").eq("id", normalize_uuid(task_id))
        if user_id is not None:
            query = query.eq("user_id", normalize_uuid(user_id))
        rows = self._run("fetch task", query.limit(1), task_id=task_id)
        return rows[0] if rows else None

    def list_tasks(self, user_id: str, limit: int, offset: int) -> list[dict[str, Any]]:
        """Tasks of one user, newest first."""
        query = (
            self._client.table(TASKS_TABLE)
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        return self._run("list tasks", query, user_id=str(user_id))

    def update_task_if_status(
        self,
        task_id: str,
        update: dict[str, Any],
        expected_statuses: list[str],
    ) -> dict[str, Any] | None:
        """
        Update a task only while its status is one of `expected_statuses`.

        Returns:
            The updated row, or None when the row was missing or had already
            moved on (e.g. a concurrent poll made it terminal).
        """
        query = (
            self._client.table(TASKS_TABLE)
            .update(update)
            .eq("id", normalize_uuid(task_id))
            .in_("status", expected_statuses)
        )
        rows = self._run("update task", query, task_id=task_id)
        return rows[0] if rows else None

    def delete_task(self, task_id: str) -> None:
        """Delete a task. Its results are removed by the FK cascade."""
        self._run(
            "delete task",
            self._client.table(TASKS_TABLE).delete().eq("id", normalize_uuid(task_id)),
            task_id=task_id,
        )

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def insert_results(self, task_id: str, result_urls: list[str]) -> None:
        """
        Record result images for a task.

        Upserts on (task_id, result_image_url) and ignores duplicates, so two
        polls observing the same success never create duplicate rows.
        """
        if not result_urls:
            return
        task_id = normalize_uuid(task_id)
        rows = [
            {"id": str(uuid4()), "task_id": task_id, "result_image_url": url}
            for url in dict.fromkeys(result_urls)
        ]
        query = self._client.table(RESULTS_TABLE).upsert(
            rows,
            on_conflict=RESULTS_CONFLICT_KEY,
            ignore_duplicates=True,
        )
        self._run("insert results", query, task_id=task_id)

    def get_results_for_tasks(self, task_ids: Iterable[str]) -> dict[str, list[dict[str, Any]]]:
        """Results grouped by task id, oldest first within each task."""
        ids = sorted({normalize_uuid(i) for i in task_ids})
        grouped: dict[str, list[dict[str, Any]]] = {task_id: [] for task_id in ids}
        if not ids:
            return grouped
        rows = self._run(
            "fetch results",
            self._client.table(RESULTS_TABLE).select("*").in_("task_id", ids).order("created_at"),
        )
        for row in rows:
            grouped.setdefault(row["task_id"], []).append(row)
        return grouped

    def get_results(self, task_id: str) -> list[dict[str, Any]]:
        return self.get_results_for_tasks([task_id]).get(normalize_uuid(task_id), [])

    def get_result(self, result_id: str) -> dict[str, Any] | None:
        rows = self._run(
            "fetch result",
            self._client.table(RESULTS_TABLE).select("*").eq("id", normalize_uuid(result_id)).limit(1),
            result_id=result_id,
        )
        return rows[0] if rows else None

    def attach_saved_image(self, result_id: str, upload_id: str) -> dict[str, Any] | None:
        """
        Point a result at its saved upload.

        Only succeeds while saved_image_id is still null; returns None when
        another request attached an image first.
        """
        query = (
            self._client.table(RESULTS_TABLE)
            .update({"saved_image_id": normalize_uuid(upload_id)})
            .eq("id", normalize_uuid(result_id))
            .is_("saved_image_id", "null")
        )
        rows = self._run("attach saved image", query, result_id=result_id)
        return rows[0] if rows else None

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def ping(self) -> None:
        """Cheap query used by the readiness probe."""
        self._run("ping database", self._client.table(TASKS_TABLE).select("id").limit(1))
