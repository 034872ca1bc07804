# =============================================================================
# lib/wanx_client.py - DashScope Wanx Image Edit Client
# =============================================================================
# Thin wrapper around the asynchronous DashScope image edit API:
# - create_job: submit an edit, returns the remote task id
# - query_job: fetch the current status and result URLs of a remote task
# - wait_for_completion / edit_image: blocking poll helpers for scripts
#
# The client is constructed explicitly and passed to the service layer,
# so tests can swap in a fake or an httpx.MockTransport.
#
# Usage:
#   client = WanxJobClient.from_settings(settings)
#   job = client.create_job(url, "colorization", "colorize this photo")
#   result = client.query_job(job.remote_task_id)
# =============================================================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import httpx

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/api/v1"
DEFAULT_MODEL = "wanx2.1-imageedit"
SYNTHESIS_PATH = "/services/aigc/image2image/image-synthesis"
TASKS_PATH = "/tasks"


# =============================================================================
# Errors
# =============================================================================

class RemoteJobError(ApplicationError):
    """The image edit service could not be reached or returned an error."""

    def __init__(
        self,
        message: str,
        code: str = "REMOTE_JOB_ERROR",
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            code=code,
            suggestion="Check DASHSCOPE_API_KEY and the DashScope service status",
            details=details,
        )
        self.status_code = status_code


class RemoteJobFailedError(RemoteJobError):
    """The remote task finished with FAILED."""

    def __init__(self, remote_task_id: str, error_message: str | None):
        super().__init__(
            f"task failed: {error_message or 'unknown error'}",
            code="REMOTE_JOB_FAILED",
            details={"remote_task_id": remote_task_id},
        )
        self.error_message = error_message


class RemoteJobTimeoutError(RemoteJobError):
    """The remote task did not finish within the wait ceiling."""

    def __init__(self, remote_task_id: str, waited: float):
        super().__init__(
            f"task timeout after {waited:.0f}s",
            code="REMOTE_JOB_TIMEOUT",
            details={"remote_task_id": remote_task_id},
        )


# =============================================================================
# Data Types
# =============================================================================

class RemoteJobStatus(str, Enum):
    """
    Task states reported by DashScope.

    Anything outside the four known states parses to UNKNOWN so the caller
    can tell a protocol change apart from a job that is still pending.
    """
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "RemoteJobStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class RemoteJob:
    """A freshly submitted remote task."""
    remote_task_id: str
    status: RemoteJobStatus


@dataclass(frozen=True)
class RemoteJobResult:
    """Snapshot of a remote task as returned by query_job."""
    remote_task_id: str
    status: RemoteJobStatus
    raw_status: str | None = None
    result_urls: list[str] = field(default_factory=list)
    error_message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (RemoteJobStatus.SUCCEEDED, RemoteJobStatus.FAILED)


# =============================================================================
# Client
# =============================================================================

class WanxJobClient:
    """
    Client for the DashScope Wanx image edit API.

    Each call is a single HTTP request; nothing is retried automatically.

    Args:
        api_key: DashScope API key
        base_url: API base URL (without trailing slash)
        model: Image edit model name
        timeout: Per-request timeout in seconds
        http_client: Optional preconfigured httpx.Client (tests, proxies)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not api_key:
            raise ValueError("DASHSCOPE_API_KEY is required")

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Any) -> "WanxJobClient":
        """Build a client from the application Settings."""
        return cls(
            api_key=settings.DASHSCOPE_API_KEY,
            base_url=settings.DASHSCOPE_BASE_URL,
            model=settings.DASHSCOPE_MODEL,
            timeout=settings.DASHSCOPE_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._http.close()

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        headers.update(kwargs.pop("headers", {}))
        url = f"{self._base_url}{path}"

        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise RemoteJobError(
                f"Failed to connect to image edit service: {e}",
                code="REMOTE_TRANSPORT_ERROR",
                details={"url": url},
            ) from e

        if not response.is_success:
            raise RemoteJobError(
                f"image edit api error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                details={"url": url},
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteJobError(
                "image edit api returned a non-JSON body",
                code="REMOTE_INVALID_RESPONSE",
                details={"url": url},
            ) from e

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_job(
        self,
        base_image_url: str,
        function: str,
        prompt: str,
        mask_image_url: str | None = None,
        strength: float | None = None,
        count: int = 1,
    ) -> RemoteJob:
        """
        Submit an asynchronous image edit task.

        Args:
            base_image_url: Public URL of the image to edit
            function: Edit function (e.g. "colorization")
            prompt: Edit instruction
            mask_image_url: Mask for description_edit_with_mask
            strength: Edit strength 0.1-1.0
            count: Number of images to generate (1-4)

        Returns:
            RemoteJob with the DashScope task id

        Raises:
            RemoteJobError: On transport errors or non-2xx responses
        """
        input_payload: dict[str, Any] = {
            "base_image_url": base_image_url,
            "function": function,
            "prompt": prompt,
        }
        if mask_image_url:
            input_payload["mask_image_url"] = mask_image_url

        parameters: dict[str, Any] = {"n": count}
        if strength is not None:
            parameters["strength"] = strength

        body = self._request(
            "POST",
            SYNTHESIS_PATH,
            headers={"X-DashScope-Async": "enable"},
            json={"model": self._model, "input": input_payload, "parameters": parameters},
        )

        output = body.get("output") or {}
        remote_task_id = output.get("task_id")
        if not remote_task_id:
            raise RemoteJobError(
                "image edit api response is missing output.task_id",
                code="REMOTE_INVALID_RESPONSE",
                details={"request_id": body.get("request_id")},
            )

        logger.info(f"Created remote image edit task {remote_task_id} ({function})")
        return RemoteJob(
            remote_task_id=remote_task_id,
            status=RemoteJobStatus.parse(output.get("task_status")),
        )

    def query_job(self, remote_task_id: str) -> RemoteJobResult:
        """
        Fetch the current state of a remote task.

        Raises:
            RemoteJobError: On transport errors or non-2xx responses
        """
        body = self._request("GET", f"{TASKS_PATH}/{remote_task_id}")
        output = body.get("output") or {}
        raw_status = output.get("task_status")

        # Individual results may fail (code/message without url); skip those
        result_urls = [r["url"] for r in output.get("results") or [] if r.get("url")]

        return RemoteJobResult(
            remote_task_id=remote_task_id,
            status=RemoteJobStatus.parse(raw_status),
            raw_status=raw_status,
            result_urls=result_urls,
            error_message=output.get("message") or output.get("code"),
        )

    def wait_for_completion(
        self,
        remote_task_id: str,
        max_wait: float = 300.0,
        poll_interval: float = 3.0,
    ) -> RemoteJobResult:
        """
        Poll a remote task until it succeeds.

        Raises:
            RemoteJobFailedError: The task reported FAILED
            RemoteJobTimeoutError: Still running after `max_wait` seconds
        """
        started = self._clock()

        while self._clock() - started < max_wait:
            result = self.query_job(remote_task_id)

            if result.status == RemoteJobStatus.SUCCEEDED:
                return result
            if result.status == RemoteJobStatus.FAILED:
                raise RemoteJobFailedError(remote_task_id, result.error_message)

            self._sleep(poll_interval)

        raise RemoteJobTimeoutError(remote_task_id, self._clock() - started)

    def edit_image(
        self,
        base_image_url: str,
        prompt: str,
        function: str = "description_edit",
        mask_image_url: str | None = None,
        strength: float | None = None,
        count: int = 1,
    ) -> list[str]:
        """Create a task, wait for it, and return the result image URLs."""
        job = self.create_job(
            base_image_url=base_image_url,
            function=function,
            prompt=prompt,
            mask_image_url=mask_image_url,
            strength=strength,
            count=count,
        )
        return self.wait_for_completion(job.remote_task_id).result_urls
