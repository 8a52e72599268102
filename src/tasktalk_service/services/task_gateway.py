"""Authorized calls to the task provider's REST API."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import AuthError, ProviderError, TaskValidationError
from ..models.task import Task
from .cache import ResponseCache
from .fetcher import Sleeper, fetch_with_retry
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


def task_list_key(session_id: str) -> str:
    return f"tasks-{session_id}"


class TaskGateway:
    """Lists and creates tasks for a session, caching list reads until the next write."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        cache: ResponseCache[list[Task]],
        sleep: Sleeper = asyncio.sleep,
    ):
        self._settings = settings
        self._http = http_client
        self._tokens = token_manager
        self._cache = cache
        self._sleep = sleep

    @property
    def _tasks_url(self) -> str:
        return f"{self._settings.task_api_base_url.rstrip('/')}/task"

    async def _send(self, session_id: str | None, method: str, **request_kwargs: Any) -> Any:
        credential = await self._tokens.get_valid_credential(session_id)
        headers = {
            "Authorization": f"Bearer {credential.access_token}",
            "Accept": "application/json",
        }

        try:
            response = await fetch_with_retry(
                self._http,
                method,
                self._tasks_url,
                max_attempts=self._settings.retry_max_attempts,
                sleep=self._sleep,
                headers=headers,
                **request_kwargs,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Task provider unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(f"Task provider rejected the credential ({response.status_code})")
        if not response.is_success:
            logger.error(f"Task provider error ({response.status_code}): {response.text[:500]}")
            raise ProviderError(
                f"Task provider error: {response.reason_phrase or response.status_code}",
                upstream_status=response.status_code,
                detail=response.text[:500],
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Task provider returned invalid JSON", upstream_status=response.status_code) from e

    async def list_tasks(self, session_id: str | None) -> list[Task]:
        """
        Return the session's tasks, served from cache while fresh.

        Raises:
            AuthError: The session has no usable credential
            ProviderError: The provider call failed
        """
        if session_id:
            cached = self._cache.get(task_list_key(session_id))
            if cached is not None:
                return cached

        body = await self._send(session_id, "GET")
        items = body.get("tasks", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise ProviderError("Task provider returned an unexpected list shape")

        tasks: list[Task] = []
        for item in items:
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping provider task that failed validation: {e.error_count()} error(s)")

        # session_id is known-good once _send has authorized it
        self._cache.put(task_list_key(session_id), tasks)
        return tasks

    async def create_task(self, session_id: str | None, task: Task | Mapping[str, Any]) -> Task:
        """
        Create a task with the provider and invalidate the session's cached list.

        Args:
            session_id: Caller's session
            task: Validated Task or a mapping to validate

        Returns:
            The provider's representation, including its assigned id

        Raises:
            TaskValidationError: The task is malformed
            AuthError: The session has no usable credential
            ProviderError: The provider call failed
        """
        if not isinstance(task, Task):
            try:
                task = Task.model_validate(task)
            except ValidationError as e:
                details = e.errors(include_url=False, include_context=False)
                raise TaskValidationError("Invalid task data", details=details) from e

        body = await self._send(session_id, "POST", json=task.to_provider_payload())

        # only after the provider confirmed the write
        self._cache.invalidate(task_list_key(session_id))

        try:
            created = Task.model_validate(body)
        except ValidationError as e:
            raise ProviderError("Task provider returned an invalid task") from e

        logger.info(f"Task created: {created.title} ({created.provider_id})")
        return created
