"""Natural-language task extraction through an OpenAI-compatible chat completion API."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import ParseError, ProviderError, TaskValidationError
from ..models.task import Task
from .cache import ResponseCache
from .fetcher import Sleeper, fetch_with_retry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a task parser that converts natural language inputs into structured task data.
Extract the task title, due date, priority and tags from the input.

Return only a JSON object, no explanation, matching this schema:
{
  "title": "string (required, non-empty)",
  "dueDate": "ISO-8601 timestamp, e.g. 2024-01-15T17:00:00+00:00 (omit if none)",
  "priority": "integer from 0 (none) to 3 (high) (omit if none)",
  "tags": ["string"] (omit if none)
}"""

# Fields the model must never set; they belong to the task provider
_PROVIDER_FIELDS = ("id", "status")


def normalize_input(raw_input: str) -> str:
    """Cache key form of a task description."""
    return raw_input.strip().lower()


@dataclass(frozen=True)
class ParseOutcome:
    """Result of validating model output: either a task or an error with the offending content."""

    task: Task | None = None
    error: str | None = None
    raw_content: Any = None

    @property
    def ok(self) -> bool:
        return self.task is not None


def _strip_code_fence(content: str) -> str:
    """Extract JSON from a markdown code block if the model wrapped it in one."""
    if "```json" in content:
        return content.split("```json")[1].split("```")[0]
    if "```" in content:
        return content.split("```")[1].split("```")[0]
    return content


def parse_task_content(content: Any) -> ParseOutcome:
    """
    Decode and validate the model's answer against the Task shape.

    Args:
        content: ``choices[0].message.content``, either JSON text or an already structured object

    Returns:
        ParseOutcome with the task on success, else the error and raw content
    """
    if isinstance(content, str):
        try:
            data = json.loads(_strip_code_fence(content).strip())
        except json.JSONDecodeError as e:
            return ParseOutcome(error=f"Model output is not valid JSON: {e.msg}", raw_content=content)
    elif isinstance(content, dict):
        data = content
    else:
        return ParseOutcome(error="Model returned no usable content", raw_content=content)

    if not isinstance(data, dict):
        return ParseOutcome(error="Model output is not a JSON object", raw_content=content)

    fields = {key: value for key, value in data.items() if key not in _PROVIDER_FIELDS}
    try:
        task = Task.model_validate(fields)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'task'}: {err['msg']}" for err in e.errors()
        )
        return ParseOutcome(error=f"Model output does not match the task schema: {problems}", raw_content=content)

    return ParseOutcome(task=task, raw_content=content)


class NLPInterpreter:
    """Turns free text into a validated Task, memoizing results per normalized input."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        cache: ResponseCache[Task],
        sleep: Sleeper = asyncio.sleep,
    ):
        self._settings = settings
        self._http = http_client
        self._cache = cache
        self._sleep = sleep

    @property
    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._settings.llm_api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }
        if self._settings.llm_referer:
            headers["HTTP-Referer"] = self._settings.llm_referer
        return headers

    @property
    def _completions_url(self) -> str:
        return f"{self._settings.llm_base_url.rstrip('/')}/chat/completions"

    async def _complete(self, raw_input: str) -> Any:
        """Call the model and return the raw answer content."""
        payload = {
            "model": self._settings.llm_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": raw_input},
            ],
        }

        try:
            response = await fetch_with_retry(
                self._http,
                "POST",
                self._completions_url,
                max_attempts=self._settings.retry_max_attempts,
                sleep=self._sleep,
                json=payload,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"LLM provider unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"LLM provider error ({response.status_code}): {response.text[:500]}")
            raise ProviderError(
                f"LLM provider error: {response.reason_phrase or response.status_code}",
                upstream_status=response.status_code,
                detail=response.text[:500],
            )

        try:
            body = response.json()
            return body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                "LLM provider returned an unexpected response shape",
                upstream_status=response.status_code,
            ) from e

    async def interpret(self, raw_input: str) -> Task:
        """
        Convert a free-text task description into a Task.

        Args:
            raw_input: Text like "high priority report due tomorrow"

        Returns:
            The validated Task, possibly from cache

        Raises:
            TaskValidationError: Empty input
            ProviderError: The model call failed
            ParseError: The model's answer is not a valid task
        """
        if not raw_input or not raw_input.strip():
            raise TaskValidationError("Task text must not be empty")

        key = f"nlp-{normalize_input(raw_input)}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        content = await self._complete(raw_input)
        outcome = parse_task_content(content)
        if not outcome.ok:
            logger.warning(f"Rejected model output: {outcome.error} (raw: {str(outcome.raw_content)[:200]!r})")
            raise ParseError(outcome.error or "Invalid model output", raw_content=outcome.raw_content)

        logger.info(f"Parsed task: {outcome.task.title}")
        self._cache.put(key, outcome.task)
        return outcome.task
