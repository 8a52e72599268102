"""Task-related Pydantic models."""

from datetime import datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


class TaskStatus(IntEnum):
    """Completion status as encoded by the task provider."""

    NOT_COMPLETED = 0
    COMPLETED = 2


class Task(BaseModel):
    """Structured task, validated strictly so malformed fields are rejected rather than coerced."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: StrictStr = Field(..., description="Task title", min_length=1)
    due_date: StrictStr | None = Field(None, alias="dueDate", description="ISO-8601 due timestamp")
    priority: StrictInt | None = Field(None, ge=0, le=3, description="Priority from 0 (none) to 3 (high)")
    tags: list[StrictStr] | None = Field(None, description="Distinct tag names")
    provider_id: str | None = Field(None, alias="id", description="Identifier assigned by the task provider")
    status: TaskStatus = Field(TaskStatus.NOT_COMPLETED, description="Completion status")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def _due_date_is_iso8601(cls, value: str | None) -> str | None:
        if value is None:
            return None
        candidate = value.strip()
        # fromisoformat only accepts a trailing Z from Python 3.11 on
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError(f"dueDate is not an ISO-8601 timestamp: {value!r}") from exc
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _tags_are_a_set(cls, value: list[str] | None) -> list[str] | None:
        """Tags form a set: blank tags are rejected, exact repeats collapse to one."""
        if value is None:
            return None
        if any(not tag.strip() for tag in value):
            raise ValueError("tags must not be blank")
        return list(dict.fromkeys(value))

    def to_provider_payload(self) -> dict[str, Any]:
        """Build the JSON body for the provider's create endpoint."""
        payload = self.model_dump(by_alias=True, exclude_none=True, mode="json", exclude={"provider_id"})
        payload["status"] = int(TaskStatus.NOT_COMPLETED)
        return payload


class TaskParseRequest(BaseModel):
    """Request to parse natural language task input."""

    text: str = Field(
        ...,
        description="Free-text input like 'high priority report due tomorrow'",
        min_length=1,
        max_length=1000,
    )


class TaskListResponse(BaseModel):
    """Tasks currently held by the provider for the session's user."""

    tasks: list[Task]
