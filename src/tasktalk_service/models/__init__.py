"""Pydantic models for request/response schemas."""

from .auth import REFRESH_ERROR, Credential, LoginCompleted, SessionStatus
from .task import Task, TaskListResponse, TaskParseRequest, TaskStatus

__all__ = [
    "Task",
    "TaskStatus",
    "TaskParseRequest",
    "TaskListResponse",
    "Credential",
    "SessionStatus",
    "LoginCompleted",
    "REFRESH_ERROR",
]
