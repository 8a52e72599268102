"""Error taxonomy shared by the ingestion pipeline and the HTTP layer."""

from typing import Any


class TaskTalkError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class TaskValidationError(TaskTalkError):
    """Malformed caller input. Never retried."""

    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ParseError(TaskTalkError):
    """The language model answered with content that is not a valid task."""

    status_code = 400
    kind = "parse_error"

    def __init__(self, message: str, raw_content: Any = None):
        super().__init__(message)
        self.raw_content = raw_content

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["raw_content"] = self.raw_content
        return payload


class AuthError(TaskTalkError):
    """Credential missing, expired beyond repair, or refresh failed."""

    status_code = 401
    kind = "unauthorized"


class RateLimitExceeded(TaskTalkError):
    """Caller exceeded its request budget for the current window."""

    status_code = 429
    kind = "rate_limited"

    def __init__(self, message: str, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderError(TaskTalkError):
    """Upstream LLM or task provider failed after retries were exhausted."""

    status_code = 502
    kind = "provider_error"

    def __init__(self, message: str, upstream_status: int | None = None, detail: Any = None):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.upstream_status is not None:
            payload["upstream_status"] = self.upstream_status
        return payload
