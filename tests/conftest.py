"""Shared fixtures: fake upstream services behind an httpx mock transport."""

import json
import time
from collections.abc import Iterator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from tasktalk_service.config import Settings
from tasktalk_service.dependencies import ServiceContainer, build_services, get_services
from tasktalk_service.main import app
from tasktalk_service.models.auth import Credential

LLM_BASE = "https://llm.test/api/v1"
TASK_BASE = "https://tasks.test/open/v1"
TOKEN_URL = "https://tasks.test/oauth/token"


class FakeUpstream:
    """Plays the LLM provider, the OAuth token endpoint and the task provider."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.llm_status = 200
        self.llm_content: Any = json.dumps(
            {"title": "Write report", "dueDate": "2024-01-16T17:00:00+00:00", "priority": 3, "tags": ["work"]}
        )
        self.token_status = 200
        self.token_payload: dict[str, Any] = {
            "access_token": "new-access",
            "refresh_token": "new-refresh",
            "expires_in": 3600,
        }
        self.task_status = 200
        self.tasks: list[dict[str, Any]] = []
        self._next_id = 1

    def calls(self, path_suffix: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path.endswith(path_suffix) and (method is None or r.method == method)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/chat/completions"):
            if self.llm_status != 200:
                return httpx.Response(self.llm_status, json={"error": "upstream failure"})
            return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": self.llm_content}}]})

        if path.endswith("/oauth/token"):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self.token_payload)

        if path.endswith("/task"):
            if self.task_status != 200:
                return httpx.Response(self.task_status, json={"errorMessage": "failure"})
            if request.method == "GET":
                return httpx.Response(200, json=self.tasks)
            body = json.loads(request.content)
            body["id"] = f"task-{self._next_id}"
            self._next_id += 1
            self.tasks.append(body)
            return httpx.Response(200, json=body)

        return httpx.Response(404)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        llm_base_url=LLM_BASE,
        llm_api_key=SecretStr("test-key"),
        llm_referer="http://localhost:3000",
        task_api_base_url=TASK_BASE,
        oauth_authorize_url="https://tasks.test/oauth/authorize",
        oauth_token_url=TOKEN_URL,
        oauth_client_id="client-id",
        oauth_client_secret=SecretStr("client-secret"),
        oauth_redirect_uri="http://testserver/auth/callback",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def services(settings: Settings, http_client: httpx.AsyncClient, fake_sleep) -> ServiceContainer:
    return build_services(settings, http_client, sleep=fake_sleep)


@pytest.fixture
def client(services: ServiceContainer) -> Iterator[TestClient]:
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(services: ServiceContainer) -> str:
    """A signed-in session holding a credential valid for an hour."""
    credential = Credential(access_token="access", refresh_token="refresh", expires_at=time.time() + 3600)
    return services.sessions.create(credential)
