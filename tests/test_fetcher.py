"""Tests for the retrying HTTP wrapper."""

import json

import httpx
import pytest

from tasktalk_service.services.fetcher import backoff_delay, fetch_with_retry

URL = "https://upstream.test/resource"


def make_client(outcomes: list) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
    """Client whose transport replays outcomes: an int status or an exception class."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        outcome = outcomes[min(len(seen), len(outcomes)) - 1]
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome("connection refused", request=request)
        return httpx.Response(outcome, json={"attempt": len(seen)})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen


def test_backoff_doubles_and_caps() -> None:
    assert [backoff_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]


@pytest.mark.asyncio
async def test_first_success_returns_without_waiting(fake_sleep, sleeps) -> None:
    client, seen = make_client([200])

    response = await fetch_with_retry(client, "GET", URL, sleep=fake_sleep)

    assert response.status_code == 200
    assert len(seen) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_two_connection_failures_then_success(fake_sleep, sleeps) -> None:
    client, seen = make_client([httpx.ConnectError, httpx.ConnectError, 200])

    response = await fetch_with_retry(client, "GET", URL, sleep=fake_sleep)

    assert response.status_code == 200
    assert len(seen) == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_persistent_connection_failure_is_raised(fake_sleep, sleeps) -> None:
    client, seen = make_client([httpx.ConnectError])

    with pytest.raises(httpx.ConnectError):
        await fetch_with_retry(client, "GET", URL, max_attempts=3, sleep=fake_sleep)

    assert len(seen) == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_error_status_is_retried_until_success(fake_sleep, sleeps) -> None:
    client, seen = make_client([503, 200])

    response = await fetch_with_retry(client, "GET", URL, sleep=fake_sleep)

    assert response.status_code == 200
    assert len(seen) == 2
    assert sleeps == [1.0]


@pytest.mark.asyncio
async def test_last_attempt_response_is_returned_whatever_its_status(fake_sleep) -> None:
    client, seen = make_client([500])

    response = await fetch_with_retry(client, "POST", URL, max_attempts=4, sleep=fake_sleep)

    assert response.status_code == 500
    assert response.json() == {"attempt": 4}
    assert len(seen) == 4


@pytest.mark.asyncio
async def test_request_options_are_passed_through(fake_sleep) -> None:
    client, seen = make_client([200])

    await fetch_with_retry(client, "POST", URL, sleep=fake_sleep, json={"a": 1}, headers={"X-Test": "yes"})

    assert seen[0].headers["X-Test"] == "yes"
    assert json.loads(seen[0].content) == {"a": 1}
