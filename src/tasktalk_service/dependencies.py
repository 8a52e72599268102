"""Service wiring and FastAPI dependency providers."""

import asyncio
import logging
from dataclasses import dataclass

import httpx
from fastapi import Depends, Header, Request

from .config import Settings, get_settings
from .errors import AuthError, RateLimitExceeded
from .models.task import Task
from .services.cache import InMemoryStore, ResponseCache
from .services.fetcher import Sleeper
from .services.nlp_interpreter import NLPInterpreter
from .services.rate_limiter import RateLimiter
from .services.sessions import SessionRegistry
from .services.task_gateway import TaskGateway
from .services.token_manager import TokenManager

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


@dataclass
class ServiceContainer:
    """Process-wide collaborators shared by every request."""

    settings: Settings
    http_client: httpx.AsyncClient
    sessions: SessionRegistry
    token_manager: TokenManager
    rate_limiter: RateLimiter
    interpreter: NLPInterpreter
    gateway: TaskGateway

    async def aclose(self) -> None:
        await self.http_client.aclose()


def build_services(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> ServiceContainer:
    """Wire the ingestion pipeline from settings."""
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    sessions = SessionRegistry(state_ttl_seconds=settings.oauth_state_ttl_seconds)
    token_manager = TokenManager(settings, http_client, sessions, sleep=sleep)
    nlp_cache: ResponseCache[Task] = ResponseCache(InMemoryStore(), settings.nlp_cache_ttl_seconds)
    task_cache: ResponseCache[list[Task]] = ResponseCache(InMemoryStore(), settings.task_cache_ttl_seconds)

    return ServiceContainer(
        settings=settings,
        http_client=http_client,
        sessions=sessions,
        token_manager=token_manager,
        rate_limiter=RateLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        interpreter=NLPInterpreter(settings, http_client, nlp_cache, sleep=sleep),
        gateway=TaskGateway(settings, http_client, token_manager, task_cache, sleep=sleep),
    )


def get_services(request: Request) -> ServiceContainer:
    """Return the app's services, building them on first use when lifespan did not run."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        logger.info("Building services lazily")
        services = build_services(get_settings())
        request.app.state.services = services
    return services


def get_session_id(x_session_id: str | None = Header(None, alias=SESSION_HEADER)) -> str | None:
    return x_session_id or None


def require_session(
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> str:
    """Return the session id only when it belongs to a signed-in session."""
    if services.sessions.get(session_id) is None:
        raise AuthError("Not signed in")
    return session_id


def rate_limit_identity(session_id: str | None, services: ServiceContainer) -> str | None:
    """Registered sessions get their own window; anything else shares the anonymous one."""
    if services.sessions.get(session_id) is None:
        return None
    return session_id


def enforce_nlp_rate_limit(
    session_id: str = Depends(require_session),
    services: ServiceContainer = Depends(get_services),
) -> None:
    """Reject the request once the caller has used up its parse budget for the window."""
    limiter = services.rate_limiter
    identity = rate_limit_identity(session_id, services)
    if not limiter.allow(identity):
        raise RateLimitExceeded(
            "Too many parse requests, try again later",
            retry_after=limiter.retry_after(identity),
        )
