"""OAuth sign-in endpoints for the task provider."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..dependencies import ServiceContainer, get_services, get_session_id
from ..errors import AuthError, TaskValidationError
from ..models.auth import LoginCompleted, SessionStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
async def login(services: ServiceContainer = Depends(get_services)) -> RedirectResponse:
    """Redirect the user to the task provider's consent page."""
    state = services.sessions.issue_state()
    return RedirectResponse(services.token_manager.authorization_url(state))


@router.get("/callback", response_model=LoginCompleted)
async def callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    services: ServiceContainer = Depends(get_services),
) -> LoginCompleted:
    """
    Complete the authorization-code flow.

    Exchanges the code for a credential and opens a session. The returned
    session id must be sent back in the X-Session-Id header.
    """
    if error:
        logger.warning(f"Provider denied authorization: {error}")
        raise AuthError(f"Authorization denied: {error}")
    if not code:
        raise TaskValidationError("Missing authorization code")
    if not services.sessions.consume_state(state):
        raise AuthError("Unknown or reused OAuth state")

    credential = await services.token_manager.exchange_code(code)
    session_id = services.sessions.create(credential)
    return LoginCompleted(session_id=session_id, expires_at=credential.expires_at)


@router.get("/session", response_model=SessionStatus)
async def session_status(
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> SessionStatus:
    """Report whether the session is signed in and any terminal refresh error."""
    credential = services.sessions.get(session_id)
    if credential is None:
        return SessionStatus(authenticated=False)
    return SessionStatus(
        authenticated=credential.error is None,
        expires_at=credential.expires_at,
        error=credential.error,
    )


@router.post("/logout")
async def logout(
    session_id: str | None = Depends(get_session_id),
    services: ServiceContainer = Depends(get_services),
) -> dict[str, bool]:
    """End the session and drop its credential."""
    if session_id:
        services.sessions.remove(session_id)
    return {"success": True}
