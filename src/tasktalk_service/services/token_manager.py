"""OAuth token lifecycle for the task provider."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from ..config import Settings
from ..errors import AuthError
from ..models.auth import REFRESH_ERROR, Credential
from .fetcher import Sleeper, fetch_with_retry
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class TokenManager:
    """Acquires, tracks and refreshes the access token of each session.

    A credential is fresh while ``now < expires_at``. A stale credential is
    refreshed once; if that fails the session keeps an errored credential and
    every later access reports an auth error instead of refreshing again.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        sessions: SessionRegistry,
        clock: Callable[[], float] = time.time,
        sleep: Sleeper = asyncio.sleep,
    ):
        self._settings = settings
        self._http = http_client
        self._sessions = sessions
        self._clock = clock
        self._sleep = sleep

    @property
    def _client_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(
            self._settings.oauth_client_id,
            self._settings.oauth_client_secret.get_secret_value(),
        )

    def authorization_url(self, state: str) -> str:
        """Build the provider URL the user is redirected to for consent."""
        url = httpx.URL(
            self._settings.oauth_authorize_url,
            params={
                "client_id": self._settings.oauth_client_id,
                "scope": self._settings.oauth_scope,
                "state": state,
                "redirect_uri": self._settings.oauth_redirect_uri,
                "response_type": "code",
            },
        )
        return str(url)

    def credential_from_grant(self, payload: dict[str, Any], previous_refresh_token: str | None = None) -> Credential:
        """Turn a token endpoint response into a fresh Credential.

        A missing ``expires_in`` yields a credential that is already stale.
        """
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response has no access_token")

        expires_in = payload.get("expires_in")
        expires_at = self._clock() + float(expires_in) if expires_in is not None else 0.0

        return Credential(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or previous_refresh_token,
            expires_at=expires_at,
        )

    async def _request_token(self, form: dict[str, str]) -> dict[str, Any]:
        response = await fetch_with_retry(
            self._http,
            "POST",
            self._settings.oauth_token_url,
            # one attempt: a failed token request becomes errored state, never a retry
            max_attempts=1,
            sleep=self._sleep,
            data=form,
            auth=self._client_auth,
            headers={"Accept": "application/json"},
        )
        if not response.is_success:
            raise AuthError(f"Token endpoint returned {response.status_code}")
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("token response is not an object")
        return body

    async def exchange_code(self, code: str) -> Credential:
        """Exchange an authorization code for the session's first credential."""
        try:
            payload = await self._request_token(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self._settings.oauth_redirect_uri,
                    "scope": self._settings.oauth_scope,
                }
            )
            return self.credential_from_grant(payload)
        except AuthError:
            raise
        except (httpx.HTTPError, TypeError, ValueError) as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise AuthError("Authorization code exchange failed") from e

    async def refresh(self, credential: Credential) -> Credential:
        """
        Exchange the refresh token for a new credential.

        Never raises: a failure returns the previous credential with the error
        marker set.

        Args:
            credential: Stale credential to refresh

        Returns:
            A fresh credential, or the errored previous one
        """
        if not credential.refresh_token:
            logger.warning("Credential has no refresh token")
            return credential.model_copy(update={"error": REFRESH_ERROR})

        try:
            payload = await self._request_token(
                {"grant_type": "refresh_token", "refresh_token": credential.refresh_token}
            )
            refreshed = self.credential_from_grant(payload, previous_refresh_token=credential.refresh_token)
        except (AuthError, httpx.HTTPError, TypeError, ValueError) as e:
            logger.error(f"Token refresh failed: {e}")
            return credential.model_copy(update={"error": REFRESH_ERROR})

        logger.info("Access token refreshed")
        return refreshed

    async def get_valid_credential(self, session_id: str | None) -> Credential:
        """
        Return a usable credential for the session, refreshing it if stale.

        Raises:
            AuthError: No session, an errored credential, or a failed refresh
        """
        if self._sessions.get(session_id) is None:
            raise AuthError("Not signed in")

        async with self._sessions.lock(session_id):
            # re-read: a concurrent request may have refreshed while we waited
            credential = self._sessions.get(session_id)
            if credential is None:
                raise AuthError("Not signed in")
            if credential.error:
                raise AuthError(f"Session credential is invalid: {credential.error}")
            if not credential.is_expired(self._clock()):
                return credential

            refreshed = await self.refresh(credential)
            self._sessions.replace(session_id, refreshed)

        if refreshed.error:
            raise AuthError(f"Session credential is invalid: {refreshed.error}")
        return refreshed
