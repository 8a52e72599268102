"""OAuth credential and session models."""

from pydantic import BaseModel, ConfigDict, Field

# Marker attached to a credential whose refresh failed
REFRESH_ERROR = "RefreshAccessTokenError"


class Credential(BaseModel):
    """OAuth token pair for one session.

    Instances are immutable; a refresh produces a new Credential.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    expires_at: float = Field(0.0, description="Absolute expiry as a UNIX timestamp in seconds")
    error: str | None = Field(None, description="Terminal failure marker, set when refresh failed")

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class SessionStatus(BaseModel):
    """Public view of a session's credential. Never exposes tokens."""

    authenticated: bool
    expires_at: float | None = None
    error: str | None = None


class LoginCompleted(BaseModel):
    """Returned once the authorization code has been exchanged."""

    session_id: str
    expires_at: float
