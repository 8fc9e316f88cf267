"""Provider session models.

A Session is the token bundle issued by the hosted auth provider. It is immutable: every
refresh or sign-in produces a new Session that replaces the previous one wholesale.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class AuthChangeEvent(str, Enum):
    """Provider session change event names."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class Session(BaseModel):
    """Authenticated identity issued by the auth provider.

    Holds the access and refresh tokens, the end of the validity window and the id of the
    user the tokens were issued to.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user_id: str
    email: Optional[str] = None

    def is_expired(
        self, now: Optional[datetime] = None, margin: timedelta = timedelta(seconds=10)
    ) -> bool:
        """Check whether the session is expired, or will be within margin."""
        if now is None:
            now = datetime.now(timezone.utc)
        return self.expires_at - margin <= now

    @classmethod
    def from_token_response(
        cls, body: Dict[str, Any], now: Optional[datetime] = None
    ) -> "Session":
        """Build a Session from a provider token response.

        The provider returns either an absolute expires_at (epoch seconds) or a relative
        expires_in; expires_at wins when both are present.

        Raises:
            ValueError: If the response carries no tokens or no user
        """
        if now is None:
            now = datetime.now(timezone.utc)

        access_token = body.get("access_token")
        refresh_token = body.get("refresh_token")
        user: Dict[str, Any] = body.get("user") or {}
        user_id = user.get("id")

        if not access_token or not refresh_token or not user_id:
            raise ValueError("Token response is missing tokens or user")

        expires_at_value = body.get("expires_at")
        if expires_at_value is not None:
            expires_at = datetime.fromtimestamp(int(expires_at_value), tz=timezone.utc)
        else:
            expires_at = now + timedelta(seconds=int(body.get("expires_in", 3600)))

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=body.get("token_type", "bearer"),
            expires_at=expires_at,
            user_id=str(user_id),
            email=user.get("email"),
        )


class SessionChange(BaseModel):
    """One provider notification: what happened and the session that is now current."""

    model_config = ConfigDict(frozen=True)

    event: AuthChangeEvent
    session: Optional[Session] = None
