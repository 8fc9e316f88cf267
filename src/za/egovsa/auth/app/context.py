"""
Auth Context

The AuthContext is the one object the UI layer holds. It is built explicitly (see
app.runtime) and handed to whoever needs it; the UI reads its state and changes it only
through the operations below.

Launch decision (device-local, evaluated at launch):

    has provider session? --yes--> AUTHENTICATED
        | no
    has local PIN?        --yes--> PIN_UNLOCK --correct PIN--> AUTHENTICATED
        | no                            | wrong PIN: PinMismatch, stays PIN_UNLOCK
    ONBOARDING

ONBOARDING hands off to registration with OTP; PIN_UNLOCK may hand off to PIN reset with
OTP. Both flows are driven through request_otp / verify_otp and then
complete_registration / reset_pin.
"""

import hashlib
import logging
from enum import Enum
from typing import Optional

from za.egovsa.auth.app.config import PIN_LENGTH
from za.egovsa.auth.app.metrics import MetricsClient, NoOpMetricsClient
from za.egovsa.auth.app.profiles import ProfileFetcher
from za.egovsa.auth.app.session_store import SessionStore
from za.egovsa.auth.errors import AuthError, PinMismatch
from za.egovsa.auth.model.session import AuthChangeEvent, Session, SessionChange
from za.egovsa.auth.model.user import ProfilePatch, UserProfile
from za.egovsa.auth.provider.backend import BackendClient, WelcomeResponse
from za.egovsa.auth.vault.pin import PinVault

logger = logging.getLogger(__name__)


class LaunchState(str, Enum):
    AUTHENTICATED = "AUTHENTICATED"
    PIN_UNLOCK = "PIN_UNLOCK"
    ONBOARDING = "ONBOARDING"


def validate_pin(pin: str) -> str:
    """Check that pin is exactly PIN_LENGTH ASCII digits.

    Raises:
        ValueError: If it is not
    """
    if len(pin) != PIN_LENGTH or not (pin.isascii() and pin.isdigit()):
        raise ValueError(f"PIN must be exactly {PIN_LENGTH} digits")
    return pin


def hash_pin(pin: str) -> str:
    """SHA-256 hex digest of the PIN, as stored in the profile row."""
    return hashlib.sha256(pin.encode()).hexdigest()


class AuthContext:
    def __init__(
        self,
        sessions: SessionStore,
        profiles: ProfileFetcher,
        vault: PinVault,
        backend: Optional[BackendClient] = None,
        metrics_client: Optional[MetricsClient] = None,
    ) -> None:
        self.sessions = sessions
        self.profiles = profiles
        self.vault = vault
        self.backend = backend
        self.metrics_client = metrics_client or NoOpMetricsClient()
        self.loading = True
        self.state: Optional[LaunchState] = None

    @property
    def session(self) -> Optional[Session]:
        return self.sessions.session

    @property
    def user(self) -> Optional[UserProfile]:
        return self.profiles.current

    async def initialize(self) -> None:
        """Restore any provider session and load its profile."""
        try:
            await self.sessions.initialize()
        finally:
            self.loading = False

    async def launch(self) -> LaunchState:
        """
        Decide where the app starts.

        Raises:
            SecureStorageFailure: If the PIN vault cannot be read without a session
        """
        if self.sessions.session is not None:
            self.state = LaunchState.AUTHENTICATED
        elif await self.vault.has_pin():
            self.state = LaunchState.PIN_UNLOCK
        else:
            self.state = LaunchState.ONBOARDING
        logger.info("Launch decision: %s", self.state.value)
        return self.state

    async def unlock(self, pin: str) -> LaunchState:
        """
        Unlock with the local PIN and load the profile by the cached email.

        Raises:
            AuthError: If the launch decision was not PIN_UNLOCK
            PinMismatch: If the PIN is wrong; the state stays PIN_UNLOCK
            SecureStorageFailure: If the vault cannot be read
        """
        if self.state != LaunchState.PIN_UNLOCK:
            raise AuthError("Not awaiting PIN unlock")

        if not await self.vault.verify(pin):
            self.metrics_client.increment(
                "egovsa.auth.pin.verify", 1, tag_dict={"outcome": "mismatch"}
            )
            raise PinMismatch("Incorrect PIN")

        self.metrics_client.increment(
            "egovsa.auth.pin.verify", 1, tag_dict={"outcome": "ok"}
        )
        self.state = LaunchState.AUTHENTICATED
        await self.refresh_user()
        return self.state

    async def check_pin_exists(self) -> bool:
        return await self.vault.has_pin()

    async def verify_pin(self, pin: str) -> bool:
        return await self.vault.verify(pin)

    async def save_pin(self, pin: str) -> None:
        await self.vault.save(validate_pin(pin))

    def update_user_profile(self, patch: ProfilePatch) -> Optional[UserProfile]:
        return self.profiles.merge_partial(patch)

    async def refresh_user(self) -> Optional[UserProfile]:
        """Reload the profile by the email cached at registration."""
        email = await self.vault.get_email()
        if email is None:
            logger.info("No cached email to refresh the profile with")
            return None
        return await self.profiles.fetch_by_email(
            email, is_current=self._matches_session
        )

    def _matches_session(self, user_id: str) -> bool:
        session = self.sessions.session
        return session is None or session.user_id == user_id

    async def request_otp(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        create_user: bool = True,
    ) -> None:
        await self.sessions.provider.sign_in_with_otp(
            email=email, phone=phone, create_user=create_user
        )

    async def verify_otp(
        self, token: str, email: Optional[str] = None, phone: Optional[str] = None
    ) -> Session:
        """Exchange an OTP for a session and apply it without waiting for the push."""
        session = await self.sessions.provider.verify_otp(token, email=email, phone=phone)
        await self.sessions.apply_change(
            SessionChange(event=AuthChangeEvent.SIGNED_IN, session=session)
        )
        self.state = LaunchState.AUTHENTICATED
        return session

    def _require_session(self) -> Session:
        session = self.sessions.session
        if session is None:
            raise AuthError("A verified session is required")
        return session

    async def complete_registration(
        self, first_name: str, last_name: str, email: str, pin: str
    ) -> UserProfile:
        """
        Finish onboarding after OTP verification.

        Upserts the profile (including the PIN hash), then saves the PIN locally and caches
        the email for PIN-based unlock on later launches. Nothing is written to the vault
        if the upsert fails.
        """
        session = self._require_session()
        validate_pin(pin)
        full_name = f"{first_name} {last_name}".strip()
        profile = await self.profiles.save(
            session.user_id,
            first_name=first_name,
            last_name=last_name,
            full_name=full_name,
            email=email,
            pin=hash_pin(pin),
        )
        await self.vault.save(pin)
        await self.vault.remember_email(email)
        logger.info("Registration completed for user %s", session.user_id)
        return profile

    async def reset_pin(self, pin: str) -> None:
        """Replace the PIN locally and its hash in the profile row."""
        session = self._require_session()
        validate_pin(pin)
        await self.profiles.save(session.user_id, pin=hash_pin(pin))
        await self.vault.save(pin)
        logger.info("PIN reset for user %s", session.user_id)

    async def welcome(self) -> WelcomeResponse:
        if self.backend is None:
            raise AuthError("No backend configured")
        user_id = self.session.user_id if self.session is not None else None
        if user_id is None and self.user is not None:
            user_id = self.user.id
        if user_id is None:
            raise AuthError("Nobody is signed in")
        return await self.backend.fetch_welcome(user_id)

    async def sign_out(self, hard_reset: bool = False) -> None:
        """Sign out; with hard_reset also forget the stored PIN and email."""
        await self.sessions.sign_out()
        self.state = None
        if hard_reset:
            await self.clear_credentials()

    async def clear_credentials(self) -> None:
        await self.vault.clear()

    async def close(self) -> None:
        await self.sessions.close()
