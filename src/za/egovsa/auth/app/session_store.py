"""Session store: the single source of truth for "is anyone logged in".

The store applies provider session changes last-write-wins. Each change replaces the
session wholesale and either reloads the profile (session present) or clears it (session
absent). The initial provider query at startup only counts if no pushed change has been
observed while it was in flight.
"""

import asyncio
import contextlib
import logging
from typing import Optional

import sentry_sdk

from za.egovsa.auth.app.metrics import MetricsClient, NoOpMetricsClient
from za.egovsa.auth.app.profiles import ProfileFetcher
from za.egovsa.auth.errors import AuthError, ProviderUnreachable
from za.egovsa.auth.model.session import Session, SessionChange
from za.egovsa.auth.model.user import UserProfile
from za.egovsa.auth.provider.client import AuthProviderClient
from za.egovsa.auth.provider.events import Subscription

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(
        self,
        provider: AuthProviderClient,
        profiles: ProfileFetcher,
        metrics_client: Optional[MetricsClient] = None,
    ) -> None:
        self.provider = provider
        self.profiles = profiles
        self.metrics_client = metrics_client or NoOpMetricsClient()
        self._session: Optional[Session] = None
        self._changes_seen = 0
        self._subscription: Optional[Subscription] = None
        self._listener: Optional[asyncio.Task[None]] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[UserProfile]:
        return self.profiles.current

    def _is_current_user(self, user_id: str) -> bool:
        return self._session is not None and self._session.user_id == user_id

    async def _sync_profile(self) -> None:
        session = self._session
        if session is None:
            self.profiles.clear()
            return
        await self.profiles.fetch(session.user_id, is_current=self._is_current_user)

    async def initialize(self) -> None:
        """
        Subscribe to provider session changes and load the existing session, if any.

        Provider failures are logged; the store then starts with no session.
        """
        self._subscription = self.provider.on_session_change()
        self._listener = asyncio.create_task(self._listen(self._subscription))

        changes_before = self._changes_seen
        try:
            session = await self.provider.get_session()
        except ProviderUnreachable as e:
            sentry_sdk.capture_exception(e)
            logger.warning("Unable to restore session: %s", e)
            session = None

        logger.info(
            "Initial session fetched: has_session=%s user_id=%s",
            session is not None,
            session.user_id if session is not None else None,
        )

        if self._changes_seen != changes_before:
            logger.debug("Initial session superseded by a pushed change")
            return

        self._session = session
        await self._sync_profile()

    async def _listen(self, subscription: Subscription) -> None:
        async for change in subscription:
            try:
                await self.apply_change(change)
            except Exception as e:
                sentry_sdk.capture_exception(e)
                logger.exception("Error applying session change %s", change.event.value)

    async def apply_change(self, change: SessionChange) -> None:
        """Replace the session with the change's payload and resync the profile."""
        logger.info(
            "Session changed: event=%s has_session=%s",
            change.event.value,
            change.session is not None,
        )
        self.metrics_client.increment(
            "egovsa.auth.session.change", 1, tag_dict={"event": change.event.value}
        )
        self._changes_seen += 1
        self._session = change.session
        await self._sync_profile()

    async def sign_out(self) -> None:
        """
        Sign out at the provider and clear the local session and profile.

        The local state is cleared whatever the provider call does.
        """
        outcome = "ok"
        try:
            await self.provider.sign_out()
        except AuthError as e:
            outcome = "error"
            sentry_sdk.capture_exception(e)
            logger.warning("Provider sign-out failed, clearing local session anyway: %s", e)
        finally:
            self._changes_seen += 1
            self._session = None
            self.profiles.clear()
            self.metrics_client.increment(
                "egovsa.auth.sign_out", 1, tag_dict={"outcome": outcome}
            )

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.exceptions.CancelledError):
                await self._listener
        self._subscription = None
        self._listener = None

