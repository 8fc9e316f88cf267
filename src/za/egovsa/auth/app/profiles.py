"""Profile lookup and the in-memory UserProfile.

ProfileRepository talks to the `profiles` table. ProfileFetcher owns the UserProfile held
in application state: lookups replace it wholesale, patches merge into it, and a failed
lookup never leaves a half-populated profile behind.
"""

import asyncio
import logging
from datetime import datetime, timezone
from time import time
from typing import Any, Awaitable, Callable, Optional

import sentry_sdk
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from za.egovsa.auth.app.metrics import MetricsClient, NoOpMetricsClient
from za.egovsa.auth.errors import ProfileNotFound
from za.egovsa.auth.model.profile import Profile, upsert_profile_stmt
from za.egovsa.auth.model.user import ProfilePatch, UserProfile

logger = logging.getLogger(__name__)


class ProfileRepository:
    def __init__(
        self, database_session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        self.database_session_maker = database_session_maker

    async def get_by_id(self, profile_id: str) -> UserProfile:
        """
        Raises:
            ProfileNotFound: If no profile has this id
        """
        async with self.database_session_maker() as database_session:
            stmt = select(Profile).where(Profile.id == profile_id)
            profile: Optional[Profile] = (await database_session.scalars(stmt)).first()
            if profile is None:
                raise ProfileNotFound(f"No profile for id {profile_id}")
            return UserProfile.model_validate(profile)

    async def get_by_email(self, email: str) -> UserProfile:
        """
        Raises:
            ProfileNotFound: If no profile has this email
        """
        async with self.database_session_maker() as database_session:
            stmt = (
                select(Profile)
                .where(Profile.email == email)
                .order_by(Profile.created_at.desc())
            )
            profile: Optional[Profile] = (await database_session.scalars(stmt)).first()
            if profile is None:
                raise ProfileNotFound(f"No profile for email {email}")
            return UserProfile.model_validate(profile)

    async def upsert(self, profile_id: str, **values: Any) -> UserProfile:
        now = datetime.now(timezone.utc)
        async with self.database_session_maker() as database_session:
            async with database_session.begin():
                stmt = upsert_profile_stmt(profile_id, now, **values)
                profile = (
                    await database_session.scalars(
                        stmt, execution_options={"populate_existing": True}
                    )
                ).one()
                return UserProfile.model_validate(profile)


class ProfileFetcher:
    """
    Keeps the signed-in user's profile in memory.

    Lookup failures are logged and reported, never raised, so the app stays usable in a
    "signed in, profile pending" state.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        timeout: float = 10.0,
        metrics_client: Optional[MetricsClient] = None,
    ) -> None:
        self.repository = repository
        self.timeout = timeout
        self.metrics_client = metrics_client or NoOpMetricsClient()
        self.current: Optional[UserProfile] = None

    async def _lookup(
        self, label: str, lookup: Callable[[], Awaitable[UserProfile]]
    ) -> Optional[UserProfile]:
        start = time()
        outcome = "found"
        try:
            async with asyncio.timeout(self.timeout):
                return await lookup()
        except ProfileNotFound:
            outcome = "not_found"
            logger.info("No profile found for %s", label)
        except (SQLAlchemyError, OSError, TimeoutError, ValidationError) as e:
            outcome = "error"
            sentry_sdk.capture_exception(e)
            logger.exception("Error fetching profile for %s", label)
        finally:
            self.metrics_client.increment(
                "egovsa.auth.profile.fetch", 1, tag_dict={"outcome": outcome}
            )
            self.metrics_client.timer("egovsa.auth.profile.fetch.time", time() - start)
        return None

    async def fetch(
        self, user_id: str, is_current: Optional[Callable[[str], bool]] = None
    ) -> Optional[UserProfile]:
        """
        Look up the profile for user_id and make it the current profile.

        is_current is checked once the lookup returns; when it reports that user_id no
        longer belongs to the current session, the result is discarded.
        """
        logger.debug("Fetching profile for user %s", user_id)
        if self.current is not None and self.current.id != user_id:
            self.current = None

        profile = await self._lookup(
            f"user {user_id}", lambda: self.repository.get_by_id(user_id)
        )

        if is_current is not None and not is_current(user_id):
            logger.debug("Discarding profile for superseded user %s", user_id)
            return None

        if profile is None:
            return None

        self.current = profile
        return profile

    async def fetch_by_email(
        self, email: str, is_current: Optional[Callable[[str], bool]] = None
    ) -> Optional[UserProfile]:
        """Look up the newest profile for email and make it the current profile.

        is_current is checked against the returned profile's id, as in fetch.
        """
        profile = await self._lookup(
            "cached email", lambda: self.repository.get_by_email(email)
        )
        if profile is None:
            return None

        if is_current is not None and not is_current(profile.id):
            logger.debug("Discarding profile %s fetched by email", profile.id)
            return None

        self.current = profile
        return profile

    async def save(self, user_id: str, **values: Any) -> UserProfile:
        """Upsert the profile row and make the stored result the current profile.

        Unlike lookups, failures propagate: the caller is completing a form and must be
        told the save did not happen.
        """
        async with asyncio.timeout(self.timeout):
            profile = await self.repository.upsert(user_id, **values)
        self.current = profile
        return profile

    def merge_partial(self, patch: ProfilePatch) -> Optional[UserProfile]:
        """Apply patch to the current profile. A no-op when there is no profile."""
        if self.current is None:
            return None
        self.current = patch.apply(self.current)
        return self.current

    def clear(self) -> None:
        self.current = None
