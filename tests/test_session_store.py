"""
Unit tests for the last-write-wins session store in za.egovsa.auth.app.session_store

A FakeProvider publishes session changes on a real SessionChannel, and the profile
repository is mocked to return a profile for whatever user id it is asked about.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from za.egovsa.auth.app.profiles import ProfileFetcher, ProfileRepository
from za.egovsa.auth.app.session_store import SessionStore
from za.egovsa.auth.errors import ProfileNotFound, ProviderUnreachable
from za.egovsa.auth.model.session import AuthChangeEvent
from tests.test_helpers import FakeProvider, make_profile, make_session


async def settle(rounds: int = 10) -> None:
    """Give the listener task a chance to drain pushed changes."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def repository():
    repository = AsyncMock(spec=ProfileRepository)
    repository.get_by_id.side_effect = lambda user_id: make_profile(user_id)
    return repository


@pytest.fixture
def profiles(repository):
    return ProfileFetcher(repository, timeout=1.0)


@pytest.fixture
async def store_factory(profiles):
    stores = []

    def build(provider):
        store = SessionStore(provider, profiles)
        stores.append(store)
        return store

    yield build

    for store in stores:
        await store.close()


class TestInitialize:
    async def test_no_session(self, store_factory):
        store = store_factory(FakeProvider())
        await store.initialize()

        assert store.session is None
        assert store.user is None

    async def test_restored_session_loads_profile(self, store_factory):
        session = make_session()
        store = store_factory(FakeProvider(session))
        await store.initialize()

        assert store.session == session
        assert store.user is not None
        assert store.user.id == session.user_id

    async def test_unreachable_provider_starts_signed_out(self, store_factory):
        provider = FakeProvider()
        provider.get_session.side_effect = ProviderUnreachable("offline")
        store = store_factory(provider)

        with patch("za.egovsa.auth.app.session_store.sentry_sdk"):
            await store.initialize()

        assert store.session is None

    async def test_pushed_change_beats_initial_query(self, store_factory):
        stale = make_session()
        fresh = make_session()
        provider = FakeProvider()
        store = store_factory(provider)

        async def racing_get_session():
            provider.push(fresh)
            await settle()
            return stale

        provider.get_session.side_effect = racing_get_session
        await store.initialize()
        await settle()

        assert store.session == fresh
        assert store.user.id == fresh.user_id

    async def test_pushed_sign_out_beats_initial_query(self, store_factory):
        provider = FakeProvider()
        store = store_factory(provider)

        async def racing_get_session():
            provider.push(None)
            await settle()
            return make_session()

        provider.get_session.side_effect = racing_get_session
        await store.initialize()
        await settle()

        assert store.session is None
        assert store.user is None


class TestSessionChanges:
    async def test_last_change_wins(self, store_factory):
        provider = FakeProvider()
        store = store_factory(provider)
        await store.initialize()

        sessions = [make_session(), make_session(), None, make_session()]
        for session in sessions:
            provider.push(session)
        await settle()

        assert store.session == sessions[-1]
        assert store.user.id == sessions[-1].user_id

    async def test_sign_out_push_clears_profile(self, store_factory):
        session = make_session()
        provider = FakeProvider(session)
        store = store_factory(provider)
        await store.initialize()

        provider.push(None)
        await settle()

        assert store.session is None
        assert store.user is None

    async def test_profile_never_lags_behind_session(self, store_factory, repository):
        first = make_session()
        provider = FakeProvider(first)
        store = store_factory(provider)
        await store.initialize()
        assert store.user.id == first.user_id

        lookup_started = asyncio.Event()
        release = asyncio.Event()

        async def slow_lookup(user_id):
            lookup_started.set()
            await release.wait()
            return make_profile(user_id)

        repository.get_by_id.side_effect = slow_lookup
        second = make_session()
        provider.push(second)
        await asyncio.wait_for(lookup_started.wait(), timeout=1)

        assert store.session == second
        assert store.user is None

        release.set()
        await settle()
        assert store.user.id == second.user_id

    async def test_token_refresh_replaces_session(self, store_factory, repository):
        session = make_session()
        provider = FakeProvider(session)
        store = store_factory(provider)
        await store.initialize()

        refreshed = make_session(user_id=session.user_id)
        provider.push(refreshed, AuthChangeEvent.TOKEN_REFRESHED)
        await settle()

        assert store.session == refreshed
        assert store.user.id == session.user_id

    async def test_profile_failure_keeps_session(self, store_factory, repository):
        repository.get_by_id.side_effect = ProfileNotFound("missing")
        provider = FakeProvider()
        store = store_factory(provider)
        await store.initialize()

        session = make_session()
        provider.push(session)
        await settle()

        assert store.session == session
        assert store.user is None

    async def test_listener_survives_errors(self, store_factory, profiles):
        provider = FakeProvider()
        store = store_factory(provider)
        await store.initialize()
        profiles.fetch = AsyncMock(side_effect=[RuntimeError("boom"), None])

        with patch("za.egovsa.auth.app.session_store.sentry_sdk") as sentry:
            provider.push(make_session())
            await settle()
            last = make_session()
            provider.push(last)
            await settle()

        sentry.capture_exception.assert_called_once()
        assert store.session == last


class TestSignOut:
    async def test_sign_out_clears_state(self, store_factory):
        provider = FakeProvider(make_session())
        store = store_factory(provider)
        await store.initialize()

        await store.sign_out()
        await settle()

        provider.sign_out.assert_awaited_once()
        assert store.session is None
        assert store.user is None

    async def test_sign_out_clears_state_when_provider_fails(self, store_factory):
        provider = FakeProvider(make_session())
        provider.sign_out.side_effect = ProviderUnreachable("offline")
        store = store_factory(provider)
        await store.initialize()

        with patch("za.egovsa.auth.app.session_store.sentry_sdk"):
            await store.sign_out()

        assert store.session is None
        assert store.user is None


class TestClose:
    async def test_no_changes_after_close(self, store_factory):
        provider = FakeProvider()
        store = store_factory(provider)
        await store.initialize()

        await store.close()
        provider.push(make_session())
        await settle()

        assert store.session is None

    async def test_close_is_idempotent(self, store_factory):
        store = store_factory(FakeProvider())
        await store.initialize()
        await store.close()
        await store.close()

