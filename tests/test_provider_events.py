"""
Unit tests for the in-process session change channel in za.egovsa.auth.provider.events
"""

import asyncio

from za.egovsa.auth.model.session import AuthChangeEvent, SessionChange
from za.egovsa.auth.provider.events import SessionChannel
from tests.test_helpers import make_session


def signed_in():
    return SessionChange(event=AuthChangeEvent.SIGNED_IN, session=make_session())


def signed_out():
    return SessionChange(event=AuthChangeEvent.SIGNED_OUT)


class TestSessionChannel:
    async def test_changes_delivered_in_publish_order(self):
        channel = SessionChannel()
        subscription = channel.subscribe()
        first, second = signed_in(), signed_out()

        channel.publish(first)
        channel.publish(second)
        subscription.unsubscribe()

        received = [change async for change in subscription]
        assert received == [first, second]

    async def test_every_subscriber_gets_every_change(self):
        channel = SessionChannel()
        one = channel.subscribe()
        two = channel.subscribe()
        change = signed_in()

        channel.publish(change)
        one.unsubscribe()
        two.unsubscribe()

        assert [c async for c in one] == [change]
        assert [c async for c in two] == [change]

    async def test_no_delivery_after_unsubscribe(self):
        channel = SessionChannel()
        subscription = channel.subscribe()
        subscription.unsubscribe()

        channel.publish(signed_in())

        assert subscription.active is False
        assert [c async for c in subscription] == []

    async def test_unsubscribe_is_idempotent(self):
        channel = SessionChannel()
        subscription = channel.subscribe()
        subscription.unsubscribe()
        subscription.unsubscribe()
        assert [c async for c in subscription] == []

    async def test_publish_without_subscribers(self):
        SessionChannel().publish(signed_out())

    async def test_iteration_waits_for_changes(self):
        channel = SessionChannel()
        subscription = channel.subscribe()
        change = signed_in()

        async def publish_later():
            await asyncio.sleep(0)
            channel.publish(change)

        publisher = asyncio.create_task(publish_later())
        received = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        await publisher
        assert received == change
