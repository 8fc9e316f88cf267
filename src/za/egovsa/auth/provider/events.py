"""In-process channel for provider session change notifications.

Every subscriber gets its own unbounded queue, so a slow consumer never drops a
notification and each consumer observes changes in publish order.
"""

import asyncio
import logging
from typing import List, Optional

from za.egovsa.auth.model.session import SessionChange

logger = logging.getLogger(__name__)


class Subscription:
    """Async iterator over session changes with an explicit unsubscribe handle."""

    def __init__(self, channel: "SessionChannel") -> None:
        self._channel = channel
        self._queue: asyncio.Queue[Optional[SessionChange]] = asyncio.Queue()
        self.active = True

    def _deliver(self, change: Optional[SessionChange]) -> None:
        self._queue.put_nowait(change)

    def unsubscribe(self) -> None:
        """Stop receiving changes. Iteration ends once queued changes are consumed."""
        if not self.active:
            return
        self.active = False
        self._channel._remove(self)
        self._deliver(None)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SessionChange:
        change = await self._queue.get()
        if change is None:
            raise StopAsyncIteration
        return change


class SessionChannel:
    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, change: SessionChange) -> None:
        logger.debug(
            "Publishing %s to %d subscriber(s)",
            change.event.value,
            len(self._subscriptions),
        )
        for subscription in list(self._subscriptions):
            subscription._deliver(change)

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
