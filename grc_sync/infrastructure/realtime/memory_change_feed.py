"""
In-process change feed.

Used by tests and single-process deployments: whatever writes to the watched
tables publishes its changes here directly.
"""

import asyncio
import logging
from typing import Dict, List

from .base import ChangeEvent, ChangeFeed, ChangeHandler, Subscription

logger = logging.getLogger(__name__)


class MemoryChangeFeed(ChangeFeed):
    """
    Change feed backed by asyncio queues.

    Each subscription owns a queue and a worker task, so changes of one
    table/org are handled one at a time in publish order while other
    subscriptions proceed independently.
    """

    def __init__(self, channel_prefix: str = "grc_changes"):
        super().__init__(channel_prefix)
        self._subscriptions: Dict[str, Subscription] = {}
        self._subscription_counter = 0
        self._is_connected = False

    async def connect(self) -> None:
        self._is_connected = True
        logger.info("Memory change feed connected")

    async def disconnect(self) -> None:
        subscriptions = list(self._subscriptions.values())
        for subscription_id in list(self._subscriptions):
            await self.unsubscribe(subscription_id)
        # In-flight handlers finish before the feed reports itself closed
        await asyncio.gather(*(subscription.wait_closed() for subscription in subscriptions))
        self._is_connected = False
        logger.info("Memory change feed disconnected")

    async def health_check(self) -> bool:
        return self._is_connected

    async def subscribe(self, table: str, org_id: str, handler: ChangeHandler) -> str:
        self._subscription_counter += 1
        subscription_id = f"sub_{self._subscription_counter}"

        subscription = Subscription(subscription_id, self.channel(table, org_id), table, org_id, handler)
        subscription.start()
        self._subscriptions[subscription_id] = subscription

        logger.info(f"Subscribed to {subscription.channel} with ID {subscription_id}")
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        subscription.stop()
        logger.info(f"Unsubscribed from {subscription.channel} (ID: {subscription_id})")
        return True

    async def publish(self, event: ChangeEvent) -> None:
        channel = self.channel(event.table, event.org_id)
        for subscription in self._matching(channel):
            subscription.deliver(event)

    async def wait_idle(self) -> None:
        """Wait until every subscriber has handled everything published so far."""
        await asyncio.gather(*(sub.join() for sub in list(self._subscriptions.values())))

    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _matching(self, channel: str) -> List[Subscription]:
        return [sub for sub in self._subscriptions.values() if sub.channel == channel]
