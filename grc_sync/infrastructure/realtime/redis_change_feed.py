"""
Redis Pub/Sub change feed.

Every (table, org) pair is its own channel, so the organization filter is
applied by Redis rather than by the subscriber.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.asyncio import ConnectionPool

from ...core.config import get_settings
from ...core.exceptions import ChangeFeedError
from .base import ChangeEvent, ChangeFeed, ChangeHandler, Subscription

logger = logging.getLogger(__name__)


class RedisChangeFeed(ChangeFeed):
    """
    Redis Pub/Sub change feed.

    A single consumer task reads the pubsub connection and hands each message
    to the queue of every matching subscription.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        channel_prefix: Optional[str] = None,
        max_connections: Optional[int] = None,
        poll_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        super().__init__(channel_prefix or settings.change_feed.channel_prefix)

        self.url = url or settings.redis_settings.build_url()
        self.max_connections = max_connections or settings.redis_settings.max_connections
        self.poll_timeout = poll_timeout or settings.change_feed.poll_timeout

        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._pubsub: Optional[redis.client.PubSub] = None

        self._subscriptions: Dict[str, Subscription] = {}
        self._subscription_counter = 0
        self._is_consuming = False
        self._consume_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        try:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            self._pubsub = self._client.pubsub()

            await self._client.ping()
            logger.info("Redis change feed connected successfully")

        except Exception as e:
            logger.error(f"Failed to connect Redis change feed: {e}")
            raise ChangeFeedError(f"Redis change feed connection failed: {e}")

    async def disconnect(self) -> None:
        try:
            await self._stop_consuming()

            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
            for subscription in subscriptions:
                subscription.stop()
            await asyncio.gather(*(subscription.wait_closed() for subscription in subscriptions))

            if self._pubsub:
                await self._pubsub.aclose()
                self._pubsub = None

            if self._client:
                await self._client.aclose()
                self._client = None

            if self._pool:
                await self._pool.aclose()
                self._pool = None

            logger.info("Redis change feed disconnected")

        except Exception as e:
            logger.error(f"Error disconnecting Redis change feed: {e}")

    async def health_check(self) -> bool:
        try:
            if not self._client:
                return False
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis change feed health check failed: {e}")
            return False

    async def subscribe(self, table: str, org_id: str, handler: ChangeHandler) -> str:
        if not self._pubsub:
            raise ChangeFeedError("Change feed not connected", channel=self.channel(table, org_id))

        self._subscription_counter += 1
        subscription_id = f"sub_{self._subscription_counter}"
        channel = self.channel(table, org_id)

        try:
            await self._pubsub.subscribe(channel)
        except Exception as e:
            logger.error(f"Failed to subscribe to {channel}: {e}")
            raise ChangeFeedError(f"Subscription failed: {e}", channel=channel)

        subscription = Subscription(subscription_id, channel, table, org_id, handler)
        subscription.start()
        self._subscriptions[subscription_id] = subscription
        self._start_consuming()

        logger.info(f"Subscribed to {channel} with ID {subscription_id}")
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        subscription.stop()

        # Leave the Redis channel once nobody listens to it
        if not self._matching(subscription.channel) and self._pubsub:
            try:
                await self._pubsub.unsubscribe(subscription.channel)
            except Exception as e:
                logger.error(f"Failed to unsubscribe from {subscription.channel}: {e}")

        logger.info(f"Unsubscribed from {subscription.channel} (ID: {subscription_id})")
        return True

    async def publish(self, event: ChangeEvent) -> None:
        if not self._client:
            raise ChangeFeedError("Change feed not connected")

        channel = self.channel(event.table, event.org_id)
        try:
            await self._client.publish(channel, json.dumps(event.to_dict(), default=str))
            logger.debug(f"Published {event.event_type.value} on {channel}")
        except Exception as e:
            logger.error(f"Failed to publish change on {channel}: {e}")
            raise ChangeFeedError(f"Publish failed: {e}", channel=channel)

    def _matching(self, channel: str) -> List[Subscription]:
        return [sub for sub in self._subscriptions.values() if sub.channel == channel]

    def _start_consuming(self) -> None:
        if self._is_consuming:
            return
        self._is_consuming = True
        self._consume_task = asyncio.create_task(self._consume_messages())
        logger.info("Started consuming change notifications")

    async def _stop_consuming(self) -> None:
        if not self._is_consuming:
            return
        self._is_consuming = False

        if self._consume_task:
            self._consume_task.cancel()
            try:
                await self._consume_task
            except asyncio.CancelledError:
                pass
            self._consume_task = None

        logger.info("Stopped consuming change notifications")

    async def _consume_messages(self) -> None:
        """Pub/Sub consumption loop."""
        try:
            while self._is_consuming:
                try:
                    redis_message = await self._pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=self.poll_timeout,
                    )
                    if redis_message and redis_message["type"] == "message":
                        self._dispatch(redis_message)

                except asyncio.TimeoutError:
                    continue
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error consuming change notification: {e}")
                    await asyncio.sleep(self.poll_timeout)

        except asyncio.CancelledError:
            logger.info("Change notification consumption cancelled")

    def _dispatch(self, redis_message: Dict[str, Any]) -> None:
        channel = redis_message["channel"]
        try:
            event = ChangeEvent.from_dict(json.loads(redis_message["data"]))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Discarding malformed change notification on {channel}: {e}")
            return

        # The payload must agree with the channel it was published on
        for subscription in self._matching(channel):
            subscription.deliver(event)
