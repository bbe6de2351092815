"""
Change feed factory.
"""

import logging
from typing import Optional

from ...core.config import Settings, get_settings
from ...core.enums import ChangeFeedBackend
from ...core.exceptions import ChangeFeedError
from .base import ChangeFeed
from .memory_change_feed import MemoryChangeFeed
from .redis_change_feed import RedisChangeFeed

logger = logging.getLogger(__name__)


def create_change_feed(settings: Optional[Settings] = None) -> ChangeFeed:
    """Build the change feed selected by ``CHANGE_FEED_BACKEND``."""
    settings = settings or get_settings()
    backend = settings.change_feed.backend.lower()

    if backend == ChangeFeedBackend.MEMORY.value:
        feed = MemoryChangeFeed(channel_prefix=settings.change_feed.channel_prefix)
    elif backend == ChangeFeedBackend.REDIS.value:
        feed = RedisChangeFeed(
            url=settings.redis_settings.build_url(),
            channel_prefix=settings.change_feed.channel_prefix,
            max_connections=settings.redis_settings.max_connections,
            poll_timeout=settings.change_feed.poll_timeout,
        )
    else:
        raise ChangeFeedError(f"Unsupported change feed backend: {settings.change_feed.backend}")

    logger.info(f"Using {backend} change feed")
    return feed
