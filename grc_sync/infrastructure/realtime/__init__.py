"""
Row-change feeds driving the real-time sync listener.
"""

from .base import ChangeEvent, ChangeFeed, ChangeHandler, Subscription, channel_name
from .memory_change_feed import MemoryChangeFeed
from .redis_change_feed import RedisChangeFeed
from .manager import create_change_feed

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeHandler",
    "Subscription",
    "channel_name",
    "MemoryChangeFeed",
    "RedisChangeFeed",
    "create_change_feed",
]
