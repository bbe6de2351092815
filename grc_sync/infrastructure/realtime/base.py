"""
Base interfaces and data structures for row-change feeds.

A change feed delivers ``ChangeEvent`` notifications for one table of one
organization to the handler that subscribed to it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from grc_sync.core.enums import ChangeEventType
from grc_sync.utils.date_utils import get_current_timestamp, parse_datetime, to_isoformat


@dataclass
class ChangeEvent:
    """
    One row change as delivered by the backend.

    ``new`` is empty for DELETE and ``old`` is empty for INSERT.
    """
    table: str
    event_type: ChangeEventType
    org_id: str
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)
    commit_timestamp: datetime = field(default_factory=get_current_timestamp)

    @property
    def record(self) -> Dict[str, Any]:
        """The row snapshot that best describes the change."""
        return self.new or self.old

    @property
    def record_id(self) -> Optional[str]:
        record_id = self.record.get("id")
        return str(record_id) if record_id is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "event_type": self.event_type.value,
            "org_id": self.org_id,
            "new": self.new,
            "old": self.old,
            "commit_timestamp": to_isoformat(self.commit_timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeEvent":
        return cls(
            table=data["table"],
            event_type=ChangeEventType(str(data["event_type"]).upper()),
            org_id=str(data["org_id"]),
            new=data.get("new") or {},
            old=data.get("old") or {},
            commit_timestamp=parse_datetime(data.get("commit_timestamp")) or get_current_timestamp(),
        )


ChangeHandler = Callable[[ChangeEvent], Awaitable[Any]]

logger = logging.getLogger(__name__)


def channel_name(prefix: str, table: str, org_id: str) -> str:
    """Channel carrying one table's changes for one organization."""
    return f"{prefix}:{table}:{org_id}"


class ChangeFeed(ABC):
    """
    Abstract change feed interface.
    """

    def __init__(self, channel_prefix: str = "grc_changes"):
        self.channel_prefix = channel_prefix

    def channel(self, table: str, org_id: str) -> str:
        return channel_name(self.channel_prefix, table, org_id)

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect and drop every subscription."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    @abstractmethod
    async def subscribe(self, table: str, org_id: str, handler: ChangeHandler) -> str:
        """
        Subscribe to INSERT/UPDATE/DELETE changes of ``table`` for ``org_id``.

        Events of one subscription are handed to ``handler`` one at a time in
        delivery order.

        Returns:
            Subscription ID
        """
        pass

    @abstractmethod
    async def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription. In-flight handler calls are not cancelled.

        Returns:
            True if the subscription existed
        """
        pass

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Publish a change to its table/org channel."""
        pass


class Subscription:
    """
    One subscriber of one channel.

    Incoming events are queued and handed to the handler by a dedicated
    worker task, so a slow handler delays only its own channel.
    """

    _STOP = object()

    def __init__(self, subscription_id: str, channel: str, table: str, org_id: str, handler: ChangeHandler):
        self.id = subscription_id
        self.channel = channel
        self.table = table
        self.org_id = org_id
        self.handler = handler
        self.active = True
        self.delivered = 0
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._run(), name=f"change-feed:{self.channel}")

    def accepts(self, event: ChangeEvent) -> bool:
        """Only changes of the subscribed table and organization are handled."""
        return event.table == self.table and event.org_id == self.org_id

    def deliver(self, event: ChangeEvent) -> bool:
        """
        Queue an event for the handler.

        Returns:
            False if the subscription is stopped or the event belongs to
            another table or organization than the channel it arrived on
        """
        if not self.active:
            return False
        if not self.accepts(event):
            logger.warning(
                f"Dropping change of {event.table}/{event.org_id} received on {self.channel}",
                extra={"org_id": self.org_id, "table": self.table},
            )
            return False
        self._queue.put_nowait(event)
        return True

    def stop(self) -> None:
        """Stop accepting events; a handler call already running is left to finish."""
        if not self.active:
            return
        self.active = False
        self._queue.put_nowait(self._STOP)

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def wait_closed(self) -> None:
        """Wait for the worker to exit once the subscription is stopped."""
        if self._worker is not None:
            await self._worker

    @property
    def closed(self) -> bool:
        return self._worker is None or self._worker.done()

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is self._STOP or not self.active:
                    if item is self._STOP:
                        break
                    continue
                await self.handler(item)
                self.delivered += 1
            except Exception as e:
                logger.error(f"Change handler for {self.channel} failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()
        self._drain()

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
