"""In-process message events.

The store publishes a ``MessageCreated`` after every committed insert. A
realtime delivery layer subscribes per channel and forwards events to clients;
this module only does the fan-out.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger


@dataclass(frozen=True)
class MessageCreated:
    message_id: int
    channel_id: int
    sender_id: int
    content: str
    sender_is_bot: bool = False
    created_at: Optional[datetime] = None


class MessageEventBus:
    """Fan-out of message events to per-channel subscriber queues."""

    def __init__(self, max_queue_size: int = 256) -> None:
        self.max_queue_size = max_queue_size
        self._subscribers: dict[int, list[asyncio.Queue]] = {}

    def subscribe(self, channel_id: int) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.setdefault(channel_id, []).append(queue)
        return queue

    def unsubscribe(self, channel_id: int, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(channel_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(channel_id, None)

    def subscriber_count(self, channel_id: int) -> int:
        return len(self._subscribers.get(channel_id, []))

    def publish(self, event: MessageCreated) -> int:
        """Deliver *event* to every subscriber of its channel; returns the count."""
        delivered = 0
        for queue in list(self._subscribers.get(event.channel_id, [])):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    f"Dropping message event {event.message_id} for channel "
                    f"{event.channel_id}: subscriber queue full"
                )
        logger.debug(f"Published message {event.message_id} to {delivered} subscriber(s)")
        return delivered
