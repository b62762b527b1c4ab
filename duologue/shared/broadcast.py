"""
Broadcast hub for live channels.
Every subscriber is a sink with its own bounded queue; a sink that cannot
take an event is dropped rather than slowing everyone else down.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set

from ..conversation.schema import Turn, TurnKind
from ..conversation.store import TurnStore
from .protocol import EventType, connected_event, snapshot_event

logger = logging.getLogger(__name__)

Event = Dict[str, Any]


class Sink(ABC):
    """Anything that can receive broadcast events."""

    @abstractmethod
    def accept(self, event: Event) -> bool:
        """Take one event; return False if this sink is no longer usable."""

    def close(self) -> None:
        pass


class ChannelSink(Sink):
    """Queue-backed sink drained by one live connection."""

    def __init__(self, maxsize: int = 256):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def accept(self, event: Event) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Channel queue full, dropping subscriber")
            return False
        return True

    def close(self) -> None:
        self._closed = True

    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next queued event, or None if nothing arrives within `timeout`."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class BroadcastHub:
    """
    Fans conversation snapshots out to every live channel.

    Registers itself with the TurnStore, so every append is pushed as a
    `message` (or `user_message`) frame carrying the full post-append state.
    """

    def __init__(self, store: TurnStore, channel_queue_size: int = 256):
        self.store = store
        self.channel_queue_size = channel_queue_size
        self._sinks: Set[Sink] = set()

        self.store.add_listener(self._on_turn_appended)

    @property
    def connection_count(self) -> int:
        return len(self._sinks)

    def snapshot_event(self, event_type: EventType, turn: Optional[Turn] = None) -> Event:
        return snapshot_event(event_type, self.store.snapshot(), turn)

    def subscribe(self, sink: Optional[Sink] = None) -> Sink:
        """Register a sink and hand it the current state straight away."""
        if sink is None:
            sink = ChannelSink(self.channel_queue_size)
        self._sinks.add(sink)
        for event in (connected_event(), self.snapshot_event(EventType.STATE)):
            if not self._deliver(sink, event):
                self.unsubscribe(sink)
                break
        logger.info("Client connected. Total: %d", len(self._sinks))
        return sink

    def unsubscribe(self, sink: Sink) -> None:
        if sink not in self._sinks:
            return
        self._sinks.discard(sink)
        sink.close()
        logger.info("Client disconnected. Total: %d", len(self._sinks))

    def publish(self, event: Event) -> int:
        """Push `event` to all sinks, pruning any that fail. Returns deliveries."""
        delivered = 0
        for sink in list(self._sinks):
            if self._deliver(sink, event):
                delivered += 1
            else:
                self.unsubscribe(sink)
        return delivered

    def close_all(self) -> None:
        for sink in list(self._sinks):
            self.unsubscribe(sink)

    def _deliver(self, sink: Sink, event: Event) -> bool:
        try:
            return bool(sink.accept(event))
        except Exception as e:
            logger.debug("Sink write failed: %s", e)
            return False

    def _on_turn_appended(self, turn: Turn) -> None:
        event_type = EventType.USER_MESSAGE if turn.kind == TurnKind.USER else EventType.MESSAGE
        self.publish(self.snapshot_event(event_type, turn))
