"""Event bus for playback session changes."""

import asyncio
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Union

from omniradio.errors import Notice
from omniradio.player import SessionState


@dataclass(frozen=True)
class StateChanged:
    state: SessionState


@dataclass(frozen=True)
class NoticeRaised:
    notice: Notice


SessionEvent = Union[StateChanged, NoticeRaised]


class SessionEventBus:
    """Fans session events out to async subscribers.

    emit_* is always called from the event loop thread. A subscriber that
    falls behind loses its oldest events first.
    """

    SUBSCRIBER_QUEUE_SIZE = 100

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[SessionEvent]] = []
        self._lock = threading.Lock()

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[SessionEvent]]:
        """Subscribe to session events via context manager."""
        queue: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=self.SUBSCRIBER_QUEUE_SIZE)
        with self._lock:
            self._subscribers.append(queue)
        try:
            yield queue
        finally:
            with self._lock:
                self._subscribers.remove(queue)

    def _emit(self, event: SessionEvent) -> None:
        with self._lock:
            for queue in list(self._subscribers):
                self._safe_put(queue, event)

    def _safe_put(self, queue: asyncio.Queue[SessionEvent], event: SessionEvent) -> None:
        """Put event with drop-oldest backpressure."""
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            try:
                queue.get_nowait()
                queue.put_nowait(event)
            except asyncio.QueueEmpty:
                pass

    def emit_state(self, state: SessionState) -> None:
        self._emit(StateChanged(state=state))

    def emit_notice(self, notice: Notice) -> None:
        self._emit(NoticeRaised(notice=notice))
