"""Event variants and the bus that carries them to the state owner."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Type

from .models import Machine

logger = logging.getLogger(__name__)

__all__ = [
    "EVENT_TYPES",
    "Event",
    "EventBus",
    "KeyPress",
    "ListChanged",
    "PointerEvent",
    "RefreshResult",
    "RequestRefresh",
    "RequestStart",
    "RequestSubmitToken",
    "Resize",
    "StartResult",
    "StatusMessage",
    "SubmitResult",
    "Tick",
]


class Event:
    """Base class for everything that travels over the bus."""


@dataclass(frozen=True)
class Tick(Event):
    pass


@dataclass(frozen=True)
class KeyPress(Event):
    """A decoded key: a printable character or a name such as ``"up"``."""

    key: str


@dataclass(frozen=True)
class PointerEvent(Event):
    kind: str
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class Resize(Event):
    columns: int
    rows: int


@dataclass(frozen=True)
class RequestRefresh(Event):
    pass


@dataclass(frozen=True)
class RefreshResult(Event):
    machines: Optional[Tuple[Machine, ...]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RequestStart(Event):
    machine_id: int
    name: str = ""


@dataclass(frozen=True)
class StartResult(Event):
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RequestSubmitToken(Event):
    machine_id: int
    token: str
    name: str = ""


@dataclass(frozen=True)
class SubmitResult(Event):
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ListChanged(Event):
    pass


@dataclass(frozen=True)
class StatusMessage(Event):
    text: str


EVENT_TYPES: Tuple[Type[Event], ...] = (
    Tick,
    KeyPress,
    PointerEvent,
    Resize,
    RequestRefresh,
    RefreshResult,
    RequestStart,
    StartResult,
    RequestSubmitToken,
    SubmitResult,
    ListChanged,
    StatusMessage,
)


class EventBus:
    """Unbounded FIFO channel: many producers, one consumer.

    Producers on the event loop call ``post``; producers on other threads
    call ``post_threadsafe``. Neither ever blocks.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._loop = loop
        self.event_counts: Dict[str, int] = defaultdict(int)

    def post(self, event: Event) -> None:
        if not isinstance(event, Event):
            raise TypeError(f"Not an event: {event!r}")
        self._queue.put_nowait(event)
        self.event_counts[type(event).__name__] += 1
        if logger.isEnabledFor(logging.DEBUG) and not isinstance(event, Tick):
            logger.debug(
                "Posted event: %s (pending=%d)", type(event).__name__, self._queue.qsize()
            )

    def post_threadsafe(self, event: Event) -> None:
        if self._loop is None:
            raise RuntimeError("EventBus is not bound to an event loop")
        self._loop.call_soon_threadsafe(self.post, event)

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def get(self) -> Event:
        return await self._queue.get()

    def get_nowait(self) -> Optional[Event]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> List[Event]:
        """Remove and return every queued event, oldest first."""
        events: List[Event] = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()
