"""Event publishing for chart, alert and statistics consumers."""

import logging
from typing import Any, Awaitable, Callable, Iterable, Sequence, TextIO

import orjson
from pydantic import BaseModel

from tickcore.models import Bar, NewsItem, SignalRecord

logger = logging.getLogger(__name__)

# Event types
BARS = "bars"
SIGNAL_CREATED = "signal_created"
SIGNAL_RESOLVED = "signal_resolved"
REGIME = "regime"
NEWS = "news"


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class EventMessage(BaseModel):
    """Event envelope."""

    type: str  # "bars", "signal_created", "signal_resolved", "regime", "news"
    data: dict[str, Any]
    timestamp: int  # epoch milliseconds

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump())


def bars_message(timeframe: str, bars: Sequence[Bar], timestamp: int) -> EventMessage:
    """Annotated bar series for one timeframe."""
    return EventMessage(
        type=BARS,
        data={"timeframe": timeframe, "bars": [b.to_dict() for b in bars]},
        timestamp=timestamp,
    )


def signal_created_message(signal: SignalRecord, timestamp: int) -> EventMessage:
    """Full record of a new signal."""
    return EventMessage(
        type=SIGNAL_CREATED,
        data=signal.model_dump(mode="json"),
        timestamp=timestamp,
    )


def signal_resolved_message(signal: SignalRecord, timestamp: int) -> EventMessage:
    """Signal outcome (WIN/LOSS)."""
    return EventMessage(
        type=SIGNAL_RESOLVED,
        data={
            "signal_id": signal.id,
            "timeframe": signal.timeframe,
            "status": signal.status.value,
            "exit_price": signal.exit_price,
            "pnl": signal.pnl,
        },
        timestamp=timestamp,
    )


def regime_message(timeframe: str, regime: str, debug: str, timestamp: int) -> EventMessage:
    return EventMessage(
        type=REGIME,
        data={"timeframe": timeframe, "regime": regime, "debug": debug},
        timestamp=timestamp,
    )


def news_message(item: NewsItem) -> EventMessage:
    return EventMessage(
        type=NEWS,
        data=item.model_dump(mode="json"),
        timestamp=item.timestamp,
    )


EventSubscriber = Callable[[EventMessage], Awaitable[None]]


class EventPublisher:
    """Fan events out to async subscribers.

    A failing subscriber is logged and skipped; delivery to the other
    subscribers continues.
    """

    def __init__(self):
        self._subscribers: list[EventSubscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: EventSubscriber) -> None:
        """Register a subscriber.

        Note: Duplicate subscribers are ignored.
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventSubscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def publish(self, message: EventMessage) -> None:
        """Deliver a message to every subscriber."""
        for callback in list(self._subscribers):
            try:
                await callback(message)
            except Exception as e:
                logger.warning(f"Event subscriber failed on {message.type}: {e}")

    async def publish_all(self, messages: Iterable[EventMessage]) -> None:
        for message in messages:
            await self.publish(message)


class JsonLinesSink:
    """Subscriber writing each event as one JSON line."""

    def __init__(self, stream: TextIO, types: set[str] | None = None):
        """
        Args:
            stream: Text stream to write to
            types: Event types to keep (None = all)
        """
        self.stream = stream
        self.types = types
        self.written = 0

    async def __call__(self, message: EventMessage) -> None:
        if self.types is not None and message.type not in self.types:
            return
        self.stream.write(message.to_json() + "\n")
        self.stream.flush()
        self.written += 1
