"""AsyncIOBus -- in-process async pub/sub for market events.

A subscription matches one event type ("trade.executed"), a whole family
("trade.*") or everything ("*"). Every published event is delivered to all
matching subscribers before publish() returns, so a subscriber sees events
in the order the scheduler produced them.

With an events directory configured, events are appended to one JSONL
file per day. Per-tick price events are left out of that audit trail
unless asked for; it exists to replay trades, dividends and news.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Coroutine

from core.models.events import HIGH_FREQUENCY_EVENTS, Event

logger = logging.getLogger(__name__)

Callback = Callable[[Event], Coroutine[Any, Any, None]]

WILDCARD = "*"


class AsyncIOBus:
    """In-process async pub/sub event bus with optional JSONL audit logging.

    Implements the EventBus protocol.

    Usage:
        bus = AsyncIOBus(events_dir=Path("~/.nowmarket/events"))
        bus.subscribe("trade.*", on_trade)
        await bus.publish(event)
    """

    def __init__(self, events_dir: Path | None = None, audit_ticks: bool = False) -> None:
        self._subscribers: dict[str, list[Callback]] = {}
        self._events_dir = events_dir
        self._audit_skip = frozenset() if audit_ticks else HIGH_FREQUENCY_EVENTS
        if self._events_dir is not None:
            self._events_dir.mkdir(parents=True, exist_ok=True)

    async def publish(self, event: Event) -> None:
        """Audit the event, then deliver it to every matching subscriber."""
        if self._events_dir is not None and event.type not in self._audit_skip:
            self._audit(event)

        callbacks = self._matching(event)
        if not callbacks:
            return
        await asyncio.gather(*(self._deliver(cb, event) for cb in callbacks))

    def subscribe(self, pattern: str, callback: Callback) -> None:
        """Register a callback for an event type, a "family.*" or "*"."""
        self._subscribers.setdefault(pattern, []).append(callback)
        logger.debug("Subscribed to '%s': %s", pattern, callback)

    def unsubscribe(self, pattern: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(pattern)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[pattern]

    def _matching(self, event: Event) -> list[Callback]:
        return [
            *self._subscribers.get(event.type, ()),
            *self._subscribers.get(f"{event.family}.*", ()),
            *self._subscribers.get(WILDCARD, ()),
        ]

    async def _deliver(self, callback: Callback, event: Event) -> None:
        try:
            await callback(event)
        except Exception:
            logger.exception("Subscriber %s failed on %s from %s", callback, event.type, event.source)

    def _audit(self, event: Event) -> None:
        path = self._events_dir / f"{event.timestamp:%Y-%m-%d}.jsonl"
        try:
            with open(path, "a") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError:
            logger.exception("Failed to append %s to %s", event.type, path)
