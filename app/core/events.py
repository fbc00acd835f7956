# app/core/events.py
from __future__ import annotations

"""
Media CMS — Internal Event Channel
==================================

In-process message channel that decouples authoritative writes from
downstream projections (search index today).

Design
------
- Events are a **closed union** of frozen dataclasses (`DomainEvent`);
  subscribers dispatch on the event *type*, never on string names.
- `EventBus.publish()` awaits every subscriber in registration order and
  isolates failures: an exception in one subscriber is logged and never
  reaches the publisher or the other subscribers.
- The bus holds no events; publishing with zero subscribers is a no-op.

Usage
-----
    bus = EventBus()
    bus.subscribe(SearchIndexSubscriber(search_service))
    await bus.publish(EpisodeStatusChanged(episode))
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Protocol, Union
from uuid import UUID

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# 📨 Events
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class EpisodeStatusChanged:
    """Full updated episode row after any status-relevant write."""
    episode: Any


@dataclass(frozen=True)
class EpisodeDeleted:
    episode_id: UUID


@dataclass(frozen=True)
class ProgramCreated:
    program: Any


@dataclass(frozen=True)
class ProgramUpdated:
    program: Any


@dataclass(frozen=True)
class ProgramDeleted:
    program_id: UUID


DomainEvent = Union[
    EpisodeStatusChanged,
    EpisodeDeleted,
    ProgramCreated,
    ProgramUpdated,
    ProgramDeleted,
]

EVENT_TYPES = (EpisodeStatusChanged, EpisodeDeleted, ProgramCreated, ProgramUpdated, ProgramDeleted)


class EventSubscriber(Protocol):
    async def handle(self, event: DomainEvent) -> None: ...


# ─────────────────────────────────────────────────────────────
# 🚌 Bus
# ─────────────────────────────────────────────────────────────
class EventBus:
    """Ordered list of subscribers with per-subscriber failure isolation."""

    def __init__(self) -> None:
        self._subscribers: List[EventSubscriber] = []

    def subscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    @property
    def subscribers(self) -> List[EventSubscriber]:
        return list(self._subscribers)

    async def publish(self, event: DomainEvent) -> None:
        """Deliver `event` to every subscriber; never raises for subscriber errors."""
        if not isinstance(event, EVENT_TYPES):
            raise TypeError(f"Unsupported event type: {type(event).__name__}")
        for subscriber in list(self._subscribers):
            try:
                await subscriber.handle(event)
            except Exception:
                logger.exception(
                    "Event subscriber %s failed on %s",
                    type(subscriber).__name__,
                    type(event).__name__,
                )


# Process-wide bus (wired in app.main / scripts.worker)
event_bus = EventBus()

__all__ = [
    "EpisodeStatusChanged",
    "EpisodeDeleted",
    "ProgramCreated",
    "ProgramUpdated",
    "ProgramDeleted",
    "DomainEvent",
    "EventSubscriber",
    "EventBus",
    "event_bus",
]
