"""Activity trail: every chat event on the bus becomes a persisted TraceEvent."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..event_bus import IEventBus
from ..models import BusMessage, Topic, TraceEvent
from ..storage import IStorage

# Payload keys naming the user behind an event, in order of preference.
ACTOR_KEYS = ("sender_id", "user_id")


class ITracker(Protocol):
    """Activity trail recorder."""

    async def track(
        self,
        event_type: str,
        actor: str,
        data: dict,
        timestamp: datetime | None = None,
    ) -> None:
        ...


class Tracker:
    """Records chat activity published on the EventBus, plus direct track() calls."""

    def __init__(self, event_bus: IEventBus, storage: IStorage):
        self._event_bus = event_bus
        self._storage = storage

    async def start(self) -> None:
        for topic in Topic:
            self._event_bus.subscribe(topic, self._record)

    async def _record(self, bus_message: BusMessage) -> None:
        payload = bus_message.payload
        actor = next(
            (payload[key] for key in ACTOR_KEYS if payload.get(key)),
            bus_message.source,
        )
        await self.track(
            event_type=bus_message.topic.value,
            actor=actor,
            data={**payload, "source": bus_message.source},
            timestamp=bus_message.timestamp,
        )

    async def track(
        self,
        event_type: str,
        actor: str,
        data: dict,
        timestamp: datetime | None = None,
    ) -> None:
        """Persist one TraceEvent; timestamp defaults to now."""
        await self._storage.save_trace_event(
            TraceEvent(
                id=str(uuid.uuid4()),
                event_type=event_type,
                actor=actor,
                data=data,
                timestamp=timestamp or datetime.now(timezone.utc),
            )
        )
