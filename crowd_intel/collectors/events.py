"""
Active event signal
"""
from typing import List
from pydantic import Field
from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.config import settings
from crowd_intel.models.schemas import Place
from crowd_intel.stores.events import EventStore
from crowd_intel.utils import utcnow


def event_score(active_event_count: int) -> int:
    """Each concurrent event adds a fixed number of points, capped at 100"""
    return min(100, active_event_count * settings.event_points_per_event)


class EventSignal(SignalResult):
    signal: str = "event"
    events: List[str] = Field(default_factory=list)


class EventCollector(SignalCollector):
    name = "event"

    def __init__(self, store: EventStore = None, timeout: float = None):
        super().__init__(timeout)
        self.store = store or EventStore()

    async def fetch(self, place: Place) -> EventSignal:
        now = utcnow()
        events = await self.store.active_events_at(place.place_id, now, now)
        return EventSignal(score=event_score(len(events)), events=[e.name for e in events])

    def fallback(self, place: Place) -> EventSignal:
        return EventSignal(score=0, events=[])
