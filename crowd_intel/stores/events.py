"""
Read access to scheduled events
"""
from datetime import datetime
from typing import List
from crowd_intel.database import get_database
from crowd_intel.models.schemas import Event


class EventStore:
    """Event lookups backed by the `events` collection"""

    def __init__(self, database=None):
        self.db = database if database is not None else get_database()

    async def active_events_at(self, place_id: int, start: datetime, end: datetime) -> List[Event]:
        """Active events at a place overlapping [start, end]"""
        docs = await self.db.events.find({
            "place_id": place_id,
            "is_active": True,
            "start": {"$lte": end},
            "end": {"$gte": start}
        }).sort("start", 1).to_list(length=None)
        return [Event(**{k: v for k, v in doc.items() if k != "_id"}) for doc in docs]
