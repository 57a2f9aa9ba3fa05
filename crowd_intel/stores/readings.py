"""
Crowd readings, weather snapshots and social trend samples
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional
from pymongo.errors import PyMongoError
from crowd_intel.database import get_database
from crowd_intel.exceptions import PersistenceFailure
from crowd_intel.models.schemas import CrowdReading, WeatherSnapshot

logger = logging.getLogger(__name__)


def _to_reading(doc: dict) -> CrowdReading:
    return CrowdReading(**{k: v for k, v in doc.items() if k != "_id"})


class ReadingStore:
    """Storage for observed crowd readings and their side records"""

    def __init__(self, database=None):
        self.db = database if database is not None else get_database()

    async def latest_observed(self, place_id: int, since: datetime) -> Optional[CrowdReading]:
        """Newest observed reading for a place no older than `since`"""
        doc = await self.db.crowd_readings.find_one(
            {
                "place_id": place_id,
                "is_prediction": False,
                "timestamp": {"$gte": since}
            },
            sort=[("timestamp", -1)]
        )
        return _to_reading(doc) if doc else None

    async def latest_observed_many(self, place_ids: List[int], since: datetime) -> Dict[int, CrowdReading]:
        """Newest observed reading per place, for places that have one since `since`"""
        if not place_ids:
            return {}
        pipeline = [
            {"$match": {
                "place_id": {"$in": list(place_ids)},
                "is_prediction": False,
                "timestamp": {"$gte": since}
            }},
            {"$sort": {"timestamp": -1}},
            {"$group": {"_id": "$place_id", "doc": {"$first": "$$ROOT"}}}
        ]
        latest = {}
        async for row in self.db.crowd_readings.aggregate(pipeline):
            latest[row["_id"]] = _to_reading(row["doc"])
        return latest

    async def observed_since(self, place_id: int, since: datetime) -> List[CrowdReading]:
        """All observed readings for a place since `since` (history window)"""
        docs = await self.db.crowd_readings.find({
            "place_id": place_id,
            "is_prediction": False,
            "timestamp": {"$gte": since}
        }).to_list(length=None)
        return [_to_reading(doc) for doc in docs]

    async def insert_reading(self, reading: CrowdReading) -> CrowdReading:
        try:
            await self.db.crowd_readings.insert_one(reading.model_dump())
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to store crowd reading for place {reading.place_id}: {e}") from e
        return reading

    async def insert_weather_snapshot(self, place_id: int, snapshot: WeatherSnapshot, timestamp: datetime):
        doc = snapshot.model_dump()
        doc.update({"place_id": place_id, "timestamp": timestamp})
        try:
            await self.db.weather_snapshots.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to store weather snapshot for place {place_id}: {e}") from e

    async def insert_social_trends(self, docs: List[dict]):
        if not docs:
            return
        try:
            await self.db.social_trends.insert_many(docs)
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to store social trends: {e}") from e
