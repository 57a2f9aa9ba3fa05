"""
Sensor registry and sensor readings storage
"""
from datetime import datetime
from typing import List, Optional
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError
from crowd_intel.database import get_database
from crowd_intel.exceptions import PersistenceFailure
from crowd_intel.models.schemas import Sensor, SensorReading


def _to_sensor(doc: dict) -> Sensor:
    return Sensor(**{k: v for k, v in doc.items() if k not in ("_id", "created_at")})


def _to_reading(doc: dict) -> SensorReading:
    return SensorReading(**{k: v for k, v in doc.items() if k != "_id"})


class SensorStore:
    """Sensor lookups backed by the `sensors` and `sensor_readings` collections"""

    def __init__(self, database=None):
        self.db = database if database is not None else get_database()

    async def get(self, sensor_id: int) -> Optional[Sensor]:
        doc = await self.db.sensors.find_one({"sensor_id": sensor_id})
        return _to_sensor(doc) if doc else None

    async def find_by_mac(self, mac_address: str) -> Optional[Sensor]:
        doc = await self.db.sensors.find_one({"mac_address": mac_address})
        return _to_sensor(doc) if doc else None

    async def sensors_for(self, place_id: int, active_only: bool = True) -> List[Sensor]:
        query = {"place_id": place_id}
        if active_only:
            query["is_active"] = True
        docs = await self.db.sensors.find(query).sort("sensor_id", 1).to_list(length=None)
        return [_to_sensor(doc) for doc in docs]

    async def recent_readings(self, sensor_id: int, since: datetime) -> List[SensorReading]:
        """Readings newer than `since`, newest first"""
        docs = await self.db.sensor_readings.find({
            "sensor_id": sensor_id,
            "timestamp": {"$gte": since}
        }).sort("timestamp", -1).to_list(length=None)
        return [_to_reading(doc) for doc in docs]

    async def latest_readings(self, sensor_id: int, limit: int) -> List[SensorReading]:
        docs = await self.db.sensor_readings.find(
            {"sensor_id": sensor_id}
        ).sort("timestamp", -1).limit(limit).to_list(length=limit)
        return [_to_reading(doc) for doc in docs]

    async def update_sensor(self, sensor_id: int, fields: dict) -> Optional[Sensor]:
        """Apply `fields` and return the updated sensor, or None if it does not exist"""
        try:
            doc = await self.db.sensors.find_one_and_update(
                {"sensor_id": sensor_id},
                {"$set": fields},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to update sensor {sensor_id}: {e}") from e
        return _to_sensor(doc) if doc else None

    async def delete_sensor(self, sensor_id: int) -> bool:
        """Remove a sensor and its readings; False if it does not exist"""
        try:
            result = await self.db.sensors.delete_one({"sensor_id": sensor_id})
            if result.deleted_count:
                await self.db.sensor_readings.delete_many({"sensor_id": sensor_id})
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to delete sensor {sensor_id}: {e}") from e
        return result.deleted_count > 0

    async def insert_sensor(self, sensor: dict) -> Sensor:
        try:
            # Sequential integer ids, kept in a counters document
            counter = await self.db.counters.find_one_and_update(
                {"_id": "sensor_id"},
                {"$inc": {"value": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
            doc = dict(sensor, sensor_id=counter["value"])
            await self.db.sensors.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to store sensor {sensor.get('name')}: {e}") from e
        return _to_sensor(doc)

    async def insert_reading(self, reading: SensorReading) -> SensorReading:
        try:
            await self.db.sensor_readings.insert_one(reading.model_dump())
        except PyMongoError as e:
            raise PersistenceFailure(f"Failed to store reading for sensor {reading.sensor_id}: {e}") from e
        return reading
