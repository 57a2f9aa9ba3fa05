"""
Sensor registry service
Registers occupancy sensors and accepts their calibrated readings
"""
import logging
from datetime import timedelta
from typing import List
import numpy as np
from crowd_intel.exceptions import InvalidSensorReading, NotFound
from crowd_intel.models.schemas import (
    RegisterSensorRequest,
    Sensor,
    SensorReading,
    SensorReadingAck,
    SensorStats,
    SensorWithReadings,
    SubmitSensorReadingRequest,
    UpdateSensorRequest,
)
from crowd_intel.stores.sensors import SensorStore
from crowd_intel.utils import round_half_up, utcnow

logger = logging.getLogger(__name__)

VALID_SENSOR_TYPES = ("wifi", "ble", "camera")
RECENT_READINGS_WINDOW = timedelta(hours=1)
RECENT_READINGS_LIMIT = 20
LATEST_READINGS_LIMIT = 10


class SensorService:
    """Sensor registration, reading intake and per-sensor statistics"""

    def __init__(self, store: SensorStore = None):
        self.store = store if store is not None else SensorStore()

    async def register_sensor(self, request: RegisterSensorRequest) -> Sensor:
        """
        Register a new active sensor

        Raises:
            InvalidSensorReading: Unknown sensor type or MAC address already registered
        """
        logger.info(f"Registering new {request.sensor_type} sensor: {request.name}")

        if request.sensor_type not in VALID_SENSOR_TYPES:
            raise InvalidSensorReading(
                f"Invalid sensor type. Must be one of: {', '.join(VALID_SENSOR_TYPES)}"
            )

        if request.mac_address and await self.store.find_by_mac(request.mac_address):
            raise InvalidSensorReading(f"Sensor with MAC address {request.mac_address} already exists")

        doc = request.model_dump()
        doc.update({"calibration_factor": 1.0, "is_active": True, "created_at": utcnow()})
        sensor = await self.store.insert_sensor(doc)

        logger.info(f"Sensor registered with ID: {sensor.sensor_id}")
        return sensor

    async def submit_reading(self, request: SubmitSensorReadingRequest) -> SensorReadingAck:
        """
        Store a reading, scaled by the sensor's calibration factor

        Raises:
            NotFound: Unknown sensor
            InvalidSensorReading: Sensor is not active
        """
        sensor = await self.store.get(request.sensor_id)
        if sensor is None:
            raise NotFound(f"Sensor {request.sensor_id} not found")
        if not sensor.is_active:
            raise InvalidSensorReading(f"Sensor {request.sensor_id} is not active")

        calibrated_count = round_half_up(request.count * sensor.calibration_factor)
        reading = SensorReading(
            sensor_id=sensor.sensor_id,
            count=calibrated_count,
            raw_value=request.raw_value,
            confidence=request.confidence,
            timestamp=request.timestamp or utcnow(),
        )
        await self.store.insert_reading(reading)

        logger.debug(f"Sensor {sensor.name} reading: {calibrated_count} (raw: {request.count})")
        return SensorReadingAck(
            sensor_id=sensor.sensor_id,
            calibrated_count=calibrated_count,
            timestamp=reading.timestamp,
        )

    async def get_sensor(self, sensor_id: int) -> SensorWithReadings:
        """
        Sensor with its latest readings

        Raises:
            NotFound: Unknown sensor
        """
        sensor = await self.store.get(sensor_id)
        if sensor is None:
            raise NotFound(f"Sensor {sensor_id} not found")
        readings = await self.store.latest_readings(sensor_id, LATEST_READINGS_LIMIT)
        return SensorWithReadings(**sensor.model_dump(), recent_readings=readings)

    async def update_sensor(self, sensor_id: int, request: UpdateSensorRequest) -> Sensor:
        """
        Change a sensor's configuration

        Raises:
            NotFound: Unknown sensor
        """
        fields = request.model_dump(exclude_unset=True, exclude_none=True)
        if "calibration_factor" in fields:
            fields["last_calibrated"] = utcnow()

        if not fields:
            sensor = await self.store.get(sensor_id)
        else:
            sensor = await self.store.update_sensor(sensor_id, fields)
        if sensor is None:
            raise NotFound(f"Sensor {sensor_id} not found")

        logger.info(f"Sensor {sensor_id} updated: {', '.join(fields) or 'no changes'}")
        return sensor

    async def delete_sensor(self, sensor_id: int) -> None:
        """
        Remove a sensor and its readings

        Raises:
            NotFound: Unknown sensor
        """
        if not await self.store.delete_sensor(sensor_id):
            raise NotFound(f"Sensor {sensor_id} not found")
        logger.info(f"Sensor {sensor_id} deleted")

    async def get_sensors_for_place(self, place_id: int) -> List[SensorWithReadings]:
        """All sensors of a place, active or not, with their last hour of readings"""
        since = utcnow() - RECENT_READINGS_WINDOW
        sensors = await self.store.sensors_for(place_id, active_only=False)
        result = []
        for sensor in sensors:
            readings = await self.store.recent_readings(sensor.sensor_id, since)
            result.append(SensorWithReadings(
                **sensor.model_dump(),
                recent_readings=readings[:RECENT_READINGS_LIMIT],
            ))
        return result

    async def get_sensor_stats(self, sensor_id: int, hours: int = 24) -> SensorStats:
        """
        Reading statistics over the trailing window

        Raises:
            NotFound: Unknown sensor
        """
        sensor = await self.store.get(sensor_id)
        if sensor is None:
            raise NotFound(f"Sensor {sensor_id} not found")

        readings = await self.store.recent_readings(sensor_id, utcnow() - timedelta(hours=hours))
        counts = np.array([r.count for r in readings], dtype=float)

        average = float(np.mean(counts)) if counts.size else 0.0
        return SensorStats(
            sensor_id=sensor_id,
            sensor_name=sensor.name,
            period=f"{hours}h",
            total_readings=int(counts.size),
            average_count=round_half_up(average),
            max_count=int(np.max(counts)) if counts.size else 0,
            min_count=int(np.min(counts)) if counts.size else 0,
            utilization_rate=round(average / sensor.capacity * 100, 2) if sensor.capacity else None,
        )
