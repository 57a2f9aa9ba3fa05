"""
Physical sensor occupancy signal
"""
import asyncio
from datetime import timedelta
import numpy as np
from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.config import settings
from crowd_intel.models.schemas import Place, Sensor
from crowd_intel.stores.sensors import SensorStore
from crowd_intel.utils import utcnow

DEFAULT_CAPACITY = 100


class SensorSignal(SignalResult):
    signal: str = "sensor"
    has_data: bool = False
    sensor_count: int = 0
    reporting_count: int = 0


class SensorCollector(SignalCollector):
    """
    Occupancy from the latest fresh reading of every active sensor.

    Sensors without a reading inside the recency window are ignored; when none
    has one the signal is absent (score None), not zero.
    """

    name = "sensor"

    def __init__(self, store: SensorStore = None, timeout: float = None):
        super().__init__(timeout)
        self.store = store or SensorStore()
        self.recency = timedelta(minutes=settings.sensor_recency_minutes)

    async def fetch(self, place: Place) -> SensorSignal:
        sensors = await self.store.sensors_for(place.place_id)
        if not sensors:
            return SensorSignal()

        since = utcnow() - self.recency
        ratios = await asyncio.gather(*(self._occupancy(sensor, since) for sensor in sensors))
        ratios = [r for r in ratios if r is not None]

        if not ratios:
            return SensorSignal(sensor_count=len(sensors))

        return SensorSignal(
            score=float(min(100.0, np.mean(ratios))),
            has_data=True,
            sensor_count=len(sensors),
            reporting_count=len(ratios),
        )

    async def _occupancy(self, sensor: Sensor, since):
        readings = await self.store.recent_readings(sensor.sensor_id, since)
        if not readings:
            return None
        latest = max(readings, key=lambda r: r.timestamp)
        capacity = sensor.capacity or DEFAULT_CAPACITY
        return latest.count / capacity * 100

    def fallback(self, place: Place) -> SensorSignal:
        return SensorSignal()
