"""
In-memory stand-ins for the MongoDB stores and provider clients
"""
import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest

from crowd_intel.collectors import SignalCollector, SignalResult
from crowd_intel.exceptions import PersistenceFailure, SignalUnavailable
from crowd_intel.models.schemas import Place, Sensor, WeatherSnapshot
from crowd_intel.utils import utcnow


class InMemoryPlaceStore:
    def __init__(self, places: List[Place] = None):
        self.places = {p.place_id: p for p in (places or [])}

    async def get(self, place_id):
        return self.places.get(place_id)

    async def list_places(self, place_ids=None, category=None, active_only=True, leaf_only=False):
        parent_ids = {p.parent_id for p in self.places.values() if p.parent_id is not None}
        result = []
        for place in sorted(self.places.values(), key=lambda p: p.place_id):
            if place_ids and place.place_id not in place_ids:
                continue
            if category and place.category != category:
                continue
            if active_only and not place.is_active:
                continue
            if leaf_only and place.place_id in parent_ids:
                continue
            result.append(place)
        return result


class InMemoryReadingStore:
    def __init__(self, failing_place_ids=()):
        self.readings = []
        self.weather_snapshots = []
        self.social_trends = []
        self.failing_place_ids = set(failing_place_ids)

    async def latest_observed(self, place_id, since):
        matching = [
            r for r in self.readings
            if r.place_id == place_id and not r.is_prediction and r.timestamp >= since
        ]
        return max(matching, key=lambda r: r.timestamp) if matching else None

    async def latest_observed_many(self, place_ids, since):
        latest = {}
        for place_id in place_ids:
            reading = await self.latest_observed(place_id, since)
            if reading is not None:
                latest[place_id] = reading
        return latest

    async def observed_since(self, place_id, since):
        return [
            r for r in self.readings
            if r.place_id == place_id and not r.is_prediction and r.timestamp >= since
        ]

    async def insert_reading(self, reading):
        if reading.place_id in self.failing_place_ids:
            raise PersistenceFailure(f"Failed to store crowd reading for place {reading.place_id}")
        self.readings.append(reading)
        return reading

    async def insert_weather_snapshot(self, place_id, snapshot, timestamp):
        self.weather_snapshots.append((place_id, snapshot, timestamp))

    async def insert_social_trends(self, docs):
        self.social_trends.extend(docs)

    def for_place(self, place_id):
        return [r for r in self.readings if r.place_id == place_id]


class InMemoryEventStore:
    def __init__(self, events=None):
        self.events = list(events or [])

    async def active_events_at(self, place_id, start, end):
        return sorted(
            (e for e in self.events
             if e.place_id == place_id and e.is_active and e.start <= end and e.end >= start),
            key=lambda e: e.start
        )


class InMemorySensorStore:
    def __init__(self, sensors: List[Sensor] = None):
        self.sensors: Dict[int, Sensor] = {s.sensor_id: s for s in (sensors or [])}
        self.readings = []

    async def get(self, sensor_id):
        return self.sensors.get(sensor_id)

    async def find_by_mac(self, mac_address):
        return next((s for s in self.sensors.values() if s.mac_address == mac_address), None)

    async def sensors_for(self, place_id, active_only=True):
        return [
            s for s in sorted(self.sensors.values(), key=lambda s: s.sensor_id)
            if s.place_id == place_id and (s.is_active or not active_only)
        ]

    async def recent_readings(self, sensor_id, since):
        matching = [r for r in self.readings if r.sensor_id == sensor_id and r.timestamp >= since]
        return sorted(matching, key=lambda r: r.timestamp, reverse=True)

    async def latest_readings(self, sensor_id, limit):
        return (await self.recent_readings(sensor_id, datetime.min))[:limit]

    async def update_sensor(self, sensor_id, fields):
        if sensor_id not in self.sensors:
            return None
        self.sensors[sensor_id] = self.sensors[sensor_id].model_copy(update=fields)
        return self.sensors[sensor_id]

    async def delete_sensor(self, sensor_id):
        if self.sensors.pop(sensor_id, None) is None:
            return False
        self.readings = [r for r in self.readings if r.sensor_id != sensor_id]
        return True

    async def insert_sensor(self, sensor):
        sensor_id = max(self.sensors, default=0) + 1
        stored = Sensor(**{k: v for k, v in sensor.items() if k != "created_at"}, sensor_id=sensor_id)
        self.sensors[sensor_id] = stored
        return stored

    async def insert_reading(self, reading):
        self.readings.append(reading)
        return reading


class InMemoryForecastStore:
    def __init__(self, fail_writes=False):
        self.batches = {}
        self.writes = 0
        self.fail_writes = fail_writes

    async def get_batch(self, place_id, target_date):
        return self.batches.get((place_id, target_date))

    async def replace_batch(self, batch):
        if self.fail_writes:
            raise PersistenceFailure(f"Failed to store forecast batch for place {batch.place_id}")
        self.writes += 1
        self.batches[(batch.place_id, batch.target_date)] = batch
        return batch


class FakeWeatherClient:
    def __init__(self, score=50.0, forecast_scores=None, fail=False):
        self.score = score
        self.forecast_scores = forecast_scores if forecast_scores is not None else [50.0] * 8
        self.fail = fail

    async def current(self, latitude, longitude, category):
        if self.fail:
            raise SignalUnavailable("weather", "provider down")
        return WeatherSnapshot(score=self.score, temperature=24.0, weather_condition="clear")

    async def forecast(self, latitude, longitude, category):
        if self.fail:
            raise SignalUnavailable("weather_forecast", "provider down")
        return [
            WeatherSnapshot(score=s, temperature=24.0, weather_condition="clear")
            for s in self.forecast_scores
        ]


class StaticCollector(SignalCollector):
    """Collector returning a fixed score, optionally failing or hanging for chosen places"""

    def __init__(self, name, score, fallback_score=50.0, failing_place_ids=(), delay=0.0, timeout=1.0):
        super().__init__(timeout)
        self.name = name
        self.score = score
        self.fallback_score = fallback_score
        self.failing_place_ids = set(failing_place_ids)
        self.delay = delay
        self.calls = 0

    async def fetch(self, place):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if place.place_id in self.failing_place_ids:
            raise SignalUnavailable(self.name, "source down")
        return SignalResult(signal=self.name, score=self.score)

    def fallback(self, place):
        return SignalResult(signal=self.name, score=self.fallback_score)


def make_place(place_id, name=None, category="BEACH", is_active=True, parent_id=None):
    return Place(
        place_id=place_id,
        name=name or f"Place {place_id}",
        category=category,
        latitude=43.5 + place_id / 100,
        longitude=16.4 + place_id / 100,
        is_active=is_active,
        parent_id=parent_id,
    )


def static_collectors(**overrides) -> List[StaticCollector]:
    scores = {"live_popularity": 60.0, "weather": 70.0, "event": 0.0, "social": 40.0}
    return [StaticCollector(name, score, **overrides) for name, score in scores.items()]


def minutes_ago(minutes: float):
    return utcnow() - timedelta(minutes=minutes)


@pytest.fixture
def places():
    return InMemoryPlaceStore([
        make_place(1, "Zlatni Rat"),
        make_place(2, "Diocletian's Palace", category="ATTRACTION"),
        make_place(3, "Hula Hula", category="NIGHTLIFE"),
        make_place(4, "Closed Bar", category="NIGHTLIFE", is_active=False),
        make_place(10, "Split Riva", category="ATTRACTION"),
        make_place(11, "Riva Promenade", category="ATTRACTION", parent_id=10),
    ])


@pytest.fixture
def readings():
    return InMemoryReadingStore()
