#!/usr/bin/env python3
"""
Seed sample places, events and sensors, plus synthetic crowd history
Gives the prediction engine 30 days of observed readings to learn from
"""
import asyncio
import sys
import os
from datetime import timedelta
import random

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crowd_intel.database import connect_to_mongo, close_mongo_connection, get_database
from crowd_intel.config import settings
from crowd_intel.services.crowd_index import determine_crowd_level
from crowd_intel.utils import utcnow

PLACES = [
    {"place_id": 1, "name": "Split Old Town", "category": "ATTRACTION", "latitude": 43.5081, "longitude": 16.4402, "parent_id": None},
    {"place_id": 2, "name": "Diocletian's Palace", "category": "ATTRACTION", "latitude": 43.5083, "longitude": 16.4400, "parent_id": 1},
    {"place_id": 3, "name": "Bacvice Beach", "category": "BEACH", "latitude": 43.5027, "longitude": 16.4493, "parent_id": None},
    {"place_id": 4, "name": "Zlatni Rat", "category": "BEACH", "latitude": 43.2557, "longitude": 16.6339, "parent_id": None},
    {"place_id": 5, "name": "Hula Hula Hvar", "category": "NIGHTLIFE", "latitude": 43.1701, "longitude": 16.4382, "parent_id": None},
    {"place_id": 6, "name": "Konoba Matejuska", "category": "RESTAURANT", "latitude": 43.5076, "longitude": 16.4327, "parent_id": None},
]


def synthetic_index(hour: int, weekday: int, category: str) -> int:
    """Busyness curve per category with weekend lift and noise"""
    if category == "NIGHTLIFE":
        base = 85 if hour >= 22 or hour < 3 else 15
    elif category == "BEACH":
        base = 75 if 11 <= hour <= 17 else 20
    elif category == "RESTAURANT":
        base = 80 if 12 <= hour <= 14 or 19 <= hour <= 22 else 25
    else:
        base = 65 if 10 <= hour <= 18 else 20

    if weekday >= 5:
        base *= 1.2
    return max(0, min(100, round(base + random.uniform(-10, 10))))


async def seed():
    """Insert places, one event, one sensor and hourly readings for the history window"""
    await connect_to_mongo()
    db = get_database()
    if db is None:
        print("❌ MongoDB not available")
        return

    now = utcnow()

    print("Seeding places...")
    for place in PLACES:
        await db.places.update_one(
            {"place_id": place["place_id"]},
            {"$set": dict(place, is_active=True)},
            upsert=True
        )
    print(f"✓ {len(PLACES)} places")

    evening = (now + timedelta(days=1)).replace(hour=20, minute=0, second=0, microsecond=0)
    await db.events.update_one(
        {"place_id": 3, "name": "Summer Beach Concert"},
        {"$set": {"start": evening, "end": evening + timedelta(hours=3), "is_active": True}},
        upsert=True
    )
    await db.sensors.update_one(
        {"sensor_id": 1},
        {"$set": {
            "place_id": 4,
            "sensor_type": "wifi",
            "name": "Zlatni Rat entrance",
            "capacity": 400,
            "calibration_factor": 1.0,
            "is_active": True,
        }},
        upsert=True
    )
    await db.counters.update_one({"_id": "sensor_id"}, {"$max": {"value": 1}}, upsert=True)
    print("✓ 1 event, 1 sensor")

    print(f"Generating {settings.history_window_days} days of hourly readings...")
    records_created = 0
    for day in range(settings.history_window_days, 0, -1):
        for hour in range(24):
            timestamp = (now - timedelta(days=day)).replace(hour=hour, minute=0, second=0, microsecond=0)
            for place in PLACES:
                if place["place_id"] == 1:
                    continue  # parent places are not scored
                index = synthetic_index(hour, timestamp.weekday(), place["category"])
                await db.crowd_readings.insert_one({
                    "place_id": place["place_id"],
                    "crowd_index": index,
                    "crowd_level": determine_crowd_level(index).value,
                    "signal_scores": {"live_popularity": index},
                    "temperature": None,
                    "weather_condition": None,
                    "active_events": [],
                    "degraded_signals": [],
                    "signal_coverage": None,
                    "timestamp": timestamp,
                    "is_prediction": False,
                    "confidence": None,
                })
                records_created += 1
                if records_created % 500 == 0:
                    print(f"  Generated {records_created} readings...", end='\r')

    print(f"\n✓ Generated {records_created} historical readings")

    final_count = await db.crowd_readings.count_documents({"is_prediction": False})
    print(f"✓ Total observed readings in database: {final_count}")

    await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(seed())
