#!/usr/bin/env python3
"""
Run one full cycle by hand: refresh every place, then generate tomorrow's forecasts
"""
import asyncio
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from crowd_intel.database import connect_to_mongo, close_mongo_connection, get_database
from crowd_intel.engine import build_engine
from crowd_intel.utils import utcnow
import logging

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run_simulation():
    """Run a refresh and a forecast cycle, then print a heatmap"""
    print("=" * 80)
    print("CROWD INTELLIGENCE - SIMULATION CYCLE")
    print("=" * 80)
    print(f"Start time: {utcnow()}\n")

    try:
        print("Step 1: Connecting to MongoDB...")
        await connect_to_mongo()
        if get_database() is None:
            print("❌ MongoDB not available\n")
            return
        print("✓ Connected to MongoDB\n")

        engine = build_engine(AsyncIOScheduler())

        print("Step 2: Refreshing current readings...")
        refresh = await engine.aggregation.refresh_all()
        print(f"✓ Refresh complete: {refresh.succeeded}/{refresh.total} places")
        if refresh.failed_place_ids:
            print(f"  - Failed: {refresh.failed_place_ids}")
        if refresh.degraded_place_ids:
            print(f"  - Fully degraded: {refresh.degraded_place_ids}")
        print()

        print("Step 3: Generating tomorrow's forecasts...")
        forecast = await engine.prediction.generate_daily_predictions()
        print(f"✓ Forecasts generated: {forecast.succeeded}/{forecast.total} places\n")

        print("Step 4: Heatmap")
        heatmap = await engine.heatmap.get_heatmap()
        for point in heatmap.points:
            print(f"  - {point.name:<25} {point.crowd_index:>3}  {point.crowd_level}")

        print()
        print("=" * 80)
        print("SIMULATION CYCLE COMPLETE")
        print("=" * 80)
        print(f"End time: {utcnow()}\n")

        print("Query API endpoints:")
        print("   - GET http://localhost:8000/api/crowd/heatmap")
        print("   - GET http://localhost:8000/api/crowd/places/3")
        print("   - GET http://localhost:8000/api/predictions/3")
        print("\n")

    except Exception as e:
        logger.error(f"Simulation error: {e}", exc_info=True)
        print(f"\n❌ Error during simulation: {e}\n")

    finally:
        await close_mongo_connection()
        print("✓ MongoDB connection closed")


if __name__ == "__main__":
    asyncio.run(run_simulation())
