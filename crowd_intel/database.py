"""
MongoDB database connection and utilities
"""
from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
from crowd_intel.config import settings
import logging

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager"""

    client: Optional[AsyncIOMotorClient] = None
    database = None


# Global database instance
db = Database()


async def connect_to_mongo():
    """Connect to MongoDB (optional - API will still start if connection fails)"""
    try:
        db.client = AsyncIOMotorClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=10000,
        )
        db.database = db.client[settings.mongodb_db_name]

        # Test connection
        await db.client.admin.command('ping')
        logger.info(f"Connected to MongoDB: {settings.mongodb_db_name}")

        await create_indexes()

    except Exception as e:
        error_msg = str(e)
        if "authentication" in error_msg.lower():
            logger.warning("MongoDB authentication failed. Check username/password in connection string.")
        else:
            logger.warning(f"Failed to connect to MongoDB: {e}")
            logger.warning("API will continue without database. Crowd endpoints will return 503.")
        db.client = None
        db.database = None


async def close_mongo_connection():
    """Close MongoDB connection"""
    if db.client:
        db.client.close()
        logger.info("MongoDB connection closed")


async def create_indexes():
    """Create database indexes for optimal query performance"""
    if db.database is None:
        logger.warning("Database not connected, skipping index creation")
        return

    try:
        # Collaborator collections
        await db.database.places.create_index([("place_id", 1)], unique=True)
        await db.database.places.create_index([("is_active", 1), ("category", 1)])
        await db.database.places.create_index([("parent_id", 1)])
        await db.database.events.create_index([("place_id", 1), ("start", 1), ("end", 1)])
        await db.database.sensors.create_index([("sensor_id", 1)], unique=True)
        await db.database.sensors.create_index([("place_id", 1)])
        await db.database.sensors.create_index(
            [("mac_address", 1)],
            unique=True,
            partialFilterExpression={"mac_address": {"$type": "string"}}
        )
        await db.database.sensor_readings.create_index([("sensor_id", 1), ("timestamp", -1)])

        # crowd_readings: freshness lookups and history scans
        await db.database.crowd_readings.create_index(
            [("place_id", 1), ("is_prediction", 1), ("timestamp", -1)]
        )

        await db.database.weather_snapshots.create_index([("place_id", 1), ("timestamp", -1)])
        await db.database.social_trends.create_index([("place_id", 1), ("timestamp", -1)])

        # One forecast batch per place and day
        await db.database.forecast_batches.create_index(
            [("place_id", 1), ("target_date", 1)],
            unique=True
        )

        logger.info("Database indexes created successfully")

    except Exception as e:
        logger.warning(f"Failed to create some indexes: {e}")


def get_database():
    """Get database instance"""
    return db.database
