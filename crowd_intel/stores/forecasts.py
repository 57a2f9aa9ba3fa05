"""
Forecast batch storage
"""
from datetime import date
from typing import Optional
from pymongo.errors import PyMongoError
from crowd_intel.database import get_database
from crowd_intel.exceptions import PersistenceFailure
from crowd_intel.models.schemas import ForecastBatch


class ForecastStore:
    """
    One document per (place, target date) holding all 24 hour slots.

    Replacing the whole document is a single-document write, so readers see
    either the previous batch or the new one, never a mix.
    """

    def __init__(self, database=None):
        self.db = database if database is not None else get_database()

    async def get_batch(self, place_id: int, target_date: date) -> Optional[ForecastBatch]:
        doc = await self.db.forecast_batches.find_one({
            "place_id": place_id,
            "target_date": target_date.isoformat()
        })
        if not doc:
            return None
        doc.pop("_id", None)
        return ForecastBatch(**doc)

    async def replace_batch(self, batch: ForecastBatch) -> ForecastBatch:
        doc = batch.model_dump()
        doc["target_date"] = batch.target_date.isoformat()
        for slot in doc["forecasts"]:
            slot["target_date"] = batch.target_date.isoformat()
        try:
            await self.db.forecast_batches.replace_one(
                {"place_id": batch.place_id, "target_date": doc["target_date"]},
                doc,
                upsert=True
            )
        except PyMongoError as e:
            raise PersistenceFailure(
                f"Failed to store forecast batch for place {batch.place_id} on {batch.target_date}: {e}"
            ) from e
        return batch
