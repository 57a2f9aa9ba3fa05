"""
Read access to places owned by the location service
"""
import logging
from typing import List, Optional
from crowd_intel.database import get_database
from crowd_intel.models.schemas import Place

logger = logging.getLogger(__name__)


class PlaceStore:
    """Place lookups backed by the `places` collection"""

    def __init__(self, database=None):
        self.db = database if database is not None else get_database()

    async def get(self, place_id: int) -> Optional[Place]:
        doc = await self.db.places.find_one({"place_id": place_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return Place(**doc)

    async def list_places(
        self,
        place_ids: Optional[List[int]] = None,
        category: Optional[str] = None,
        active_only: bool = True,
        leaf_only: bool = False
    ) -> List[Place]:
        """
        List places matching the filters

        Args:
            place_ids: Optional id filter
            category: Optional category filter
            active_only: Skip inactive places
            leaf_only: Skip places that other places point to as parent
        """
        query = {}
        if place_ids:
            query["place_id"] = {"$in": list(place_ids)}
        if category:
            query["category"] = category
        if active_only:
            query["is_active"] = True
        if leaf_only:
            parent_ids = await self.db.places.distinct("parent_id", {"parent_id": {"$ne": None}})
            if parent_ids:
                query.setdefault("place_id", {})["$nin"] = parent_ids

        docs = await self.db.places.find(query).sort("place_id", 1).to_list(length=None)
        places = []
        for doc in docs:
            doc.pop("_id", None)
            try:
                places.append(Place(**doc))
            except Exception as e:
                logger.warning(f"Failed to parse place document {doc.get('place_id', 'unknown')}: {e}")
                continue
        return places
