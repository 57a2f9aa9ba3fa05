"""
Heatmap service
Current crowd levels of many places, formatted for map display
"""
import logging
from datetime import timedelta
from typing import List, Optional
from crowd_intel.config import settings
from crowd_intel.models.schemas import HeatmapPoint, HeatmapResponse
from crowd_intel.services.crowd_index import color_for_level
from crowd_intel.stores.places import PlaceStore
from crowd_intel.stores.readings import ReadingStore
from crowd_intel.utils import utcnow

logger = logging.getLogger(__name__)


class HeatmapService:
    """Builds heatmap points from stored readings; never triggers a recomputation"""

    def __init__(self, places: PlaceStore = None, readings: ReadingStore = None):
        self.places = places if places is not None else PlaceStore()
        self.readings = readings if readings is not None else ReadingStore()
        self.freshness = timedelta(minutes=settings.freshness_window_minutes)

    async def get_heatmap(self, place_ids: Optional[List[int]] = None, category: Optional[str] = None) -> HeatmapResponse:
        """
        Heatmap points for active leaf places

        Places without a reading inside the freshness window are left out,
        not shown as empty.
        """
        now = utcnow()
        places = await self.places.list_places(
            place_ids=place_ids,
            category=category,
            active_only=True,
            leaf_only=True
        )
        latest = await self.readings.latest_observed_many([p.place_id for p in places], now - self.freshness)

        points = []
        for place in places:
            reading = latest.get(place.place_id)
            if reading is None:
                continue
            points.append(HeatmapPoint(
                place_id=place.place_id,
                name=place.name,
                category=place.category,
                latitude=place.latitude,
                longitude=place.longitude,
                crowd_index=reading.crowd_index,
                crowd_level=reading.crowd_level,
                color=color_for_level(reading.crowd_level),
            ))

        logger.debug(f"Heatmap: {len(points)} of {len(places)} places have a fresh reading")
        return HeatmapResponse(points=points, count=len(points), timestamp=now)
