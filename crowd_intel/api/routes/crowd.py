"""
API routes for current crowd data
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from crowd_intel.api.dependencies import get_engine
from crowd_intel.engine import CrowdEngine
from crowd_intel.exceptions import NotFound, PersistenceFailure
from crowd_intel.models.schemas import CrowdDataResponse, HeatmapResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/crowd", tags=["crowd"])


def parse_place_ids(place_ids: Optional[str]) -> Optional[List[int]]:
    """Comma-separated ids ("1,2,3") to a list"""
    if not place_ids:
        return None
    try:
        return [int(part) for part in place_ids.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid place_ids: {place_ids}")


@router.get("/heatmap", response_model=HeatmapResponse)
async def get_heatmap(
    place_ids: Optional[str] = None,
    category: Optional[str] = None,
    engine: CrowdEngine = Depends(get_engine)
):
    """
    Get heatmap points for places with a fresh reading

    Args:
        place_ids: Optional comma-separated place filter
        category: Optional category filter (BEACH, RESTAURANT, ...)

    Returns:
        Heatmap points
    """
    return await engine.heatmap.get_heatmap(place_ids=parse_place_ids(place_ids), category=category)


@router.get("/places/{place_id}", response_model=CrowdDataResponse)
async def get_current_crowd(place_id: int, engine: CrowdEngine = Depends(get_engine)):
    """
    Get current crowd data for a place

    Args:
        place_id: Place identifier

    Returns:
        Current crowd reading with place metadata
    """
    try:
        return await engine.aggregation.get_current_crowd_data(place_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceFailure as e:
        logger.error(f"Error storing crowd reading for place {place_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Crowd reading could not be stored")
