"""
API routes for predictions
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from crowd_intel.api.dependencies import get_engine
from crowd_intel.engine import CrowdEngine
from crowd_intel.exceptions import NotFound, StaleForecastRegenerationFailure
from crowd_intel.models.schemas import PredictionResponse
from crowd_intel.services.prediction import parse_target_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


@router.get("/{place_id}", response_model=PredictionResponse)
async def get_predictions(
    place_id: int,
    date: Optional[str] = None,
    engine: CrowdEngine = Depends(get_engine)
):
    """
    Get hourly crowd predictions for a place

    Args:
        place_id: Place identifier
        date: Target date (YYYY-MM-DD), defaults to today

    Returns:
        24 hourly predictions with the best hour to visit
    """
    try:
        target_date = parse_target_date(date)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date}")

    try:
        return await engine.prediction.get_predictions(place_id, target_date)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StaleForecastRegenerationFailure as e:
        logger.error(str(e), exc_info=True)
        raise HTTPException(status_code=503, detail="Forecast not available")
