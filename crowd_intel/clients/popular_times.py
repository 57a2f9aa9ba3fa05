"""
Live popularity client (BestTime.app foot traffic)
Supports both real API calls and mock data based on USE_MOCKS config
"""
import httpx
import logging
from typing import Dict, Optional
from datetime import datetime
from pydantic import BaseModel
from crowd_intel.config import settings
from crowd_intel.exceptions import SignalUnavailable
from crowd_intel.utils import clamp, utcnow

logger = logging.getLogger(__name__)


class PopularityData(BaseModel):
    """Live and typical busyness for a venue, both 0-100"""
    live_score: float
    historic_score: float
    live_available: bool = True


class PopularTimesClient:
    """Client for live venue busyness"""

    def __init__(self):
        self.api_key = settings.besttime_api_key
        self.live_url = settings.besttime_live_url
        self.timeout = settings.collector_timeout_seconds
        self.use_mock = settings.use_mocks or not self.api_key

    async def popularity(self, name: str, latitude: float, longitude: float) -> PopularityData:
        """
        Fetch live and typical busyness for a venue

        Args:
            name: Venue display name
            latitude: Venue latitude
            longitude: Venue longitude

        Returns:
            Live and historic scores on a 0-100 scale
        """
        if self.use_mock:
            logger.debug(f"Using MOCK popularity data for {name}")
            return self._mock_popularity(utcnow())

        try:
            raw = await self._fetch_live_raw(name, latitude, longitude)
            return self._parse_response(raw)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            raise SignalUnavailable("live_popularity", str(e)) from e

    async def _fetch_live_raw(self, name: str, latitude: float, longitude: float) -> Dict:
        """Low-level HTTP call to the live forecast endpoint"""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.live_url,
                params={
                    "api_key_private": self.api_key,
                    "venue_name": name,
                    "venue_address": f"{latitude},{longitude}",
                },
                headers={"Accept": "application/json"}
            )
            response.raise_for_status()
            return response.json()

    def _parse_response(self, data: Dict) -> PopularityData:
        analysis = data["analysis"]
        historic = float(analysis.get("venue_forecasted_busyness") or 0)
        live_available = bool(analysis.get("venue_live_busyness_available"))
        live: Optional[float] = analysis.get("venue_live_busyness") if live_available else None
        if live is None:
            # No live feed for this venue right now, fall back on the typical value
            live = historic
            live_available = False

        return PopularityData(
            live_score=clamp(float(live)),
            historic_score=clamp(historic),
            live_available=live_available,
        )

    def _mock_popularity(self, at: datetime) -> PopularityData:
        """Time-of-day busyness curve. Peak hours: 11-14, 19-22"""
        hour = at.hour
        is_weekend = at.weekday() >= 5

        if 11 <= hour <= 14:
            live_base, historic_base = 70, 65
        elif 19 <= hour <= 22:
            live_base, historic_base = 80, 75
        elif 8 <= hour <= 10:
            live_base, historic_base = 40, 35
        elif 15 <= hour <= 18:
            live_base, historic_base = 50, 45
        else:
            live_base, historic_base = 20, 30

        live = clamp(live_base * (1.3 if is_weekend else 1.0))
        historic = clamp(historic_base * (1.2 if is_weekend else 1.0))
        return PopularityData(live_score=round(live), historic_score=round(historic))
