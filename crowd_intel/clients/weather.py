"""
OpenWeatherMap client
Supports both real API calls and mock data based on USE_MOCKS config
"""
import httpx
import logging
from typing import List, Dict
from datetime import datetime
from crowd_intel.config import settings
from crowd_intel.exceptions import SignalUnavailable
from crowd_intel.models.schemas import WeatherSnapshot
from crowd_intel.utils import clamp, utcnow

logger = logging.getLogger(__name__)

BEACH = "BEACH"


def calculate_weather_score(
    temperature: float,
    condition: str,
    cloud_cover: float,
    wind_speed_kmh: float,
    precipitation: float,
    category: str
) -> int:
    """
    Score (0-100) for how favourable the weather is for crowds.
    Higher score = better weather = more people expected.
    """
    score = 50.0

    # Temperature band, beaches want it warmer
    if category == BEACH:
        if 25 <= temperature <= 30:
            score += 30
        elif 20 <= temperature < 25:
            score += 15
        elif temperature < 20 or temperature > 35:
            score -= 20
    else:
        if 18 <= temperature <= 25:
            score += 25
        elif 15 <= temperature < 18:
            score += 10
        elif temperature < 10 or temperature > 30:
            score -= 15

    if condition == "clear":
        score += 20
    elif condition == "clouds":
        score += (100 - cloud_cover) / 10
    elif condition == "rain":
        score -= 30
    elif condition == "thunderstorm":
        score -= 40
    elif condition == "snow":
        score -= 35

    if wind_speed_kmh > 30:
        score -= 15
    elif wind_speed_kmh > 20:
        score -= 10

    if precipitation > 5:
        score -= 25
    elif precipitation > 0:
        score -= 10

    return round(clamp(score))


class WeatherClient:
    """Client for current weather and 3-hour forecast buckets"""

    def __init__(self):
        self.api_key = settings.openweather_api_key
        self.base_url = settings.openweather_base_url
        self.timeout = settings.collector_timeout_seconds
        self.use_mock = settings.use_mocks or not self.api_key

    async def current(self, latitude: float, longitude: float, category: str) -> WeatherSnapshot:
        """
        Fetch current weather for a coordinate

        Returns:
            Weather snapshot including its crowd-favourability score
        """
        if self.use_mock:
            logger.debug("Using MOCK data for current weather")
            return self._mock_snapshot(latitude, longitude, category, utcnow())

        try:
            raw = await self._fetch_raw("weather", latitude, longitude)
            snapshot = self._parse_item(raw, category, precipitation_key="1h")
            snapshot.uv_index = await self._fetch_uv_index(latitude, longitude)
            if category == BEACH:
                snapshot.sea_temperature, snapshot.wave_height = self._estimate_marine(
                    snapshot.temperature, snapshot.wind_speed or 0.0, utcnow()
                )
            return snapshot
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            raise SignalUnavailable("weather", str(e)) from e

    async def forecast(self, latitude: float, longitude: float, category: str) -> List[WeatherSnapshot]:
        """
        Fetch the next 24 hours of forecast in 3-hour buckets

        Returns:
            Up to 8 snapshots, one per 3-hour bucket
        """
        if self.use_mock:
            logger.debug("Using MOCK data for weather forecast")
            return self._mock_forecast(latitude, longitude, category)

        try:
            raw = await self._fetch_raw("forecast", latitude, longitude, cnt=8)
            return [
                self._parse_item(item, category, precipitation_key="3h")
                for item in raw.get("list", [])
            ]
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            raise SignalUnavailable("weather_forecast", str(e)) from e

    async def _fetch_raw(self, endpoint: str, latitude: float, longitude: float, **extra) -> Dict:
        """Low-level HTTP call to OpenWeatherMap"""
        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "units": "metric",
        }
        params.update(extra)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}/{endpoint}", params=params)
            response.raise_for_status()
            return response.json()

    async def _fetch_uv_index(self, latitude: float, longitude: float) -> float:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/uvi",
                    params={"lat": latitude, "lon": longitude, "appid": self.api_key}
                )
                response.raise_for_status()
                return float(response.json()["value"])
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.debug(f"UV index unavailable, using default: {e}")
            return 5.0  # moderate UV

    def _parse_item(self, item: Dict, category: str, precipitation_key: str) -> WeatherSnapshot:
        """Parse one OpenWeatherMap observation/forecast entry"""
        temperature = float(item["main"]["temp"])
        condition = item["weather"][0]["main"].lower()
        cloud_cover = float(item.get("clouds", {}).get("all", 0))
        wind_speed = float(item.get("wind", {}).get("speed", 0)) * 3.6  # m/s to km/h
        precipitation = float((item.get("rain") or {}).get(precipitation_key, 0))

        return WeatherSnapshot(
            score=calculate_weather_score(temperature, condition, cloud_cover, wind_speed, precipitation, category),
            temperature=temperature,
            feels_like=item["main"].get("feels_like"),
            humidity=item["main"].get("humidity"),
            wind_speed=wind_speed,
            cloud_cover=cloud_cover,
            precipitation=precipitation,
            weather_condition=condition,
        )

    def _estimate_marine(self, air_temperature: float, wind_speed: float, now: datetime):
        """Sea temperature and wave height estimate (no marine feed on the free tier)"""
        is_summer = 6 <= now.month <= 9
        sea_temperature = round(min(air_temperature, 26.0 if is_summer else 18.0) - 1.0, 1)
        wave_height = round(0.3 + min(wind_speed, 40.0) / 40.0 * 1.2, 1)
        return sea_temperature, wave_height

    def _mock_snapshot(self, latitude: float, longitude: float, category: str, at: datetime) -> WeatherSnapshot:
        """Deterministic mock weather for a coordinate and time"""
        is_summer = 6 <= at.month <= 9
        is_clear = 8 <= at.hour <= 20
        temperature = (26.0 if is_summer else 19.0) + (2.0 if 12 <= at.hour <= 16 else 0.0)
        condition = "clear" if is_clear else "clouds"
        cloud_cover = 15.0 if is_clear else 70.0
        wind_speed = 12.0

        snapshot = WeatherSnapshot(
            score=calculate_weather_score(temperature, condition, cloud_cover, wind_speed, 0.0, category),
            temperature=temperature,
            feels_like=temperature + 2.0,
            humidity=65.0,
            uv_index=8.0 if 11 <= at.hour <= 15 else 3.0,
            wind_speed=wind_speed,
            cloud_cover=cloud_cover,
            precipitation=0.0,
            weather_condition=condition,
        )
        if category == BEACH:
            snapshot.sea_temperature, snapshot.wave_height = self._estimate_marine(temperature, wind_speed, at)
        return snapshot

    def _mock_forecast(self, latitude: float, longitude: float, category: str) -> List[WeatherSnapshot]:
        now = utcnow().replace(minute=0, second=0, microsecond=0)
        return [
            self._mock_snapshot(latitude, longitude, category, now.replace(hour=(bucket * 3) % 24))
            for bucket in range(8)
        ]


def default_weather_snapshot() -> WeatherSnapshot:
    """Temperate baseline used when no weather source answers"""
    return WeatherSnapshot(
        score=50.0,
        temperature=20.0,
        weather_condition="clear",
    )
