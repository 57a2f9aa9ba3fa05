"""
Weather impact signal
"""
from crowd_intel.clients.weather import WeatherClient, default_weather_snapshot
from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.models.schemas import Place, WeatherSnapshot


class WeatherSignal(SignalResult):
    signal: str = "weather"
    snapshot: WeatherSnapshot


class WeatherCollector(SignalCollector):
    """Current weather, scored for how much it draws people out"""

    name = "weather"

    def __init__(self, client: WeatherClient = None, timeout: float = None):
        super().__init__(timeout)
        self.client = client or WeatherClient()

    async def fetch(self, place: Place) -> WeatherSignal:
        snapshot = await self.client.current(place.latitude, place.longitude, place.category)
        return WeatherSignal(score=snapshot.score, snapshot=snapshot)

    def fallback(self, place: Place) -> WeatherSignal:
        snapshot = default_weather_snapshot()
        return WeatherSignal(score=snapshot.score, snapshot=snapshot)
