"""
Live popularity signal
"""
from crowd_intel.clients.popular_times import PopularTimesClient
from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.models.schemas import Place

NEUTRAL_POPULARITY = 50.0


class PopularitySignal(SignalResult):
    signal: str = "live_popularity"
    historic_score: float = NEUTRAL_POPULARITY


class LivePopularityCollector(SignalCollector):
    """Live busyness (score) with the venue's typical busyness alongside"""

    name = "live_popularity"

    def __init__(self, client: PopularTimesClient = None, timeout: float = None):
        super().__init__(timeout)
        self.client = client or PopularTimesClient()

    async def fetch(self, place: Place) -> PopularitySignal:
        data = await self.client.popularity(place.name, place.latitude, place.longitude)
        return PopularitySignal(score=data.live_score, historic_score=data.historic_score)

    def fallback(self, place: Place) -> PopularitySignal:
        return PopularitySignal(score=NEUTRAL_POPULARITY, historic_score=NEUTRAL_POPULARITY)
