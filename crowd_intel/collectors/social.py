"""
Social trend velocity signal
"""
from typing import List
from pydantic import Field
from crowd_intel.clients.social_trends import (
    INSTAGRAM,
    TIKTOK,
    SocialTrendClient,
    SocialTrendData,
    suggested_hashtags,
)
from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.models.schemas import Place

NEUTRAL_SOCIAL = 50.0

# Relative weight of each platform inside the social signal
PLATFORM_WEIGHTS = {INSTAGRAM: 0.75, TIKTOK: 0.25}


class SocialSignal(SignalResult):
    signal: str = "social"
    samples: List[SocialTrendData] = Field(default_factory=list)


def blend_platforms(samples: List[SocialTrendData]) -> float:
    weights = [PLATFORM_WEIGHTS.get(s.platform, 0.0) for s in samples]
    total = sum(weights)
    if total == 0:
        return NEUTRAL_SOCIAL
    return sum(s.score * w for s, w in zip(samples, weights)) / total


class SocialTrendCollector(SignalCollector):
    name = "social"

    def __init__(self, client: SocialTrendClient = None, timeout: float = None):
        super().__init__(timeout)
        self.client = client or SocialTrendClient()

    async def fetch(self, place: Place) -> SocialSignal:
        hashtags = suggested_hashtags(place.name, place.category)
        samples = await self.client.trends(place.name, hashtags)
        return SocialSignal(score=blend_platforms(samples), samples=samples)

    def fallback(self, place: Place) -> SocialSignal:
        return SocialSignal(score=NEUTRAL_SOCIAL)
