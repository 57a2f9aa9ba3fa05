"""
Social trend clients (Instagram Graph API, TikTok Research API)
Supports both real API calls and mock data based on USE_MOCKS config
"""
import asyncio
import re
import httpx
import logging
from typing import List, Dict
from datetime import datetime, timedelta, timezone
from pydantic import BaseModel, Field
from crowd_intel.config import settings
from crowd_intel.exceptions import SignalUnavailable
from crowd_intel.utils import clamp, utcnow

logger = logging.getLogger(__name__)

INSTAGRAM = "instagram"
TIKTOK = "tiktok"

CATEGORY_HASHTAGS = {
    "BEACH": ["beach", "beachlife", "summervibes"],
    "RESTAURANT": ["restaurant", "food", "dining"],
    "NIGHTLIFE": ["party", "nightlife", "nightout"],
    "ATTRACTION": ["travel", "sightseeing", "explore"],
}


class SocialTrendData(BaseModel):
    """Activity sample for one platform"""
    platform: str
    score: float = Field(ge=0, le=100)
    post_count: int = 0
    story_count: int = 0
    view_count: int = 0
    hashtag_velocity: float = 0.0  # posts per minute over the last hour
    engagement: float = 0.0
    hashtags: List[str] = Field(default_factory=list)


def suggested_hashtags(name: str, category: str) -> List[str]:
    """Hashtags derived from a place's name and category"""
    slug = re.sub(r"[^a-z0-9]", "", name.lower())
    tags = [slug, f"{slug}{category.lower()}"] if slug else []
    return tags + CATEGORY_HASHTAGS.get(category, [])


def instagram_score(post_count: int, engagement: float, hashtag_count: int) -> int:
    """Posts 60%, engagement 30%, hashtag coverage 10%"""
    post_score = min(100.0, post_count / 100 * 100)
    engagement_score = min(100.0, engagement * 1000)
    hashtag_score = min(100.0, hashtag_count / 10 * 100)
    return round(clamp(post_score * 0.6 + engagement_score * 0.3 + hashtag_score * 0.1))


def tiktok_score(video_count: int, engagement: float, hashtag_count: int) -> int:
    """Videos 60%, engagement 30%, hashtag coverage 10%"""
    video_score = min(100.0, video_count / 50 * 100)
    engagement_score = min(100.0, engagement * 800)
    hashtag_score = min(100.0, hashtag_count / 10 * 100)
    return round(clamp(video_score * 0.6 + engagement_score * 0.3 + hashtag_score * 0.1))


class InstagramClient:
    """Client for Instagram hashtag activity"""

    def __init__(self):
        self.access_token = settings.instagram_access_token
        self.user_id = settings.instagram_user_id
        self.graph_url = settings.instagram_graph_url
        self.timeout = settings.collector_timeout_seconds
        self.use_mock = settings.use_mocks or not (self.access_token and self.user_id)

    async def fetch_trends(self, name: str, hashtags: List[str]) -> SocialTrendData:
        if self.use_mock:
            logger.debug(f"Using MOCK Instagram data for {name}")
            return self._mock_trends(hashtags, utcnow())

        cutoff = datetime.now(timezone.utc) - timedelta(hours=1)
        post_count = 0
        interactions = 0
        # Graph API caps unique hashtag lookups per week, so only the most specific ones
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for tag in hashtags[:3]:
                media = await self._fetch_recent_media(client, tag)
                for item in media:
                    posted = datetime.fromisoformat(item["timestamp"].replace("+0000", "+00:00"))
                    if posted >= cutoff:
                        post_count += 1
                        interactions += item.get("like_count", 0) + item.get("comments_count", 0)

        engagement = min(1.0, interactions / post_count / 1000) if post_count else 0.0
        return SocialTrendData(
            platform=INSTAGRAM,
            score=instagram_score(post_count, engagement, len(hashtags)),
            post_count=post_count,
            hashtag_velocity=post_count / 60,
            engagement=engagement,
            hashtags=hashtags,
        )

    async def _fetch_recent_media(self, client: httpx.AsyncClient, tag: str) -> List[Dict]:
        """Hashtag search followed by its recent media (last 24 hours)"""
        response = await client.get(
            f"{self.graph_url}/ig_hashtag_search",
            params={"user_id": self.user_id, "q": tag, "access_token": self.access_token}
        )
        response.raise_for_status()
        found = response.json().get("data", [])
        if not found:
            return []

        response = await client.get(
            f"{self.graph_url}/{found[0]['id']}/recent_media",
            params={
                "user_id": self.user_id,
                "fields": "id,timestamp,like_count,comments_count",
                "limit": 50,
                "access_token": self.access_token,
            }
        )
        response.raise_for_status()
        return response.json().get("data", [])

    def _mock_trends(self, hashtags: List[str], at: datetime) -> SocialTrendData:
        """Activity follows lunch and evening peaks, higher on weekends"""
        activity = 30.0
        if 11 <= at.hour <= 14:
            activity = 70.0
        if 19 <= at.hour <= 23:
            activity = 85.0
        if at.weekday() >= 5:
            activity *= 1.3

        post_count = round(activity)
        engagement = 0.065
        return SocialTrendData(
            platform=INSTAGRAM,
            score=instagram_score(post_count, engagement, len(hashtags)),
            post_count=post_count,
            story_count=round(post_count * 0.5),
            hashtag_velocity=post_count / 60,
            engagement=engagement,
            hashtags=hashtags,
        )


class TikTokClient:
    """Client for TikTok hashtag activity"""

    def __init__(self):
        self.access_token = settings.tiktok_access_token
        self.research_url = settings.tiktok_research_url
        self.timeout = settings.collector_timeout_seconds
        self.use_mock = settings.use_mocks or not self.access_token

    async def fetch_trends(self, name: str, hashtags: List[str]) -> SocialTrendData:
        if self.use_mock:
            logger.debug(f"Using MOCK TikTok data for {name}")
            return self._mock_trends(hashtags, utcnow())

        videos = await self._fetch_videos_raw(hashtags)
        cutoff = (datetime.now(timezone.utc) - timedelta(hours=1)).timestamp()
        recent = [v for v in videos if v.get("create_time", 0) >= cutoff]

        views = sum(v.get("view_count", 0) for v in recent)
        interactions = sum(v.get("like_count", 0) + v.get("comment_count", 0) for v in recent)
        engagement = interactions / views if views else 0.0

        return SocialTrendData(
            platform=TIKTOK,
            score=tiktok_score(len(recent), engagement, len(hashtags)),
            post_count=len(recent),
            view_count=views,
            hashtag_velocity=len(recent) / 60,
            engagement=engagement,
            hashtags=hashtags,
        )

    async def _fetch_videos_raw(self, hashtags: List[str]) -> List[Dict]:
        """Research API video query for today's videos tagged with any of the hashtags"""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.research_url,
                params={"fields": "id,create_time,like_count,comment_count,view_count"},
                headers={"Authorization": f"Bearer {self.access_token}"},
                json={
                    "query": {"and": [{
                        "operation": "IN",
                        "field_name": "hashtag_name",
                        "field_values": hashtags,
                    }]},
                    "start_date": today,
                    "end_date": today,
                    "max_count": 100,
                }
            )
            response.raise_for_status()
            return response.json().get("data", {}).get("videos", [])

    def _mock_trends(self, hashtags: List[str], at: datetime) -> SocialTrendData:
        activity = 20.0
        if 18 <= at.hour <= 23:
            activity = 80.0
        if 11 <= at.hour <= 14:
            activity = 50.0
        if at.weekday() >= 5:
            activity *= 1.4

        video_count = round(activity)
        engagement = 0.1
        return SocialTrendData(
            platform=TIKTOK,
            score=tiktok_score(video_count, engagement, len(hashtags)),
            post_count=video_count,
            view_count=video_count * 5000,
            hashtag_velocity=video_count / 60,
            engagement=engagement,
            hashtags=hashtags,
        )


class SocialTrendClient:
    """Fetches every platform concurrently; one platform failing does not sink the other"""

    def __init__(self, instagram: InstagramClient = None, tiktok: TikTokClient = None):
        self.instagram = instagram or InstagramClient()
        self.tiktok = tiktok or TikTokClient()

    async def trends(self, name: str, hashtags: List[str]) -> List[SocialTrendData]:
        results = await asyncio.gather(
            self.instagram.fetch_trends(name, hashtags),
            self.tiktok.fetch_trends(name, hashtags),
            return_exceptions=True
        )

        samples = []
        for platform, result in zip((INSTAGRAM, TIKTOK), results):
            if isinstance(result, Exception):
                logger.warning(f"{platform} trends unavailable for {name}: {result}")
                continue
            samples.append(result)

        if not samples:
            raise SignalUnavailable("social", "no platform answered")
        return samples
