"""
MongoDB document models (for reference and type hints)
These represent the structure of documents stored in MongoDB collections
"""
from typing import Optional, List
from datetime import datetime
from typing_extensions import TypedDict


# Collaborator collections
class PlaceDoc(TypedDict, total=False):
    """Point of interest, owned by the location service"""
    place_id: int
    name: str
    category: str
    latitude: float
    longitude: float
    is_active: bool
    parent_id: Optional[int]


class EventDoc(TypedDict, total=False):
    """Scheduled event at a place"""
    place_id: int
    name: str
    start: datetime
    end: datetime
    is_active: bool


class SensorDoc(TypedDict, total=False):
    """Registered occupancy sensor"""
    sensor_id: int
    place_id: int
    sensor_type: str  # "wifi" | "ble" | "camera"
    name: str
    mac_address: Optional[str]
    ip_address: Optional[str]
    capacity: Optional[int]
    threshold: Optional[float]
    calibration_factor: float
    last_calibrated: Optional[datetime]
    is_active: bool
    created_at: datetime


class SensorReadingDoc(TypedDict, total=False):
    """Calibrated sensor observation"""
    sensor_id: int
    count: int
    raw_value: Optional[float]
    confidence: Optional[float]
    timestamp: datetime


# Engine collections
class CrowdReadingDoc(TypedDict, total=False):
    """Observed (or predicted) crowd snapshot"""
    place_id: int
    crowd_index: int  # 0-100
    crowd_level: str  # "QUIET" | "MODERATE" | "BUSY" | "VERY_BUSY"
    signal_scores: dict
    temperature: Optional[float]
    weather_condition: Optional[str]
    active_events: List[str]
    degraded_signals: List[str]
    signal_coverage: Optional[float]
    timestamp: datetime
    is_prediction: bool
    confidence: Optional[float]


class WeatherSnapshotDoc(TypedDict, total=False):
    """Weather conditions stored next to every observed reading"""
    place_id: int
    timestamp: datetime
    score: float
    temperature: float
    feels_like: Optional[float]
    humidity: Optional[float]
    uv_index: Optional[float]
    wind_speed: Optional[float]
    cloud_cover: Optional[float]
    precipitation: float
    weather_condition: str
    wave_height: Optional[float]
    sea_temperature: Optional[float]


class SocialTrendDoc(TypedDict, total=False):
    """Per-platform social activity sample"""
    place_id: int
    platform: str  # "instagram" | "tiktok"
    score: float
    post_count: int
    story_count: int
    view_count: int
    hashtag_velocity: float
    engagement: float
    hashtags: List[str]
    hour_of_day: int
    day_of_week: str  # "MON" ... "SUN"
    timestamp: datetime


class ForecastBatchDoc(TypedDict, total=False):
    """All 24 hour slots for one place and target date"""
    place_id: int
    target_date: str  # ISO date
    generated_at: datetime
    forecasts: List[dict]
