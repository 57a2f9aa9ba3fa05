"""
Pydantic schemas for API request/response validation
"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date, datetime


class CrowdLevel(str, Enum):
    """Discrete crowd bucket derived from the crowd index"""
    QUIET = "QUIET"
    MODERATE = "MODERATE"
    BUSY = "BUSY"
    VERY_BUSY = "VERY_BUSY"


# Collaborator records (owned by the location / event / sensor stores)
class Place(BaseModel):
    """Physical point of interest"""
    place_id: int
    name: str
    category: str  # "BEACH" | "ATTRACTION" | "RESTAURANT" | "NIGHTLIFE" | ...
    latitude: float
    longitude: float
    is_active: bool = True
    parent_id: Optional[int] = None


class Event(BaseModel):
    """Scheduled event at a place"""
    place_id: int
    name: str
    start: datetime
    end: datetime
    is_active: bool = True


class Sensor(BaseModel):
    """Physical occupancy sensor tied to a place"""
    sensor_id: int
    place_id: int
    sensor_type: str  # "wifi" | "ble" | "camera"
    name: str
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    capacity: Optional[int] = None
    threshold: Optional[float] = None
    calibration_factor: float = 1.0
    last_calibrated: Optional[datetime] = None
    is_active: bool = True


class SensorReading(BaseModel):
    """Raw occupancy observation from a sensor"""
    sensor_id: int
    count: int = Field(ge=0)
    raw_value: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    timestamp: datetime


# Signals
class SignalScores(BaseModel):
    """Per-signal scores; a missing signal is None, never zero-filled"""
    live_popularity: Optional[float] = None
    historic_popularity: Optional[float] = None
    weather: Optional[float] = None
    event: Optional[float] = None
    sensor: Optional[float] = None
    social: Optional[float] = None


class WeatherSnapshot(BaseModel):
    """Weather conditions and their crowd-favourability score"""
    score: float = Field(ge=0, le=100)
    temperature: float  # Celsius
    feels_like: Optional[float] = None
    humidity: Optional[float] = None  # Percentage
    uv_index: Optional[float] = None
    wind_speed: Optional[float] = None  # km/h
    cloud_cover: Optional[float] = None  # Percentage
    precipitation: float = 0.0  # mm
    weather_condition: str
    wave_height: Optional[float] = None  # meters (beaches)
    sea_temperature: Optional[float] = None  # Celsius (beaches)


# Readings
class CrowdReading(BaseModel):
    """Immutable crowd snapshot for a place"""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    place_id: int
    crowd_index: int = Field(ge=0, le=100)
    crowd_level: CrowdLevel
    signal_scores: SignalScores
    temperature: Optional[float] = None
    weather_condition: Optional[str] = None
    active_events: List[str] = Field(default_factory=list)
    degraded_signals: List[str] = Field(default_factory=list)  # signals served by their fallback
    signal_coverage: Optional[float] = Field(default=None, ge=0, le=1)  # share of signals that answered
    timestamp: datetime
    is_prediction: bool = False
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


class Forecast(BaseModel):
    """One hour-slot prediction for a place and target date"""
    model_config = ConfigDict(use_enum_values=True)

    place_id: int
    target_date: date
    hour: int = Field(ge=0, le=23)
    predicted_index: int = Field(ge=0, le=100)
    predicted_level: CrowdLevel
    confidence: float = Field(ge=0, le=1)
    historical_component: float
    weather_component: float
    event_component: float
    trend_component: float
    is_best_hour: bool = False


class ForecastBatch(BaseModel):
    """The 24 hourly forecasts for one place and date"""
    place_id: int
    target_date: date
    generated_at: datetime
    forecasts: List[Forecast]


# API Response Schemas
class CrowdDataResponse(BaseModel):
    """Current crowd data for a place"""
    model_config = ConfigDict(use_enum_values=True)

    place_id: int
    place_name: str
    category: str
    latitude: float
    longitude: float
    crowd_index: int = Field(ge=0, le=100)
    crowd_level: CrowdLevel
    signal_scores: SignalScores
    temperature: Optional[float] = None
    weather_condition: Optional[str] = None
    active_events: List[str] = Field(default_factory=list)
    degraded_signals: List[str] = Field(default_factory=list)
    signal_coverage: Optional[float] = None
    timestamp: datetime
    is_prediction: bool = False
    confidence: Optional[float] = None


class HeatmapPoint(BaseModel):
    """One place's current score formatted for map display"""
    model_config = ConfigDict(use_enum_values=True)

    place_id: int
    name: str
    category: str
    latitude: float
    longitude: float
    crowd_index: int
    crowd_level: CrowdLevel
    color: str


class HeatmapResponse(BaseModel):
    """Response for heatmap query"""
    points: List[HeatmapPoint]
    count: int
    timestamp: datetime


class WeatherSummary(BaseModel):
    temperature: float
    condition: str


class PredictionResponse(BaseModel):
    """Hourly predictions for one place and date"""
    place_id: int
    place_name: str
    date: date
    hourly_predictions: List[Forecast]
    best_hour: Optional[int] = None
    weather_forecast: Optional[WeatherSummary] = None
    upcoming_events: List[str] = Field(default_factory=list)
    generated_at: datetime


class BatchSummary(BaseModel):
    """Outcome of a scheduled batch job"""
    job: str
    total: int
    succeeded: int
    failed: int
    failed_place_ids: List[int] = Field(default_factory=list)
    degraded_place_ids: List[int] = Field(default_factory=list)  # scored, but every signal fell back
    started_at: datetime
    finished_at: datetime


# Sensor registry
class RegisterSensorRequest(BaseModel):
    place_id: int
    sensor_type: str
    name: str
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    threshold: Optional[float] = None


class SubmitSensorReadingRequest(BaseModel):
    sensor_id: int
    count: int = Field(ge=0)
    raw_value: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    timestamp: Optional[datetime] = None


class UpdateSensorRequest(BaseModel):
    """Fields left unset keep their stored value"""
    name: Optional[str] = None
    is_active: Optional[bool] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    threshold: Optional[float] = None
    calibration_factor: Optional[float] = Field(default=None, gt=0)


class SensorReadingAck(BaseModel):
    sensor_id: int
    calibrated_count: int
    timestamp: datetime


class SensorStats(BaseModel):
    sensor_id: int
    sensor_name: str
    period: str
    total_readings: int
    average_count: int
    max_count: int
    min_count: int
    utilization_rate: Optional[float] = None


class SensorWithReadings(Sensor):
    """Sensor with its most recent readings, newest first"""
    recent_readings: List[SensorReading] = Field(default_factory=list)
