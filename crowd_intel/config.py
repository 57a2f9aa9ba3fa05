"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Core
    mongodb_uri: str = "mongodb://localhost:27017"  # Override via MONGODB_URI env var in production
    mongodb_db_name: str = "crowd_intelligence"
    environment: str = "development"  # development | production
    use_mocks: bool = True  # Set to False to use real provider APIs

    # CORS Configuration
    cors_origins: str = "http://localhost:8080,http://localhost:3000,http://localhost:5173,http://127.0.0.1:8080,http://127.0.0.1:3000"  # Comma-separated list, override via CORS_ORIGINS env var

    # Weather - OpenWeatherMap
    openweather_api_key: Optional[str] = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"

    # Live popularity - BestTime.app foot traffic
    besttime_api_key: Optional[str] = None
    besttime_live_url: str = "https://besttime.app/api/v1/forecasts/live"

    # Social trends - Instagram Graph API
    instagram_access_token: Optional[str] = None
    instagram_user_id: Optional[str] = None
    instagram_graph_url: str = "https://graph.facebook.com/v19.0"

    # Social trends - TikTok Research API
    tiktok_access_token: Optional[str] = None
    tiktok_research_url: str = "https://open.tiktokapis.com/v2/research/video/query/"

    # Signal collection
    collector_timeout_seconds: float = 5.0  # Per collector
    fanout_deadline_seconds: float = 8.0  # Whole fan-out for one place
    sensor_recency_minutes: int = 5
    event_points_per_event: int = 30

    # Freshness / caching
    freshness_window_minutes: int = 15
    forecast_staleness_minutes: int = 60
    history_window_days: int = 30

    # Prediction Configuration
    prediction_base_confidence: float = 0.75
    prediction_full_confidence_samples: int = 12  # Samples per hour slot for max confidence

    # Scheduling
    refresh_interval_minutes: int = 10
    forecast_cron_hour: int = 2  # Off-peak daily forecast run
    forecast_cron_minute: int = 0

    # Application
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
