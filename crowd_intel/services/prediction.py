"""
Prediction service
Hourly crowd forecasts for one place and day, blended from historical
patterns, the weather forecast, scheduled events and a time-of-day trend
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple, Union
import pandas as pd
from dateutil import parser as date_parser
from crowd_intel.clients.weather import WeatherClient
from crowd_intel.collectors.events import event_score
from crowd_intel.config import settings
from crowd_intel.exceptions import NotFound, SignalUnavailable, StaleForecastRegenerationFailure
from crowd_intel.models.schemas import (
    BatchSummary,
    CrowdReading,
    Event,
    Forecast,
    ForecastBatch,
    Place,
    PredictionResponse,
    WeatherSnapshot,
    WeatherSummary,
)
from crowd_intel.services.crowd_index import determine_crowd_level
from crowd_intel.stores.events import EventStore
from crowd_intel.stores.forecasts import ForecastStore
from crowd_intel.stores.places import PlaceStore
from crowd_intel.stores.readings import ReadingStore
from crowd_intel.utils import clamp, round_half_up, utcnow

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
NEUTRAL_COMPONENT = 50.0
MIN_CONFIDENCE = 0.3  # slot with no matching history

# Blend weights
HISTORICAL_WEIGHT = 0.5
WEATHER_WEIGHT = 0.2
EVENT_WEIGHT = 0.2
TREND_WEIGHT = 0.1

# Time-of-day curve
TREND_BASE = 30.0
TREND_MIDDAY = 60.0  # 11-14h
TREND_EVENING = 80.0  # 19-23h
WEEKEND_MULTIPLIER = 1.3
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


def parse_target_date(value: Union[str, date, None]) -> date:
    """Target date from an ISO string or date; today (UTC) when not given"""
    if value is None:
        return utcnow().date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.isoparse(value).date()


def trend_component(hour: int, weekday: int) -> float:
    if 19 <= hour <= 23:
        trend = TREND_EVENING
    elif 11 <= hour <= 14:
        trend = TREND_MIDDAY
    else:
        trend = TREND_BASE
    if weekday in WEEKEND_DAYS:
        trend *= WEEKEND_MULTIPLIER
    return min(100.0, trend)


def weather_component(forecast: List[WeatherSnapshot], hour: int) -> float:
    """Score of the 3-hour forecast bucket covering this hour"""
    bucket = hour // 3
    if bucket < len(forecast):
        return float(forecast[bucket].score)
    return NEUTRAL_COMPONENT


def events_in_hour(events: List[Event], hour_start: datetime) -> int:
    hour_end = hour_start + timedelta(hours=1)
    return sum(1 for event in events if event.start < hour_end and event.end > hour_start)


def historical_pattern(readings: List[CrowdReading], weekday: int) -> Dict[int, Tuple[float, int]]:
    """
    Mean observed index and sample count per hour of day, for readings on the given weekday

    Returns:
        {hour: (mean_index, sample_count)} for hours that have history
    """
    if not readings:
        return {}

    df = pd.DataFrame([{"timestamp": r.timestamp, "crowd_index": r.crowd_index} for r in readings])
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df = df[df["timestamp"].dt.weekday == weekday]
    if df.empty:
        return {}

    stats = df.groupby(df["timestamp"].dt.hour)["crowd_index"].agg(["mean", "count"])
    return {int(hour): (float(row["mean"]), int(row["count"])) for hour, row in stats.iterrows()}


def slot_confidence(sample_count: int) -> float:
    """Grows with the number of historical samples behind a slot, up to the configured base"""
    coverage = min(1.0, sample_count / settings.prediction_full_confidence_samples)
    return round(MIN_CONFIDENCE + (settings.prediction_base_confidence - MIN_CONFIDENCE) * coverage, 2)


def build_forecasts(
    place_id: int,
    target_date: date,
    history: Dict[int, Tuple[float, int]],
    weather_forecast: List[WeatherSnapshot],
    events: List[Event]
) -> List[Forecast]:
    """The 24 hour slots for one day, with the lowest-index hour flagged as best"""
    weekday = target_date.weekday()
    day_start = datetime.combine(target_date, time.min)

    forecasts = []
    best: Optional[Forecast] = None
    for hour in range(HOURS_PER_DAY):
        historical, samples = history.get(hour, (NEUTRAL_COMPONENT, 0))
        weather = weather_component(weather_forecast, hour)
        event = float(event_score(events_in_hour(events, day_start + timedelta(hours=hour))))
        trend = trend_component(hour, weekday)

        predicted = round_half_up(clamp(
            historical * HISTORICAL_WEIGHT
            + weather * WEATHER_WEIGHT
            + event * EVENT_WEIGHT
            + trend * TREND_WEIGHT
        ))

        forecast = Forecast(
            place_id=place_id,
            target_date=target_date,
            hour=hour,
            predicted_index=predicted,
            predicted_level=determine_crowd_level(predicted),
            confidence=slot_confidence(samples),
            historical_component=round(historical, 2),
            weather_component=weather,
            event_component=event,
            trend_component=trend,
        )
        forecasts.append(forecast)
        # Strict comparison keeps the earliest hour on ties
        if best is None or forecast.predicted_index < best.predicted_index:
            best = forecast

    best.is_best_hour = True
    return forecasts


class PredictionService:
    """Generates, stores and serves daily forecast batches"""

    def __init__(
        self,
        places: PlaceStore = None,
        readings: ReadingStore = None,
        forecasts: ForecastStore = None,
        events: EventStore = None,
        weather: WeatherClient = None
    ):
        self.places = places if places is not None else PlaceStore()
        self.readings = readings if readings is not None else ReadingStore()
        self.forecasts = forecasts if forecasts is not None else ForecastStore()
        self.events = events if events is not None else EventStore()
        self.weather = weather if weather is not None else WeatherClient()
        self.staleness = timedelta(minutes=settings.forecast_staleness_minutes)
        self.history_window = timedelta(days=settings.history_window_days)

    async def get_predictions(self, place_id: int, target_date: Union[str, date, None] = None) -> PredictionResponse:
        """
        Hourly predictions for a place and date

        Serves the stored batch while it is younger than the staleness window;
        otherwise regenerates it. If regeneration fails the previous batch is
        served when there is one.

        Raises:
            NotFound: Unknown or inactive place
            ValueError: Unparseable date
            StaleForecastRegenerationFailure: Regeneration failed and nothing was stored before
        """
        place = await self.places.get(place_id)
        if place is None or not place.is_active:
            raise NotFound(f"Place {place_id} not found")

        target = parse_target_date(target_date)
        batch = await self.forecasts.get_batch(place_id, target)

        if not self._is_fresh(batch):
            try:
                batch = await self.generate_predictions(place, target)
            except Exception as e:
                error = StaleForecastRegenerationFailure(
                    f"Could not regenerate forecast for place {place_id} on {target}: {e}"
                )
                if batch is None:
                    raise error from e
                logger.error(f"{error}; serving batch generated at {batch.generated_at}")

        return await self._to_response(place, target, batch)

    def _is_fresh(self, batch: Optional[ForecastBatch]) -> bool:
        return (
            batch is not None
            and len(batch.forecasts) == HOURS_PER_DAY
            and batch.generated_at > utcnow() - self.staleness
        )

    async def generate_predictions(self, place: Place, target_date: date) -> ForecastBatch:
        """Compute all 24 hour slots and replace the stored batch in one write"""
        now = utcnow()
        readings = await self.readings.observed_since(place.place_id, now - self.history_window)
        history = historical_pattern(readings, target_date.weekday())

        try:
            weather_forecast = await self.weather.forecast(place.latitude, place.longitude, place.category)
        except SignalUnavailable as e:
            logger.warning(f"{e} for place {place.place_id}, using neutral weather component")
            weather_forecast = []

        day_start = datetime.combine(target_date, time.min)
        events = await self.events.active_events_at(place.place_id, day_start, day_start + timedelta(days=1))

        batch = ForecastBatch(
            place_id=place.place_id,
            target_date=target_date,
            generated_at=now,
            forecasts=build_forecasts(place.place_id, target_date, history, weather_forecast, events),
        )
        await self.forecasts.replace_batch(batch)

        logger.info(
            f"Generated forecast for place {place.place_id} on {target_date} "
            f"from {len(readings)} readings, {len(events)} events"
        )
        return batch

    async def _to_response(self, place: Place, target_date: date, batch: ForecastBatch) -> PredictionResponse:
        best_hour = next((f.hour for f in batch.forecasts if f.is_best_hour), None)

        weather_summary = None
        try:
            current = await self.weather.current(place.latitude, place.longitude, place.category)
            weather_summary = WeatherSummary(temperature=current.temperature, condition=current.weather_condition)
        except SignalUnavailable as e:
            logger.warning(f"{e} for place {place.place_id}, omitting weather summary")

        day_start = datetime.combine(target_date, time.min)
        day_end = day_start + timedelta(days=1)
        events = await self.events.active_events_at(place.place_id, day_start, day_end)
        # Labels cover events starting on the target day only
        events = [e for e in events if day_start <= e.start < day_end]

        return PredictionResponse(
            place_id=place.place_id,
            place_name=place.name,
            date=target_date,
            hourly_predictions=batch.forecasts,
            best_hour=best_hour,
            weather_forecast=weather_summary,
            upcoming_events=[f"{e.name} at {e.start.strftime('%H:%M')}" for e in events],
            generated_at=batch.generated_at,
        )

    async def generate_daily_predictions(self, target_date: Optional[date] = None) -> BatchSummary:
        """
        Forecast tomorrow (or the given date) for every active place

        Per-place failures are logged and counted, never raised.
        """
        started_at = utcnow()
        target = target_date or (started_at.date() + timedelta(days=1))
        places = await self.places.list_places(active_only=True)
        logger.info(f"Generating forecasts for {len(places)} places on {target}")

        failed_place_ids = []
        for place in places:
            try:
                await self.generate_predictions(place, target)
            except Exception as e:
                logger.error(f"Failed to generate forecast for place {place.place_id} ({place.name}): {e}", exc_info=True)
                failed_place_ids.append(place.place_id)

        summary = BatchSummary(
            job="forecast",
            total=len(places),
            succeeded=len(places) - len(failed_place_ids),
            failed=len(failed_place_ids),
            failed_place_ids=failed_place_ids,
            started_at=started_at,
            finished_at=utcnow(),
        )
        logger.info(f"Forecast generation complete: {summary.succeeded}/{summary.total} succeeded")
        return summary
