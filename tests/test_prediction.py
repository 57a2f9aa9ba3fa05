import asyncio
from datetime import date, datetime, timedelta

import pytest

from conftest import (
    FakeWeatherClient,
    InMemoryEventStore,
    InMemoryForecastStore,
    InMemoryReadingStore,
)
from crowd_intel.exceptions import NotFound, PersistenceFailure, StaleForecastRegenerationFailure
from crowd_intel.models.schemas import CrowdReading, Event, SignalScores, WeatherSnapshot
from crowd_intel.services.prediction import (
    PredictionService,
    parse_target_date,
    trend_component,
    weather_component,
)
from crowd_intel.utils import utcnow

WEDNESDAY = date(2026, 10, 21)


class PartlyFailingForecastStore(InMemoryForecastStore):
    def __init__(self, failing_place_ids):
        super().__init__()
        self.failing_place_ids = set(failing_place_ids)

    async def replace_batch(self, batch):
        if batch.place_id in self.failing_place_ids:
            raise PersistenceFailure(f"Failed to store forecast batch for place {batch.place_id}")
        return await super().replace_batch(batch)


def make_service(places, readings=None, forecasts=None, events=None, weather=None):
    return PredictionService(
        places=places,
        readings=readings if readings is not None else InMemoryReadingStore(),
        forecasts=forecasts if forecasts is not None else InMemoryForecastStore(),
        events=events if events is not None else InMemoryEventStore(),
        weather=weather if weather is not None else FakeWeatherClient(),
    )


def observed(place_id, index, timestamp):
    return CrowdReading(
        place_id=place_id,
        crowd_index=index,
        crowd_level="BUSY",
        signal_scores=SignalScores(live_popularity=index),
        timestamp=timestamp,
    )


def test_produces_24_rows_with_exactly_one_best_hour(places):
    service = make_service(places)

    response = asyncio.run(service.get_predictions(1, WEDNESDAY))

    rows = response.hourly_predictions
    assert [r.hour for r in rows] == list(range(24))
    best = [r for r in rows if r.is_best_hour]
    assert len(best) == 1
    assert best[0].predicted_index == min(r.predicted_index for r in rows)
    assert response.best_hour == best[0].hour


def test_blend_of_neutral_components(places):
    service = make_service(places)

    rows = asyncio.run(service.get_predictions(1, WEDNESDAY)).hourly_predictions

    # historical 50 * .5 + weather 50 * .2 + event 0 * .2 + trend * .1
    assert rows[3].predicted_index == 38
    assert rows[12].predicted_index == 41
    assert rows[20].predicted_index == 43
    assert rows[0].is_best_hour is True
    assert rows[0].predicted_level == "MODERATE"
    assert rows[0].confidence == pytest.approx(0.3)


def test_ties_pick_the_earliest_hour(places):
    service = make_service(places)

    rows = asyncio.run(service.get_predictions(1, WEDNESDAY)).hourly_predictions

    lowest = min(r.predicted_index for r in rows)
    first_lowest = next(r.hour for r in rows if r.predicted_index == lowest)
    assert [r.hour for r in rows if r.is_best_hour] == [first_lowest]


def test_historical_component_uses_same_weekday_and_hour(places):
    week_ago = (utcnow() - timedelta(days=7)).replace(hour=9, minute=15, second=0, microsecond=0)
    readings = InMemoryReadingStore()
    readings.readings.extend([
        observed(1, 80, week_ago),
        observed(1, 60, week_ago + timedelta(minutes=30)),
        observed(1, 0, week_ago - timedelta(days=1)),  # other weekday
        observed(1, 0, week_ago - timedelta(days=35)),  # outside the history window
        observed(2, 0, week_ago),  # other place
    ])
    service = make_service(places, readings=readings)
    target = week_ago.date() + timedelta(days=7)

    rows = asyncio.run(service.get_predictions(1, target)).hourly_predictions

    assert rows[9].historical_component == 70
    assert rows[10].historical_component == 50
    assert 0.3 < rows[9].confidence < 0.75
    assert rows[10].confidence == pytest.approx(0.3)


def test_event_component_counts_events_overlapping_each_hour(places):
    start = datetime(2026, 10, 21, 18, 0)
    events = InMemoryEventStore([
        Event(place_id=1, name="Regatta", start=start, end=start + timedelta(hours=2)),
    ])
    service = make_service(places, events=events)

    response = asyncio.run(service.get_predictions(1, WEDNESDAY))
    rows = response.hourly_predictions

    assert [r.event_component for r in rows[17:21]] == [0, 30, 30, 0]
    assert response.upcoming_events == ["Regatta at 18:00"]


def test_upcoming_events_only_list_events_starting_that_day(places):
    evening_before = datetime(2026, 10, 20, 22, 0)
    events = InMemoryEventStore([
        Event(place_id=1, name="Night Party", start=evening_before, end=evening_before + timedelta(hours=4)),
        Event(place_id=1, name="Regatta", start=datetime(2026, 10, 21, 18, 0), end=datetime(2026, 10, 21, 20, 0)),
        Event(place_id=1, name="Late Show", start=datetime(2026, 10, 22, 0, 0), end=datetime(2026, 10, 22, 2, 0)),
    ])
    service = make_service(places, events=events)

    response = asyncio.run(service.get_predictions(1, WEDNESDAY))
    rows = response.hourly_predictions

    assert response.upcoming_events == ["Regatta at 18:00"]
    assert [r.event_component for r in rows[0:3]] == [30, 30, 0]


def test_weather_component_from_three_hour_buckets():
    forecast = [WeatherSnapshot(score=s, temperature=20, weather_condition="clear") for s in (10, 20, 30)]

    assert weather_component(forecast, 0) == 10
    assert weather_component(forecast, 7) == 30
    assert weather_component(forecast, 9) == 50


def test_trend_curve():
    assert trend_component(8, 2) == 30
    assert trend_component(12, 2) == 60
    assert trend_component(20, 2) == 80
    assert trend_component(12, 6) == pytest.approx(78)
    assert trend_component(20, 5) == 100


def test_fresh_batch_is_served_without_regenerating(places):
    forecasts = InMemoryForecastStore()
    service = make_service(places, forecasts=forecasts)

    async def scenario():
        first = await service.get_predictions(1, WEDNESDAY)
        second = await service.get_predictions(1, WEDNESDAY)
        return first, second

    first, second = asyncio.run(scenario())

    assert forecasts.writes == 1
    assert first.generated_at == second.generated_at


def test_stale_batch_is_regenerated(places):
    forecasts = InMemoryForecastStore()
    service = make_service(places, forecasts=forecasts)

    asyncio.run(service.get_predictions(1, WEDNESDAY))
    batch = forecasts.batches[(1, WEDNESDAY)]
    batch.generated_at = utcnow() - timedelta(hours=2)
    asyncio.run(service.get_predictions(1, WEDNESDAY))

    assert forecasts.writes == 2
    assert forecasts.batches[(1, WEDNESDAY)].generated_at > utcnow() - timedelta(minutes=5)


def test_failed_regeneration_serves_previous_batch(places):
    forecasts = InMemoryForecastStore()
    service = make_service(places, forecasts=forecasts)

    asyncio.run(service.get_predictions(1, WEDNESDAY))
    stale_at = utcnow() - timedelta(hours=2)
    forecasts.batches[(1, WEDNESDAY)].generated_at = stale_at
    forecasts.fail_writes = True

    response = asyncio.run(service.get_predictions(1, WEDNESDAY))

    assert response.generated_at == stale_at
    assert len(response.hourly_predictions) == 24


def test_failed_generation_without_previous_batch_raises(places):
    service = make_service(places, forecasts=InMemoryForecastStore(fail_writes=True))

    with pytest.raises(StaleForecastRegenerationFailure):
        asyncio.run(service.get_predictions(1, WEDNESDAY))


def test_weather_outage_uses_neutral_component(places):
    service = make_service(places, weather=FakeWeatherClient(fail=True))

    response = asyncio.run(service.get_predictions(1, WEDNESDAY))

    assert all(r.weather_component == 50 for r in response.hourly_predictions)
    assert response.weather_forecast is None


def test_unknown_place_and_bad_date(places):
    service = make_service(places)

    with pytest.raises(NotFound):
        asyncio.run(service.get_predictions(999, WEDNESDAY))
    with pytest.raises(ValueError):
        asyncio.run(service.get_predictions(1, "not-a-date"))


def test_parse_target_date():
    assert parse_target_date("2026-10-21") == WEDNESDAY
    assert parse_target_date(WEDNESDAY) == WEDNESDAY
    assert parse_target_date(None) == utcnow().date()


def test_daily_batch_covers_all_active_places_and_continues_on_failure(places):
    forecasts = PartlyFailingForecastStore(failing_place_ids=[2])
    service = make_service(places, forecasts=forecasts)

    summary = asyncio.run(service.generate_daily_predictions())

    tomorrow = utcnow().date() + timedelta(days=1)
    assert summary.job == "forecast"
    assert summary.total == 5
    assert summary.failed_place_ids == [2]
    assert summary.succeeded == 4
    assert {key for key in forecasts.batches} == {(p, tomorrow) for p in (1, 3, 10, 11)}
