"""
Crowd aggregation service
Serves the current crowd reading for a place, recomputing it from live signals
when the cached one is older than the freshness window
"""
import asyncio
import logging
from datetime import timedelta
from typing import Dict, List, Optional
from crowd_intel.collectors import (
    EventCollector,
    LivePopularityCollector,
    SensorCollector,
    SignalCollector,
    SignalResult,
    SocialTrendCollector,
    WeatherCollector,
)
from crowd_intel.clients.weather import default_weather_snapshot
from crowd_intel.config import settings
from crowd_intel.exceptions import NotFound
from crowd_intel.models.schemas import (
    BatchSummary,
    CrowdDataResponse,
    CrowdReading,
    Place,
    SignalScores,
)
from crowd_intel.services.crowd_index import calculate_crowd_index
from crowd_intel.stores.places import PlaceStore
from crowd_intel.stores.readings import ReadingStore
from crowd_intel.utils import utcnow

logger = logging.getLogger(__name__)

DAY_NAMES = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]


def default_collectors() -> List[SignalCollector]:
    return [
        LivePopularityCollector(),
        WeatherCollector(),
        EventCollector(),
        SensorCollector(),
        SocialTrendCollector(),
    ]


def signal_scores(results: Dict[str, SignalResult]) -> SignalScores:
    """Fold the collector results of one fan-out round into a typed score record"""
    values = {name: result.score for name, result in results.items()}
    popularity = results.get("live_popularity")
    values["historic_popularity"] = getattr(popularity, "historic_score", None)
    return SignalScores(**{name: values.get(name) for name in SignalScores.model_fields})


def to_response(place: Place, reading: CrowdReading) -> CrowdDataResponse:
    return CrowdDataResponse(
        place_name=place.name,
        category=place.category,
        latitude=place.latitude,
        longitude=place.longitude,
        **reading.model_dump()
    )


class CrowdAggregationService:
    """
    Fans out to every signal collector for a place, scores the result and
    stores it as an observed crowd reading.

    Concurrent requests for the same place share one in-flight computation.
    """

    def __init__(
        self,
        places: PlaceStore = None,
        readings: ReadingStore = None,
        collectors: List[SignalCollector] = None,
        deadline: Optional[float] = None
    ):
        self.places = places if places is not None else PlaceStore()
        self.readings = readings if readings is not None else ReadingStore()
        self.collectors = collectors if collectors is not None else default_collectors()
        self.deadline = deadline if deadline is not None else settings.fanout_deadline_seconds
        self.freshness = timedelta(minutes=settings.freshness_window_minutes)
        self._in_flight: Dict[int, asyncio.Task] = {}

    async def get_current_crowd_data(self, place_id: int) -> CrowdDataResponse:
        """
        Current crowd data for a place

        Args:
            place_id: Place identifier

        Returns:
            The cached reading when it is inside the freshness window, otherwise a new one

        Raises:
            NotFound: Unknown or inactive place
            PersistenceFailure: The new reading could not be stored
        """
        place = await self.places.get(place_id)
        if place is None or not place.is_active:
            raise NotFound(f"Place {place_id} not found")

        reading = await self.readings.latest_observed(place_id, utcnow() - self.freshness)
        if reading is not None:
            logger.debug(f"Serving cached reading for place {place_id} from {reading.timestamp}")
        else:
            reading = await self.aggregate(place)

        return to_response(place, reading)

    async def aggregate(self, place: Place) -> CrowdReading:
        """Compute and store a new reading, joining any computation already running for this place"""
        task = self._in_flight.get(place.place_id)
        if task is None:
            task = asyncio.ensure_future(self._compute(place))
            self._in_flight[place.place_id] = task
            task.add_done_callback(lambda t: self._release(place.place_id, t))
        else:
            logger.debug(f"Joining in-flight aggregation for place {place.place_id}")
        # A cancelled caller must not cancel the computation other callers wait on
        return await asyncio.shield(task)

    def _release(self, place_id: int, task: asyncio.Task):
        if self._in_flight.get(place_id) is task:
            del self._in_flight[place_id]

    async def _compute(self, place: Place) -> CrowdReading:
        results = await self._collect_signals(place)
        scores = signal_scores(results)
        result = calculate_crowd_index(scores)

        weather = results.get("weather")
        snapshot = getattr(weather, "snapshot", None) or default_weather_snapshot()
        events = getattr(results.get("event"), "events", [])
        degraded = sorted(name for name, r in results.items() if r.degraded)
        now = utcnow()

        reading = CrowdReading(
            place_id=place.place_id,
            crowd_index=result.crowd_index,
            crowd_level=result.crowd_level,
            signal_scores=scores,
            temperature=snapshot.temperature,
            weather_condition=snapshot.weather_condition,
            active_events=events,
            degraded_signals=degraded,
            timestamp=now,
            is_prediction=False,
            signal_coverage=round(1 - len(degraded) / len(results), 2) if results else None,
        )

        await self.readings.insert_reading(reading)
        await self.readings.insert_weather_snapshot(place.place_id, snapshot, now)
        await self.readings.insert_social_trends(self._social_trend_docs(place, results.get("social"), now))

        logger.info(
            f"Place {place.place_id} ({place.name}): crowd index {reading.crowd_index} "
            f"({reading.crowd_level}), degraded signals: {degraded or 'none'}"
        )
        return reading

    async def _collect_signals(self, place: Place) -> Dict[str, SignalResult]:
        """
        Run every collector concurrently under one overall deadline.

        Collectors still pending at the deadline are cancelled and replaced by
        their fallback, so the round always yields one result per collector.
        """
        tasks = {
            collector.name: asyncio.ensure_future(collector.collect(place))
            for collector in self.collectors
        }
        if not tasks:
            return {}

        done, pending = await asyncio.wait(tasks.values(), timeout=self.deadline)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results = {}
        for collector in self.collectors:
            task = tasks[collector.name]
            if task in done:
                results[collector.name] = task.result()
            else:
                logger.warning(
                    f"{collector.name} signal still pending after {self.deadline}s "
                    f"for place {place.place_id}, using fallback"
                )
                results[collector.name] = collector.degraded(place)
        return results

    def _social_trend_docs(self, place: Place, social: Optional[SignalResult], timestamp) -> List[dict]:
        docs = []
        for sample in getattr(social, "samples", []):
            doc = sample.model_dump()
            doc.update({
                "place_id": place.place_id,
                "hour_of_day": timestamp.hour,
                "day_of_week": DAY_NAMES[timestamp.weekday()],
                "timestamp": timestamp,
            })
            docs.append(doc)
        return docs

    async def refresh_all(self) -> BatchSummary:
        """
        Recompute readings for every active leaf place, ignoring the cache

        A failing place is logged and counted; the loop moves on to the next one.
        """
        started_at = utcnow()
        places = await self.places.list_places(active_only=True, leaf_only=True)
        logger.info(f"Refreshing crowd readings for {len(places)} places")

        failed_place_ids = []
        degraded_place_ids = []
        for place in places:
            try:
                reading = await self.aggregate(place)
            except Exception as e:
                logger.error(f"Failed to refresh place {place.place_id} ({place.name}): {e}", exc_info=True)
                failed_place_ids.append(place.place_id)
                continue
            if reading.degraded_signals and len(reading.degraded_signals) == len(self.collectors):
                degraded_place_ids.append(place.place_id)

        summary = BatchSummary(
            job="refresh",
            total=len(places),
            succeeded=len(places) - len(failed_place_ids),
            failed=len(failed_place_ids),
            failed_place_ids=failed_place_ids,
            degraded_place_ids=degraded_place_ids,
            started_at=started_at,
            finished_at=utcnow(),
        )
        logger.info(
            f"Refresh complete: {summary.succeeded}/{summary.total} succeeded, "
            f"{summary.failed} failed, {len(degraded_place_ids)} fully degraded"
        )
        return summary
