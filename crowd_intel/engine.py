"""
Wiring of stores, collectors and services into one engine instance
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from crowd_intel.collectors import (
    EventCollector,
    LivePopularityCollector,
    SensorCollector,
    SocialTrendCollector,
    WeatherCollector,
)
from crowd_intel.clients.weather import WeatherClient
from crowd_intel.database import get_database
from crowd_intel.orchestrator.scheduler import CrowdScheduler
from crowd_intel.services.aggregation import CrowdAggregationService
from crowd_intel.services.heatmap import HeatmapService
from crowd_intel.services.prediction import PredictionService
from crowd_intel.services.sensors import SensorService
from crowd_intel.stores.events import EventStore
from crowd_intel.stores.forecasts import ForecastStore
from crowd_intel.stores.places import PlaceStore
from crowd_intel.stores.readings import ReadingStore
from crowd_intel.stores.sensors import SensorStore

logger = logging.getLogger(__name__)


class CrowdEngine:
    """The services exposed to the API layer"""

    def __init__(
        self,
        aggregation: CrowdAggregationService,
        heatmap: HeatmapService,
        prediction: PredictionService,
        sensors: SensorService,
        scheduler: CrowdScheduler = None
    ):
        self.aggregation = aggregation
        self.heatmap = heatmap
        self.prediction = prediction
        self.sensors = sensors
        self.scheduler = scheduler


def build_engine(scheduler: AsyncIOScheduler, database=None) -> CrowdEngine:
    """Build every service on top of one database handle and one set of provider clients"""
    database = database if database is not None else get_database()

    places = PlaceStore(database)
    readings = ReadingStore(database)
    events = EventStore(database)
    sensor_store = SensorStore(database)
    weather_client = WeatherClient()

    aggregation = CrowdAggregationService(
        places=places,
        readings=readings,
        collectors=[
            LivePopularityCollector(),
            WeatherCollector(client=weather_client),
            EventCollector(store=events),
            SensorCollector(store=sensor_store),
            SocialTrendCollector(),
        ],
    )
    prediction = PredictionService(
        places=places,
        readings=readings,
        forecasts=ForecastStore(database),
        events=events,
        weather=weather_client,
    )

    engine = CrowdEngine(
        aggregation=aggregation,
        heatmap=HeatmapService(places=places, readings=readings),
        prediction=prediction,
        sensors=SensorService(store=sensor_store),
        scheduler=CrowdScheduler(scheduler, aggregation, prediction),
    )
    logger.info("Crowd engine built")
    return engine
