"""
Signal collectors
One collector per signal class, each independently replaceable and failing
"""

from crowd_intel.collectors.base import SignalCollector, SignalResult
from crowd_intel.collectors.events import EventCollector, EventSignal
from crowd_intel.collectors.popularity import LivePopularityCollector, PopularitySignal
from crowd_intel.collectors.sensors import SensorCollector, SensorSignal
from crowd_intel.collectors.social import SocialSignal, SocialTrendCollector
from crowd_intel.collectors.weather import WeatherCollector, WeatherSignal

__all__ = [
    "SignalCollector",
    "SignalResult",
    "EventCollector",
    "EventSignal",
    "LivePopularityCollector",
    "PopularitySignal",
    "SensorCollector",
    "SensorSignal",
    "SocialSignal",
    "SocialTrendCollector",
    "WeatherCollector",
    "WeatherSignal",
]
