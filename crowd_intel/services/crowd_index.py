"""
Crowd Index calculation

Combines whatever signal scores are present into a single 0-100 index.

Weights without sensors:
    live popularity 55%, historic popularity 10%, social 20%, weather 10%, event 5%
Weights with a sensor reading (sensor ground truth dominates):
    sensor 50%, live popularity 30%, social 15%, weather 3%, event 2%

Weights are re-normalized over the signals actually present, so a missing
signal never drags the index down.
"""
import logging
from typing import Dict, List, Tuple
from pydantic import BaseModel, ConfigDict
from crowd_intel.models.schemas import CrowdLevel, SignalScores
from crowd_intel.utils import clamp, round_half_up

logger = logging.getLogger(__name__)

WEIGHTS_WITHOUT_SENSORS: Dict[str, float] = {
    "live_popularity": 0.55,
    "historic_popularity": 0.10,
    "social": 0.20,
    "weather": 0.10,
    "event": 0.05,
}

WEIGHTS_WITH_SENSORS: Dict[str, float] = {
    "sensor": 0.50,
    "live_popularity": 0.30,
    "social": 0.15,
    "weather": 0.03,
    "event": 0.02,
}

# (exclusive upper bound, level), checked in order; indices are clamped to 0-100
LEVEL_THRESHOLDS: List[Tuple[int, CrowdLevel]] = [
    (25, CrowdLevel.QUIET),
    (50, CrowdLevel.MODERATE),
    (75, CrowdLevel.BUSY),
    (101, CrowdLevel.VERY_BUSY),
]

LEVEL_COLORS: Dict[CrowdLevel, str] = {
    CrowdLevel.QUIET: "#00FF00",  # Green
    CrowdLevel.MODERATE: "#FFFF00",  # Yellow
    CrowdLevel.BUSY: "#FFA500",  # Orange
    CrowdLevel.VERY_BUSY: "#FF0000",  # Red
}


class CrowdIndexResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    crowd_index: int
    crowd_level: CrowdLevel
    breakdown: Dict[str, float]  # weighted contribution per present signal
    used_sensors: bool


def determine_crowd_level(crowd_index: float) -> CrowdLevel:
    """Map an index to its level using LEVEL_THRESHOLDS"""
    for upper_bound, level in LEVEL_THRESHOLDS:
        if crowd_index < upper_bound:
            return level
    return LEVEL_THRESHOLDS[-1][1]


def color_for_level(level) -> str:
    return LEVEL_COLORS[CrowdLevel(level)]


def calculate_crowd_index(scores: SignalScores) -> CrowdIndexResult:
    """
    Calculate the crowd index from the available signal scores

    Args:
        scores: Per-signal scores, any of which may be None

    Returns:
        Index (0-100 int), level and the weighted contribution of each signal
    """
    used_sensors = scores.sensor is not None
    weights = WEIGHTS_WITH_SENSORS if used_sensors else WEIGHTS_WITHOUT_SENSORS

    present = {
        name: float(getattr(scores, name))
        for name in weights
        if getattr(scores, name) is not None
    }
    total_weight = sum(weights[name] for name in present)

    breakdown = {}
    raw_index = 0.0
    if total_weight > 0:
        for name, value in present.items():
            contribution = clamp(value) * weights[name] / total_weight
            breakdown[name] = contribution
            raw_index += contribution

    crowd_index = round_half_up(clamp(raw_index))
    crowd_level = determine_crowd_level(crowd_index)

    logger.debug(f"Calculated crowd index {crowd_index} ({crowd_level.value}) from {sorted(present)}")

    return CrowdIndexResult(
        crowd_index=crowd_index,
        crowd_level=crowd_level,
        breakdown=breakdown,
        used_sensors=used_sensors,
    )
