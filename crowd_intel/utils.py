"""
Small shared helpers
"""
import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp at millisecond precision, matching what MongoDB hands back"""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))
