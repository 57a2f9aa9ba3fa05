"""
Signal collector contract

Each collector turns one signal class into a 0-100 pressure score for a place.
`collect` never raises: a timeout or source failure is logged and replaced by
the collector's deterministic fallback.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel
from crowd_intel.config import settings
from crowd_intel.exceptions import SignalUnavailable
from crowd_intel.models.schemas import Place

logger = logging.getLogger(__name__)


class SignalResult(BaseModel):
    """Score from one collector; `score` is None when the signal is absent"""
    signal: str
    score: Optional[float] = None
    degraded: bool = False  # True when the fallback was used


class SignalCollector(ABC):
    """Base class for all signal collectors"""

    name = "signal"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.collector_timeout_seconds

    async def collect(self, place: Place) -> SignalResult:
        """Fetch the signal for a place, degrading to the fallback on timeout or failure"""
        try:
            return await asyncio.wait_for(self.fetch(place), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = SignalUnavailable(self.name, f"timed out after {self.timeout}s")
        except SignalUnavailable as e:
            error = e
        except Exception as e:
            error = SignalUnavailable(self.name, repr(e))

        logger.warning(f"{error} for place {place.place_id}, using fallback")
        return self.degraded(place)

    def degraded(self, place: Place) -> SignalResult:
        result = self.fallback(place)
        result.degraded = True
        return result

    @abstractmethod
    async def fetch(self, place: Place) -> SignalResult:
        """Query the source; may raise"""

    @abstractmethod
    def fallback(self, place: Place) -> SignalResult:
        """Deterministic neutral result used when the source fails"""
