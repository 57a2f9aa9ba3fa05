"""
Custom exceptions for the crowd intelligence engine.
"""


class CrowdIntelligenceError(Exception):
    """Base exception for the crowd intelligence engine."""
    pass


class NotFound(CrowdIntelligenceError):
    """Raised when a place or sensor is unknown or inactive."""
    pass


class SignalUnavailable(CrowdIntelligenceError):
    """Raised inside a collector when its source cannot deliver a score."""

    def __init__(self, signal: str, reason: str = ""):
        self.signal = signal
        self.reason = reason
        super().__init__(f"{signal} signal unavailable: {reason}" if reason else f"{signal} signal unavailable")


class PersistenceFailure(CrowdIntelligenceError):
    """Raised when a reading, snapshot or forecast batch cannot be written."""
    pass


class StaleForecastRegenerationFailure(CrowdIntelligenceError):
    """Raised when a forecast batch could not be regenerated."""
    pass


class InvalidSensorReading(CrowdIntelligenceError):
    """Raised when a sensor registration or reading is rejected."""
    pass
