"""
Tracking components: fix filtering, the session state machine, polygon
validation and collision detection.
"""

from .collision import CollisionDetector
from .filter import LocationSampleFilter, WeightedAverageSmoother
from .scheduler import PeriodicTask
from .session import (
    ABORT_REASON_CANCELLED,
    ABORT_REASON_START_BLOCKED,
    ABORT_REASON_VIOLATION,
    TrackingSession,
)
from .validator import PolygonValidator

__all__ = [
    "ABORT_REASON_CANCELLED",
    "ABORT_REASON_START_BLOCKED",
    "ABORT_REASON_VIOLATION",
    "CollisionDetector",
    "LocationSampleFilter",
    "PeriodicTask",
    "PolygonValidator",
    "TrackingSession",
    "WeightedAverageSmoother",
]
