"""
Consolidated data models for the territory engine.

This package contains all value types passed between components: geographic
points, persisted territories and the pure result types of each check.
"""

from .geo import CoordinateFrame, GeoPoint, RawFix
from .results import (
    CollisionResult,
    CollisionType,
    FilterDecision,
    InvalidReason,
    PathSnapshot,
    RejectReason,
    SessionStatus,
    StartCheck,
    ValidationResult,
    WarningLevel,
)
from .territory import Territory, boundary_to_wkt

__all__ = [
    # Geo
    "CoordinateFrame",
    "GeoPoint",
    "RawFix",
    # Territory
    "Territory",
    "boundary_to_wkt",
    # Results
    "CollisionResult",
    "CollisionType",
    "FilterDecision",
    "InvalidReason",
    "PathSnapshot",
    "RejectReason",
    "SessionStatus",
    "StartCheck",
    "ValidationResult",
    "WarningLevel",
]
