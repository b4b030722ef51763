"""
Territory Engine

Geometry engine for a location-based territory-claiming game: a player walks
a closed loop, and the enclosed area becomes their territory if it is a
plausible polygon that does not touch anyone else's land.

Package structure:
  geometry/    - Frame conversion (WGS-84 / GCJ-02), projection, polygon math
  tracking/    - Fix filter, session state machine, validator, collision detector
  repository/  - Territory stores (memory, JSON file, REST)
  config/      - Configuration loading and validation
  models/      - Value types and check results
  utils/       - Constants, event schema, event sink protocol
"""

__version__ = "1.0.0"

from .config import EngineConfig, load_config, validate_config_full
from .controller import ClaimController
from .exceptions import (
    ClaimRejectedError,
    ConfigValidationError,
    RepositoryError,
    SessionActiveError,
    SessionStateError,
    TerritoryEngineError,
)
from .geometry import CoordinateConverter, to_display_frame, to_storage_frame
from .models import (
    CollisionResult,
    CoordinateFrame,
    GeoPoint,
    RawFix,
    SessionStatus,
    StartCheck,
    Territory,
    ValidationResult,
    WarningLevel,
)
from .tracking import CollisionDetector, LocationSampleFilter, PolygonValidator, TrackingSession

__all__ = [
    # Controller
    "ClaimController",
    # Config
    "EngineConfig",
    "load_config",
    "validate_config_full",
    # Errors
    "ClaimRejectedError",
    "ConfigValidationError",
    "RepositoryError",
    "SessionActiveError",
    "SessionStateError",
    "TerritoryEngineError",
    # Geometry
    "CoordinateConverter",
    "to_display_frame",
    "to_storage_frame",
    # Models
    "CollisionResult",
    "CoordinateFrame",
    "GeoPoint",
    "RawFix",
    "SessionStatus",
    "StartCheck",
    "Territory",
    "ValidationResult",
    "WarningLevel",
    # Components
    "CollisionDetector",
    "LocationSampleFilter",
    "PolygonValidator",
    "TrackingSession",
]
