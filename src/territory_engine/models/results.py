"""
Result models - pure outputs of the filter, validator and collision detector,
plus the session status and snapshot types.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum

from .geo import GeoPoint


class SessionStatus(str, Enum):
    """Tracking session lifecycle state."""

    IDLE = "idle"
    TRACKING = "tracking"
    CLOSED = "closed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class PathSnapshot:
    """
    Consistent, immutable view of a session at one instant.

    Attributes:
        session_id: Identifier of the session the snapshot came from
        status: Status at snapshot time
        points: Storage-frame path (unclosed)
        generation: Incremented on every start/reset; used to drop stale checks
        traversed_m: Sum of segment lengths along the path
        started_at: When tracking started, None while idle
    """

    session_id: str
    status: SessionStatus
    points: tuple[GeoPoint, ...]
    generation: int
    traversed_m: float = 0.0
    started_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.points)

    @property
    def last_point(self) -> GeoPoint | None:
        return self.points[-1] if self.points else None


# --- Location filter ------------------------------------------------------


class RejectReason(str, Enum):
    """Why the location filter dropped a fix."""

    INVALID_COORDINATE = "invalid_coordinate"
    LOW_ACCURACY = "low_accuracy"
    INVALID_TIMESTAMP = "invalid_timestamp"
    SPEED_EXCEEDED = "speed_exceeded"
    TOO_CLOSE = "too_close"


@dataclass(frozen=True)
class FilterDecision:
    """
    Outcome of evaluating one raw fix.

    Exactly one of point/reason is set. speed_warning is an advisory message
    and may be present on either outcome (ceiling breach on reject,
    "slow down" on accept).
    """

    point: GeoPoint | None = None
    reason: RejectReason | None = None
    message: str = ""
    speed_kmh: float | None = None
    speed_warning: str | None = None

    @property
    def accepted(self) -> bool:
        return self.point is not None

    @classmethod
    def accept(
        cls,
        point: GeoPoint,
        speed_kmh: float | None = None,
        speed_warning: str | None = None,
    ) -> "FilterDecision":
        return cls(point=point, speed_kmh=speed_kmh, speed_warning=speed_warning)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        message: str,
        speed_kmh: float | None = None,
        speed_warning: str | None = None,
    ) -> "FilterDecision":
        return cls(
            reason=reason,
            message=message,
            speed_kmh=speed_kmh,
            speed_warning=speed_warning,
        )


# --- Polygon validation ---------------------------------------------------


class InvalidReason(str, Enum):
    """Why a closed path is not a claimable polygon."""

    TOO_FEW_POINTS = "too_few_points"
    SELF_INTERSECTING = "self_intersecting"
    AREA_TOO_SMALL = "area_too_small"
    AREA_IMPLAUSIBLE = "area_implausible"


@dataclass(frozen=True)
class ValidationResult:
    """
    Verdict of the polygon validator.

    Attributes:
        valid: True if the polygon can be claimed
        area_m2: Unsigned area (always reported when computable)
        reason: Failure reason when invalid
        message: Human-readable explanation
        point_count: Distinct ring vertices
        perimeter_m: Ring perimeter including the closing edge
        winding: "ccw" or "cw" (None when degenerate)
    """

    valid: bool
    area_m2: float | None = None
    reason: InvalidReason | None = None
    message: str = ""
    point_count: int = 0
    perimeter_m: float = 0.0
    winding: str | None = None


# --- Collision detection --------------------------------------------------


class WarningLevel(IntEnum):
    """Proximity severity, ordered by ascending risk."""

    SAFE = 0
    CAUTION = 1
    WARNING = 2
    DANGER = 3
    VIOLATION = 4


class CollisionType(str, Enum):
    """Kind of hard violation."""

    POINT_IN_TERRITORY = "point_in_territory"
    PATH_CROSSES_TERRITORY = "path_crosses_territory"
    POLYGON_ENCLOSES_TERRITORY = "polygon_encloses_territory"


@dataclass(frozen=True)
class CollisionResult:
    """
    Output of a proximity/collision check. Recomputed every check, never persisted.

    Attributes:
        level: Severity classification
        distance_m: Minimum distance to a checked territory, None if none exist
        message: Text for the player (empty when SAFE)
        territory_id: Offending (violation) or closest territory
        collision_type: Set only for VIOLATION
    """

    level: WarningLevel
    distance_m: float | None = None
    message: str = ""
    territory_id: str | None = None
    collision_type: CollisionType | None = None

    @property
    def has_collision(self) -> bool:
        return self.level == WarningLevel.VIOLATION

    @classmethod
    def safe(cls, distance_m: float | None = None, territory_id: str | None = None) -> "CollisionResult":
        return cls(level=WarningLevel.SAFE, distance_m=distance_m, territory_id=territory_id)

    @classmethod
    def violation(
        cls, territory_id: str, collision_type: CollisionType, message: str
    ) -> "CollisionResult":
        return cls(
            level=WarningLevel.VIOLATION,
            distance_m=0.0,
            message=message,
            territory_id=territory_id,
            collision_type=collision_type,
        )


@dataclass(frozen=True)
class StartCheck:
    """Hard accept/reject decision for a claim's starting point."""

    blocked: bool
    territory_id: str | None = None
    message: str = ""

    @classmethod
    def clear(cls) -> "StartCheck":
        return cls(blocked=False)

    @classmethod
    def blocked_by(cls, territory_id: str, message: str) -> "StartCheck":
        return cls(blocked=True, territory_id=territory_id, message=message)
