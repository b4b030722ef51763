"""
Event Schema - Contract between the engine and its host (UI, logger, tests).

Every state transition and check result is emitted as a plain dict with an
``event_type`` key onto the injected event sink. Hosts dispatch on
``event_type``; all other keys are event specific.

Event Types:
    SESSION_STARTED: A claim session entered TRACKING
    POINT_APPENDED: An accepted fix was appended to the path
    FIX_REJECTED: The location filter rejected a fix
    SPEED_WARNING: Movement speed is above the advisory threshold
    LOOP_CLOSED: The path returned to its start, session is CLOSED
    SESSION_ABORTED: Violation, blocked start or user cancel
    SESSION_RESET: Session returned to IDLE
    COLLISION_LEVEL_CHANGED: Proximity classification changed level
    VALIDATION_COMPLETED: Polygon validation ran on a closed path
    TERRITORY_SAVED: Repository accepted the claim
    SAVE_FAILED: Repository write failed (retryable)
"""

from typing import Literal, TypedDict

# Event type constants
EVENT_TYPE_SESSION_STARTED = "SESSION_STARTED"
EVENT_TYPE_POINT_APPENDED = "POINT_APPENDED"
EVENT_TYPE_FIX_REJECTED = "FIX_REJECTED"
EVENT_TYPE_SPEED_WARNING = "SPEED_WARNING"
EVENT_TYPE_LOOP_CLOSED = "LOOP_CLOSED"
EVENT_TYPE_SESSION_ABORTED = "SESSION_ABORTED"
EVENT_TYPE_SESSION_RESET = "SESSION_RESET"
EVENT_TYPE_COLLISION_LEVEL_CHANGED = "COLLISION_LEVEL_CHANGED"
EVENT_TYPE_VALIDATION_COMPLETED = "VALIDATION_COMPLETED"
EVENT_TYPE_TERRITORY_SAVED = "TERRITORY_SAVED"
EVENT_TYPE_SAVE_FAILED = "SAVE_FAILED"

EventType = Literal[
    "SESSION_STARTED",
    "POINT_APPENDED",
    "FIX_REJECTED",
    "SPEED_WARNING",
    "LOOP_CLOSED",
    "SESSION_ABORTED",
    "SESSION_RESET",
    "COLLISION_LEVEL_CHANGED",
    "VALIDATION_COMPLETED",
    "TERRITORY_SAVED",
    "SAVE_FAILED",
]


class BaseEvent(TypedDict, total=False):
    """
    Common fields present in all events.

    Required fields:
        event_type: Type of event
        session_id: Identifier of the emitting session
        timestamp: Epoch seconds when the event was emitted
    """

    event_type: EventType
    session_id: str
    timestamp: float


class SessionStartedEvent(BaseEvent):
    """SESSION_STARTED - owner_id of the claimant."""

    owner_id: str


class PointAppendedEvent(BaseEvent):
    """POINT_APPENDED - storage-frame point plus running totals."""

    latitude: float
    longitude: float
    point_count: int
    traversed_m: float


class FixRejectedEvent(BaseEvent):
    """FIX_REJECTED - reason is a RejectReason value."""

    reason: str
    message: str


class SpeedWarningEvent(BaseEvent):
    """SPEED_WARNING - advisory or ceiling breach (rejected=True)."""

    speed_kmh: float
    message: str
    rejected: bool


class LoopClosedEvent(BaseEvent):
    """LOOP_CLOSED - gap between last and first point in meters."""

    point_count: int
    closing_gap_m: float
    traversed_m: float


class SessionAbortedEvent(BaseEvent):
    """SESSION_ABORTED - reason and offending territory, if any."""

    reason: str
    territory_id: str | None
    message: str


class CollisionLevelChangedEvent(BaseEvent):
    """COLLISION_LEVEL_CHANGED - new and previous WarningLevel names."""

    level: str
    previous_level: str | None
    distance_m: float | None
    territory_id: str | None
    message: str


class ValidationCompletedEvent(BaseEvent):
    """VALIDATION_COMPLETED - polygon verdict."""

    valid: bool
    area_m2: float | None
    reason: str | None


class TerritorySavedEvent(BaseEvent):
    """TERRITORY_SAVED - repository id of the new territory."""

    territory_id: str
    area_m2: float


class SaveFailedEvent(BaseEvent):
    """SAVE_FAILED - repository error text."""

    message: str


Event = (
    SessionStartedEvent
    | PointAppendedEvent
    | FixRejectedEvent
    | SpeedWarningEvent
    | LoopClosedEvent
    | SessionAbortedEvent
    | CollisionLevelChangedEvent
    | ValidationCompletedEvent
    | TerritorySavedEvent
    | SaveFailedEvent
)


def is_valid_event(event: dict) -> bool:
    """
    Validate that an event has the required base fields.

    Args:
        event: Event dictionary to validate

    Returns:
        True if event has required base fields
    """
    required = {"event_type", "session_id", "timestamp"}
    return required.issubset(event.keys())


def get_event_summary(event: dict) -> str:
    """
    Get a human-readable summary of an event.

    Args:
        event: Event dictionary

    Returns:
        Summary string for logging
    """
    event_type = event.get("event_type", "UNKNOWN")
    session_id = str(event.get("session_id", "?"))[:8]

    if event_type == EVENT_TYPE_POINT_APPENDED:
        count = event.get("point_count", 0)
        traversed = event.get("traversed_m", 0.0)
        return f"POINT_APPENDED session={session_id} points={count} traversed={traversed:.0f}m"

    elif event_type == EVENT_TYPE_FIX_REJECTED:
        return f"FIX_REJECTED session={session_id} reason={event.get('reason', '?')}"

    elif event_type == EVENT_TYPE_LOOP_CLOSED:
        gap = event.get("closing_gap_m", 0.0)
        return f"LOOP_CLOSED session={session_id} points={event.get('point_count', 0)} gap={gap:.1f}m"

    elif event_type == EVENT_TYPE_SESSION_ABORTED:
        territory = event.get("territory_id") or "-"
        return f"SESSION_ABORTED session={session_id} reason={event.get('reason', '?')} territory={territory}"

    elif event_type == EVENT_TYPE_COLLISION_LEVEL_CHANGED:
        distance = event.get("distance_m")
        dist_text = f"{distance:.0f}m" if distance is not None else "n/a"
        return (
            f"COLLISION_LEVEL_CHANGED session={session_id} "
            f"{event.get('previous_level')} -> {event.get('level')} distance={dist_text}"
        )

    elif event_type == EVENT_TYPE_VALIDATION_COMPLETED:
        if event.get("valid"):
            return f"VALIDATION_COMPLETED session={session_id} area={event.get('area_m2', 0):.0f}m2"
        return f"VALIDATION_COMPLETED session={session_id} invalid={event.get('reason')}"

    elif event_type == EVENT_TYPE_TERRITORY_SAVED:
        return f"TERRITORY_SAVED session={session_id} territory={event.get('territory_id')}"

    else:
        return f"{event_type} session={session_id}"
