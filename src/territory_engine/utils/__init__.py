"""
Utility modules for constants, the event schema and the event sink protocol.
"""

from .constants import (
    DEFAULT_CHECK_INTERVAL_S,
    EARTH_RADIUS_M,
    ENV_LOG_LEVEL,
    ENV_REPOSITORY_KEY,
    ENV_REPOSITORY_URL,
)
from .event_schema import (
    EVENT_TYPE_COLLISION_LEVEL_CHANGED,
    EVENT_TYPE_FIX_REJECTED,
    EVENT_TYPE_LOOP_CLOSED,
    EVENT_TYPE_POINT_APPENDED,
    EVENT_TYPE_SAVE_FAILED,
    EVENT_TYPE_SESSION_ABORTED,
    EVENT_TYPE_SESSION_RESET,
    EVENT_TYPE_SESSION_STARTED,
    EVENT_TYPE_SPEED_WARNING,
    EVENT_TYPE_TERRITORY_SAVED,
    EVENT_TYPE_VALIDATION_COMPLETED,
    get_event_summary,
    is_valid_event,
)
from .queue_protocol import CallbackQueueAdapter, EventSink, emit

__all__ = [
    "DEFAULT_CHECK_INTERVAL_S",
    "EARTH_RADIUS_M",
    "ENV_LOG_LEVEL",
    "ENV_REPOSITORY_KEY",
    "ENV_REPOSITORY_URL",
    # Event schema
    "EVENT_TYPE_COLLISION_LEVEL_CHANGED",
    "EVENT_TYPE_FIX_REJECTED",
    "EVENT_TYPE_LOOP_CLOSED",
    "EVENT_TYPE_POINT_APPENDED",
    "EVENT_TYPE_SAVE_FAILED",
    "EVENT_TYPE_SESSION_ABORTED",
    "EVENT_TYPE_SESSION_RESET",
    "EVENT_TYPE_SESSION_STARTED",
    "EVENT_TYPE_SPEED_WARNING",
    "EVENT_TYPE_TERRITORY_SAVED",
    "EVENT_TYPE_VALIDATION_COMPLETED",
    "get_event_summary",
    "is_valid_event",
    # Event sink
    "CallbackQueueAdapter",
    "EventSink",
    "emit",
]
