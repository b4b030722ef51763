"""
Tracking Session - the claim state machine.

    IDLE --start--> TRACKING --append_point--> TRACKING
    TRACKING --closure--> CLOSED
    TRACKING --abort | cancel--> ABORTED
    CLOSED | ABORTED --reset--> IDLE

Status and path are guarded by one RLock. The path is an immutable tuple
replaced on every append, so a snapshot taken by another thread is always
consistent and never shorter than an earlier one of the same generation.
"""

import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from ..config.schemas import ClosureConfig
from ..exceptions import SessionActiveError, SessionStateError
from ..geometry import haversine_m
from ..models import CoordinateFrame, GeoPoint, PathSnapshot, SessionStatus
from ..utils.constants import DEFAULT_CHECK_INTERVAL_S
from ..utils.event_schema import (
    EVENT_TYPE_LOOP_CLOSED,
    EVENT_TYPE_POINT_APPENDED,
    EVENT_TYPE_SESSION_ABORTED,
    EVENT_TYPE_SESSION_RESET,
    EVENT_TYPE_SESSION_STARTED,
)
from ..utils.queue_protocol import EventSink, emit
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)

ABORT_REASON_VIOLATION = "violation"
ABORT_REASON_START_BLOCKED = "start_blocked"
ABORT_REASON_CANCELLED = "cancelled"


class TrackingSession:
    """
    Owns the ordered path of one claim attempt and detects loop closure.

    Only one session may be TRACKING per process. The session also owns the
    periodic proximity task: it starts on entering TRACKING and stops on
    every exit transition.

    Args:
        config: Loop closure thresholds
        events: Optional sink receiving session events
        on_tick: Callback for the periodic task, None disables it
        check_interval_s: Period of on_tick
        owner_id: Claimant, reported in SESSION_STARTED
    """

    _registry_lock = threading.Lock()
    _active: "TrackingSession | None" = None

    def __init__(
        self,
        config: ClosureConfig | None = None,
        events: EventSink | None = None,
        on_tick: Callable[[], None] | None = None,
        check_interval_s: float = DEFAULT_CHECK_INTERVAL_S,
        owner_id: str | None = None,
    ):
        self.config = config or ClosureConfig()
        self._events = events
        self._on_tick = on_tick
        self._check_interval_s = check_interval_s
        self.owner_id = owner_id

        self._lock = threading.RLock()
        self._status = SessionStatus.IDLE
        self._path: tuple[GeoPoint, ...] = ()
        self._traversed_m = 0.0
        self._generation = 0
        self._started_at: datetime | None = None
        self._task: PeriodicTask | None = None
        self.session_id = uuid.uuid4().hex

        self.abort_reason: str | None = None
        self.abort_territory_id: str | None = None
        self.abort_message = ""

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def path(self) -> tuple[GeoPoint, ...]:
        with self._lock:
            return self._path

    @property
    def traversed_m(self) -> float:
        with self._lock:
            return self._traversed_m

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def started_at(self) -> datetime | None:
        with self._lock:
            return self._started_at

    @property
    def closed_ring(self) -> tuple[GeoPoint, ...]:
        """Path plus its first point once CLOSED, empty otherwise."""
        with self._lock:
            if self._status != SessionStatus.CLOSED or not self._path:
                return ()
            return self._path + (self._path[0],)

    @property
    def periodic_task_running(self) -> bool:
        with self._lock:
            return self._task is not None and self._task.running

    def snapshot(self) -> PathSnapshot:
        with self._lock:
            return PathSnapshot(
                session_id=self.session_id,
                status=self._status,
                points=self._path,
                generation=self._generation,
                traversed_m=self._traversed_m,
                started_at=self._started_at,
            )

    def is_current(self, snapshot: PathSnapshot) -> bool:
        """True if snapshot belongs to this attempt and the session is still tracking."""
        with self._lock:
            return (
                snapshot.session_id == self.session_id
                and snapshot.generation == self._generation
                and self._status == SessionStatus.TRACKING
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, first_point: GeoPoint | None = None) -> None:
        """
        IDLE -> TRACKING.

        Raises:
            SessionStateError: If the session is not IDLE
            SessionActiveError: If another session is already tracking
        """
        with self._lock:
            if self._status != SessionStatus.IDLE:
                raise SessionStateError(
                    f"Cannot start tracking from {self._status.value}", status=self._status
                )
            if first_point is not None:
                self._require_storage(first_point)

            cls = type(self)
            with cls._registry_lock:
                active = cls._active
                # Every exit from TRACKING clears the registry
                if active is not None and active is not self:
                    raise SessionActiveError(
                        f"Session {active.session_id[:8]} is already tracking",
                        status=SessionStatus.TRACKING,
                    )
                cls._active = self

            self._status = SessionStatus.TRACKING
            self._path = (first_point,) if first_point is not None else ()
            self._traversed_m = 0.0
            self._generation += 1
            self._started_at = datetime.now(timezone.utc)
            self.abort_reason = None
            self.abort_territory_id = None
            self.abort_message = ""

            if self._on_tick is not None:
                self._task = PeriodicTask(
                    self._on_tick, self._check_interval_s, name=f"ProximityCheck-{self.session_id[:8]}"
                )
                self._task.start()

            event = self._event(EVENT_TYPE_SESSION_STARTED, owner_id=self.owner_id)

        logger.info(f"Session {self.session_id[:8]} started tracking")
        emit(self._events, event)

    def append_point(self, point: GeoPoint) -> bool:
        """
        Append an accepted point and evaluate loop closure.

        Returns:
            False (and leaves the path untouched) when not TRACKING
        """
        self._require_storage(point)
        events: list[dict[str, Any]] = []
        task = None

        with self._lock:
            if self._status != SessionStatus.TRACKING:
                logger.debug(f"Ignoring point while {self._status.value}")
                return False

            if self._path:
                self._traversed_m += haversine_m(self._path[-1], point)
            self._path = self._path + (point,)

            events.append(
                self._event(
                    EVENT_TYPE_POINT_APPENDED,
                    latitude=point.latitude,
                    longitude=point.longitude,
                    point_count=len(self._path),
                    traversed_m=self._traversed_m,
                )
            )

            gap = self._closing_gap()
            if gap is not None:
                self._status = SessionStatus.CLOSED
                task = self._detach_task()
                self._release_active()
                events.append(
                    self._event(
                        EVENT_TYPE_LOOP_CLOSED,
                        point_count=len(self._path),
                        closing_gap_m=gap,
                        traversed_m=self._traversed_m,
                    )
                )
                logger.info(
                    f"Session {self.session_id[:8]} closed loop: {len(self._path)} points, "
                    f"{self._traversed_m:.0f}m walked, gap {gap:.1f}m"
                )

        if task is not None:
            task.stop()
        for event in events:
            emit(self._events, event)
        return True

    def abort(self, reason: str, territory_id: str | None = None, message: str = "") -> None:
        """
        TRACKING -> ABORTED. The path stays inspectable until reset.

        Raises:
            SessionStateError: If the session is not TRACKING
        """
        with self._lock:
            if self._status != SessionStatus.TRACKING:
                raise SessionStateError(
                    f"Cannot abort from {self._status.value}", status=self._status
                )
            self._status = SessionStatus.ABORTED
            self.abort_reason = reason
            self.abort_territory_id = territory_id
            self.abort_message = message
            task = self._detach_task()
            self._release_active()
            event = self._event(
                EVENT_TYPE_SESSION_ABORTED,
                reason=reason,
                territory_id=territory_id,
                message=message,
            )

        if task is not None:
            task.stop()
        logger.warning(f"Session {self.session_id[:8]} aborted ({reason}) {message}".rstrip())
        emit(self._events, event)

    def cancel(self) -> None:
        """User cancel: TRACKING -> ABORTED."""
        self.abort(ABORT_REASON_CANCELLED, message="Tracking stopped by user")

    def reset(self) -> None:
        """
        CLOSED | ABORTED -> IDLE. Clears the path. Resetting an IDLE session is a no-op.

        Raises:
            SessionStateError: If the session is TRACKING
        """
        with self._lock:
            if self._status == SessionStatus.IDLE:
                return
            if self._status == SessionStatus.TRACKING:
                raise SessionStateError("Cannot reset while tracking", status=self._status)

            previous_id = self.session_id
            self._status = SessionStatus.IDLE
            self._path = ()
            self._traversed_m = 0.0
            self._started_at = None
            self._generation += 1
            self.abort_reason = None
            self.abort_territory_id = None
            self.abort_message = ""
            event = self._event(EVENT_TYPE_SESSION_RESET)
            self.session_id = uuid.uuid4().hex

        logger.debug(f"Session {previous_id[:8]} reset")
        emit(self._events, event)

    def discard(self) -> None:
        """Abort if tracking, then reset. Always leaves the session IDLE."""
        if self.status == SessionStatus.TRACKING:
            try:
                self.cancel()
            except SessionStateError:
                logger.debug("Session left TRACKING before discard could cancel it")
        self.reset()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _closing_gap(self) -> float | None:
        """Distance from the newest to the first point if the loop closes, else None."""
        if len(self._path) < self.config.min_points:
            return None
        if self._traversed_m < self.config.min_traversed_m:
            return None
        gap = haversine_m(self._path[-1], self._path[0])
        if gap <= self.config.closure_radius_m:
            return gap
        return None

    def _detach_task(self) -> PeriodicTask | None:
        # Stopped outside the lock: the tick thread may be waiting on it
        task, self._task = self._task, None
        return task

    def _release_active(self) -> None:
        cls = type(self)
        with cls._registry_lock:
            if cls._active is self:
                cls._active = None

    def _event(self, event_type: str, **fields) -> dict[str, Any]:
        return {
            "event_type": event_type,
            "session_id": self.session_id,
            "timestamp": time.time(),
            **fields,
        }

    @staticmethod
    def _require_storage(point: GeoPoint) -> None:
        if point.frame != CoordinateFrame.STORAGE:
            raise ValueError("Session paths hold storage-frame points only")

    def __repr__(self) -> str:
        return (
            f"TrackingSession(id={self.session_id[:8]}, status={self.status.value}, "
            f"points={len(self.path)})"
        )
