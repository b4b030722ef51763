"""
Claim Controller - the UI-facing API of the engine.

Wires the filter, session, validator and collision detector together and
owns the frame boundary: geometry handed to the UI is in the display frame,
geometry handed to the repository is in the storage frame.

Usage:
    controller = ClaimController(config, repository, owner_id="u-1", events=queue)
    check = controller.start_tracking(start_point)
    for fix in provider:
        controller.ingest_fix(fix)
    if controller.current_status() is SessionStatus.CLOSED:
        territory = controller.confirm_claim()
"""

import logging
import threading
import time
from typing import Any

from .config.schemas import EngineConfig
from .exceptions import ClaimRejectedError, RepositoryError, SessionStateError
from .geometry import CoordinateConverter, haversine_m
from .models import (
    CollisionResult,
    FilterDecision,
    GeoPoint,
    RawFix,
    SessionStatus,
    StartCheck,
    Territory,
    ValidationResult,
    WarningLevel,
)
from .repository import TerritoryRepository
from .tracking import (
    ABORT_REASON_START_BLOCKED,
    ABORT_REASON_VIOLATION,
    CollisionDetector,
    LocationSampleFilter,
    PolygonValidator,
    TrackingSession,
    WeightedAverageSmoother,
)
from .utils.event_schema import (
    EVENT_TYPE_COLLISION_LEVEL_CHANGED,
    EVENT_TYPE_FIX_REJECTED,
    EVENT_TYPE_SAVE_FAILED,
    EVENT_TYPE_SPEED_WARNING,
    EVENT_TYPE_TERRITORY_SAVED,
    EVENT_TYPE_VALIDATION_COMPLETED,
)
from .utils.queue_protocol import EventSink, emit

logger = logging.getLogger(__name__)


class ClaimController:
    """
    Runs one player's claim attempts.

    Args:
        config: Validated engine configuration
        repository: Territory store
        owner_id: Claimant user id
        events: Optional sink receiving every engine event
        converter: Frame converter (default follows config.coordinates)
        periodic_checks: Run the proximity check on a timer while tracking.
            Disable when the host drives run_collision_check itself.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        repository: TerritoryRepository | None = None,
        owner_id: str = "",
        events: EventSink | None = None,
        converter: CoordinateConverter | None = None,
        periodic_checks: bool = True,
    ):
        if repository is None:
            from .repository.memory import InMemoryTerritoryRepository

            repository = InMemoryTerritoryRepository()

        self.config = config or EngineConfig()
        self.repository = repository
        self.owner_id = owner_id
        self._events = events
        self.converter = converter or CoordinateConverter(enabled=self.config.coordinates.display_offset)

        self.filter = LocationSampleFilter(self.config.filter)
        self.validator = PolygonValidator(self.config.validation)
        self.detector = CollisionDetector(self.config.proximity)
        self.session = TrackingSession(
            self.config.closure,
            events=events,
            on_tick=self.run_collision_check if periodic_checks else None,
            check_interval_s=self.config.proximity.check_interval_s,
            owner_id=owner_id,
        )

        self._smoother = (
            WeightedAverageSmoother(self.config.filter.smoothing_window)
            if self.config.filter.smoothing_window > 1
            else None
        )

        # Ingestion is the single writer; this lock serializes concurrent fix delivery
        self._ingest_lock = threading.Lock()
        self._result_lock = threading.Lock()
        self._territories: list[Territory] = []
        self._previous_fix: RawFix | None = None
        self._last_speed_warning_at: float | None = None
        self._last_collision: CollisionResult | None = None
        self._last_validation: ValidationResult | None = None

    # ------------------------------------------------------------------
    # Territories
    # ------------------------------------------------------------------

    def refresh_territories(self) -> list[Territory]:
        """
        Reload territories from the repository.

        Raises:
            RepositoryError: If the store cannot be read (previous set is kept)
        """
        territories = self.repository.load_all()
        with self._result_lock:
            self._territories = list(territories)
        logger.debug(f"Refreshed {len(territories)} territories")
        return list(territories)

    @property
    def territories(self) -> list[Territory]:
        with self._result_lock:
            return list(self._territories)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self, start_point: GeoPoint) -> StartCheck:
        """
        Begin a claim at start_point (either frame).

        The session enters TRACKING and is immediately aborted if the start
        point lies in a foreign territory.

        Returns:
            StartCheck; blocked results leave the session ABORTED

        Raises:
            RepositoryError: If territories cannot be loaded (session stays IDLE)
            SessionStateError: If the session is not IDLE
            SessionActiveError: If another session is tracking in this process
        """
        start = self.converter.to_storage(start_point)
        self.refresh_territories()

        with self._ingest_lock:
            self._previous_fix = None
            self._last_speed_warning_at = None
            if self._smoother is not None:
                self._smoother.reset()
        with self._result_lock:
            self._last_collision = None
            self._last_validation = None

        self.session.start()

        check = self.detector.check_start(start, self.territories, self.owner_id)
        if check.blocked:
            self.session.abort(ABORT_REASON_START_BLOCKED, check.territory_id, check.message)
        return check

    def stop_tracking(self) -> None:
        """User cancel. The path stays inspectable until discard()."""
        self.session.cancel()

    def discard(self) -> None:
        """Drop the current attempt and return to IDLE."""
        self.session.discard()
        with self._result_lock:
            self._last_collision = None
            self._last_validation = None

    # ------------------------------------------------------------------
    # Fix ingestion (single writer)
    # ------------------------------------------------------------------

    def ingest_fix(self, fix: RawFix) -> FilterDecision:
        """
        Filter a raw fix and append it to the path if accepted.

        Fixes arriving when the session is not TRACKING are evaluated but
        never appended.
        """
        with self._ingest_lock:
            decision = self.filter.evaluate(fix, self._previous_fix)
            self._report_speed(decision, fix.timestamp)

            if not decision.accepted:
                emit(
                    self._events,
                    self._event(
                        EVENT_TYPE_FIX_REJECTED,
                        reason=decision.reason.value,
                        message=decision.message,
                    ),
                )
                logger.debug(f"Fix rejected: {decision.message}")
                return decision

            point = decision.point
            if self._smoother is not None:
                point = self._smoother.smooth(point, fix.accuracy_m)

            if not self.session.append_point(point):
                return decision
            self._previous_fix = fix

        if self.session.status == SessionStatus.CLOSED:
            self._validate_closed_path()
        return decision

    def _report_speed(self, decision: FilterDecision, timestamp: float) -> None:
        """Emit speed warnings, rate limited by the configured cooldown."""
        if decision.speed_warning is None:
            return
        cooldown = self.config.filter.speed_warning_cooldown_s
        if self._last_speed_warning_at is not None and timestamp - self._last_speed_warning_at < cooldown:
            return
        self._last_speed_warning_at = timestamp
        logger.info(decision.speed_warning)
        emit(
            self._events,
            self._event(
                EVENT_TYPE_SPEED_WARNING,
                speed_kmh=decision.speed_kmh,
                message=decision.speed_warning,
                rejected=not decision.accepted,
            ),
        )

    def _validate_closed_path(self) -> ValidationResult:
        snapshot = self.session.snapshot()
        points = snapshot.points
        walked = snapshot.traversed_m
        if len(points) > 1:
            walked += haversine_m(points[-1], points[0])

        result = self.validator.validate(points, traversed_length_m=walked)
        with self._result_lock:
            self._last_validation = result

        emit(
            self._events,
            self._event(
                EVENT_TYPE_VALIDATION_COMPLETED,
                valid=result.valid,
                area_m2=result.area_m2,
                reason=result.reason.value if result.reason else None,
            ),
        )
        return result

    # ------------------------------------------------------------------
    # Collision checks
    # ------------------------------------------------------------------

    def run_collision_check(self) -> CollisionResult | None:
        """
        Classify the current path against loaded territories.

        Called by the session's periodic task, or directly by the host.

        Returns:
            The result, or None when the session is not tracking or the path
            changed generation while the check ran (stale result discarded)
        """
        snapshot = self.session.snapshot()
        if snapshot.status != SessionStatus.TRACKING or not snapshot.points:
            return None

        result = self.detector.check_path(snapshot.points, self.territories, self.owner_id)

        with self._result_lock:
            # Checked under the lock so a stop cannot land between check and store
            if not self.session.is_current(snapshot):
                logger.debug("Discarding collision result for a stale snapshot")
                return None
            previous = self._last_collision
            self._last_collision = result

        if previous is None or previous.level != result.level:
            emit(
                self._events,
                self._event(
                    EVENT_TYPE_COLLISION_LEVEL_CHANGED,
                    level=result.level.name,
                    previous_level=previous.level.name if previous else None,
                    distance_m=result.distance_m,
                    territory_id=result.territory_id,
                    message=result.message,
                ),
            )

        if result.level == WarningLevel.VIOLATION:
            try:
                self.session.abort(ABORT_REASON_VIOLATION, result.territory_id, result.message)
            except SessionStateError:
                logger.debug("Session left TRACKING before the violation abort")
        return result

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm_claim(self) -> Territory:
        """
        Persist a CLOSED, valid, collision-free claim and reset to IDLE.

        Raises:
            SessionStateError: If the session is not CLOSED
            ClaimRejectedError: If validation or the final collision check failed
            RepositoryError: If the save failed; the path is kept for a retry
        """
        snapshot = self.session.snapshot()
        if snapshot.status != SessionStatus.CLOSED:
            raise SessionStateError(
                f"Only closed sessions can be confirmed (status {snapshot.status.value})",
                status=snapshot.status,
            )

        validation = self.last_validation() or self._validate_closed_path()
        if not validation.valid:
            raise ClaimRejectedError(f"Territory is invalid: {validation.message}")

        collision = self.detector.check_polygon(snapshot.points, self.territories, self.owner_id)
        if collision.has_collision:
            raise ClaimRejectedError(collision.message, territory_id=collision.territory_id)

        try:
            territory = self.repository.save(
                snapshot.points, validation.area_m2, self.owner_id, snapshot.started_at
            )
        except RepositoryError as e:
            logger.error(f"Saving territory failed: {e}")
            emit(self._events, self._event(EVENT_TYPE_SAVE_FAILED, message=str(e)))
            raise

        emit(
            self._events,
            self._event(EVENT_TYPE_TERRITORY_SAVED, territory_id=territory.id, area_m2=territory.area_m2),
        )
        logger.info(f"Territory {territory.id} claimed ({territory.formatted_area})")

        with self._result_lock:
            self._territories.append(territory)
        self.discard()
        return territory

    # ------------------------------------------------------------------
    # Read side for the UI
    # ------------------------------------------------------------------

    def current_path(self) -> list[GeoPoint]:
        """Path in the display frame; a closed ring repeats its first point."""
        points = self.session.closed_ring or self.session.path
        return [self.converter.to_display(p) for p in points]

    def current_status(self) -> SessionStatus:
        return self.session.status

    def last_collision_result(self) -> CollisionResult | None:
        with self._result_lock:
            return self._last_collision

    def last_validation(self) -> ValidationResult | None:
        with self._result_lock:
            return self._last_validation

    def _event(self, event_type: str, **fields) -> dict[str, Any]:
        return {
            "event_type": event_type,
            "session_id": self.session.session_id,
            "timestamp": time.time(),
            **fields,
        }
