"""
Collision Detector - proximity classification against existing territories.

All checks are pure functions of (subject, territories, claimant). Geometry
is projected onto a local plane centred on the subject, so distances are in
meters. Owner ids compare case-insensitively.
"""

import logging
import math
from typing import Iterable, Sequence

import numpy as np

from ..config.schemas import ProximityConfig
from ..geometry import LocalProjection, contains_point, distance_to_ring, first_path_crossing, open_ring
from ..models import CollisionResult, CollisionType, GeoPoint, StartCheck, Territory, WarningLevel

logger = logging.getLogger(__name__)


class CollisionDetector:
    """
    Computes graduated risk for an in-progress path and hard decisions for
    start points and finished polygons.

    Usage:
        detector = CollisionDetector(config.proximity)
        start = detector.check_start(point, territories, owner_id)
        result = detector.check_path(path, territories, owner_id)
    """

    def __init__(self, config: ProximityConfig | None = None):
        self.config = config or ProximityConfig()

    # ------------------------------------------------------------------
    # Public checks
    # ------------------------------------------------------------------

    def check_start(
        self, point: GeoPoint, territories: Iterable[Territory], exclude_owner_id: str | None = None
    ) -> StartCheck:
        """
        Decide whether a claim may start at point.

        A point inside a checked territory, or within boundary_tolerance_m of
        its boundary, is BLOCKED.
        """
        proj = LocalProjection(point)
        origin = np.zeros(2)
        for territory in self._obstacles(territories, exclude_owner_id):
            ring = self._project_ring(proj, territory)
            if contains_point(ring, origin) or distance_to_ring(ring, origin) <= self.config.boundary_tolerance_m:
                message = f"Cannot start inside {self._describe(territory, exclude_owner_id)}"
                logger.info(f"Start blocked by territory {territory.id}")
                return StartCheck.blocked_by(territory.id, message)
        return StartCheck.clear()

    def check_path(
        self,
        path: Sequence[GeoPoint],
        territories: Iterable[Territory],
        exclude_owner_id: str | None = None,
    ) -> CollisionResult:
        """
        Classify an in-progress path.

        VIOLATION if the newest point is inside a checked territory or any
        path segment crosses or touches a boundary. Otherwise the level
        follows the distance from the newest point to the nearest boundary.
        """
        if not path:
            return CollisionResult.safe()
        obstacles = self._obstacles(territories, exclude_owner_id)
        if not obstacles:
            return CollisionResult.safe()

        proj = LocalProjection(path[-1])
        path_xy = proj.project(path)
        latest = path_xy[-1]

        nearest_distance = math.inf
        nearest: Territory | None = None
        for territory in obstacles:
            ring = self._project_ring(proj, territory)
            label = self._describe(territory, exclude_owner_id)

            if contains_point(ring, latest):
                return self._violation(
                    territory, CollisionType.POINT_IN_TERRITORY, f"You have entered {label}"
                )
            if first_path_crossing(path_xy, ring) is not None:
                return self._violation(
                    territory, CollisionType.PATH_CROSSES_TERRITORY, f"Your path crosses {label}"
                )

            distance = distance_to_ring(ring, latest)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = territory

        return self.classify_distance(nearest_distance, nearest, exclude_owner_id)

    def check_polygon(
        self,
        boundary: Sequence[GeoPoint],
        territories: Iterable[Territory],
        exclude_owner_id: str | None = None,
    ) -> CollisionResult:
        """
        Final check of a finished polygon before it is saved.

        VIOLATION if the ring crosses a checked boundary, encloses one of its
        vertices, or has a vertex inside it. Otherwise SAFE with the
        minimum ring-to-ring vertex distance.
        """
        vertices = open_ring(boundary)
        if len(vertices) < 3:
            return CollisionResult.safe()
        obstacles = self._obstacles(territories, exclude_owner_id)
        if not obstacles:
            return CollisionResult.safe()

        proj = LocalProjection.centred_on(vertices)
        candidate = proj.project(vertices)
        closed = np.vstack((candidate, candidate[:1]))

        nearest_distance = math.inf
        nearest: Territory | None = None
        for territory in obstacles:
            ring = self._project_ring(proj, territory)
            label = self._describe(territory, exclude_owner_id)

            if first_path_crossing(closed, ring) is not None:
                return self._violation(
                    territory, CollisionType.PATH_CROSSES_TERRITORY, f"Territory overlaps {label}"
                )
            if any(contains_point(candidate, vertex) for vertex in ring):
                return self._violation(
                    territory,
                    CollisionType.POLYGON_ENCLOSES_TERRITORY,
                    f"Territory would enclose {label}",
                )
            if any(contains_point(ring, vertex) for vertex in candidate):
                return self._violation(
                    territory, CollisionType.POINT_IN_TERRITORY, f"Territory lies inside {label}"
                )

            distance = min(distance_to_ring(ring, vertex) for vertex in candidate)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = territory

        return CollisionResult.safe(nearest_distance, nearest.id if nearest else None)

    def classify_distance(
        self,
        distance_m: float | None,
        territory: Territory | None = None,
        exclude_owner_id: str | None = None,
    ) -> CollisionResult:
        """Map a distance to a proximity level (boundaries are inclusive on the risky side)."""
        if distance_m is None or math.isinf(distance_m):
            return CollisionResult.safe()

        territory_id = territory.id if territory else None
        label = self._describe(territory, exclude_owner_id) if territory else "another territory"

        if distance_m > self.config.caution_m:
            return CollisionResult.safe(distance_m, territory_id)
        if distance_m > self.config.warning_m:
            level = WarningLevel.CAUTION
            message = f"Caution: {distance_m:.0f}m from {label}"
        elif distance_m > self.config.danger_m:
            level = WarningLevel.WARNING
            message = f"Warning: {distance_m:.0f}m from {label}"
        else:
            level = WarningLevel.DANGER
            message = f"Danger: only {distance_m:.0f}m from {label}, turn back"

        return CollisionResult(
            level=level, distance_m=distance_m, message=message, territory_id=territory_id
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _obstacles(self, territories: Iterable[Territory], exclude_owner_id: str | None) -> list[Territory]:
        """Territories that count as obstacles for this claimant."""
        obstacles = []
        for territory in territories:
            if not territory.is_polygon:
                logger.debug(f"Skipping territory {territory.id}: fewer than 3 points")
                continue
            if territory.is_owned_by(exclude_owner_id) and not self.config.include_own_territories:
                continue
            obstacles.append(territory)
        return obstacles

    @staticmethod
    def _project_ring(proj: LocalProjection, territory: Territory) -> np.ndarray:
        return proj.project(open_ring(territory.boundary))

    @staticmethod
    def _describe(territory: Territory, owner_id: str | None) -> str:
        if territory.is_owned_by(owner_id):
            return f"your own territory '{territory.display_name}'"
        return f"territory '{territory.display_name}'"

    @staticmethod
    def _violation(territory: Territory, collision_type: CollisionType, message: str) -> CollisionResult:
        logger.warning(f"Collision with territory {territory.id}: {collision_type.value}")
        return CollisionResult.violation(territory.id, collision_type, message)
