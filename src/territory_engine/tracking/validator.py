"""
Polygon Validator - decides whether a closed path is a claimable parcel.
"""

import logging
import math
from typing import Sequence

from ..config.schemas import ValidationConfig
from ..geometry import LocalProjection, find_spike, is_simple, open_ring, perimeter, signed_area
from ..models import GeoPoint, InvalidReason, ValidationResult

logger = logging.getLogger(__name__)


class PolygonValidator:
    """
    Computes area, perimeter and winding of a candidate ring and classifies it.

    Checks, in order: distinct point count, self-intersection, minimum area,
    maximum/plausible area. A ring is implausible when it is too large, when
    the walk could not have enclosed it, or when a single outlier vertex
    sticks out of it.
    """

    def __init__(self, config: ValidationConfig | None = None):
        self.config = config or ValidationConfig()

    def validate(
        self, path: Sequence[GeoPoint], traversed_length_m: float | None = None
    ) -> ValidationResult:
        """
        Validate a storage-frame path as a polygon.

        Args:
            path: Ring vertices; a trailing copy of the first point is ignored
            traversed_length_m: Length actually walked. When given, the area
                may not exceed what a loop of that length can enclose.

        Returns:
            ValidationResult (area is reported even for most invalid results)
        """
        ring = open_ring(path)
        distinct = len({(p.latitude, p.longitude) for p in ring})
        if distinct < 3:
            return ValidationResult(
                valid=False,
                reason=InvalidReason.TOO_FEW_POINTS,
                message=f"Need at least 3 distinct points, got {distinct}",
                point_count=distinct,
            )

        xy = LocalProjection.centred_on(ring).project(ring)
        signed = signed_area(xy)
        area = abs(signed)
        length = perimeter(xy)
        winding = "ccw" if signed > 0 else "cw" if signed < 0 else None

        def invalid(reason: InvalidReason, message: str) -> ValidationResult:
            logger.info(f"Polygon invalid ({reason.value}): {message}")
            return ValidationResult(
                valid=False,
                area_m2=area,
                reason=reason,
                message=message,
                point_count=len(ring),
                perimeter_m=length,
                winding=winding,
            )

        if not is_simple(xy):
            return invalid(InvalidReason.SELF_INTERSECTING, "Path crosses itself")

        if area < self.config.min_area_m2:
            return invalid(
                InvalidReason.AREA_TOO_SMALL,
                f"Area {area:.0f}m² is below the {self.config.min_area_m2:g}m² minimum",
            )

        if area > self.config.max_area_m2:
            return invalid(
                InvalidReason.AREA_IMPLAUSIBLE,
                f"Area {area:.0f}m² exceeds the {self.config.max_area_m2:g}m² maximum",
            )

        if traversed_length_m is not None:
            bound = traversed_length_m**2 / (4.0 * math.pi) * self.config.isoperimetric_tolerance
            if area > bound:
                return invalid(
                    InvalidReason.AREA_IMPLAUSIBLE,
                    f"Area {area:.0f}m² cannot be enclosed by a {traversed_length_m:.0f}m walk",
                )

        spike = find_spike(xy, self.config.max_spike_ratio)
        if spike is not None:
            return invalid(
                InvalidReason.AREA_IMPLAUSIBLE,
                f"Vertex {spike} is an outlier fix far from its neighbours",
            )

        logger.debug(f"Polygon valid: {area:.0f}m², {len(ring)} points, {winding}")
        return ValidationResult(
            valid=True,
            area_m2=area,
            point_count=len(ring),
            perimeter_m=length,
            winding=winding,
        )
