"""
Location Sample Filter - rejects low-quality or physically impossible fixes.

The filter is pure: the caller supplies the last accepted fix and decides
what to do with the decision. Rate limiting of speed advisories and
smoothing live with the caller.
"""

import logging
from collections import deque

from ..config.schemas import FilterConfig
from ..geometry import haversine_m
from ..models import FilterDecision, GeoPoint, RawFix, RejectReason

logger = logging.getLogger(__name__)

_MPS_TO_KMH = 3.6


class LocationSampleFilter:
    """
    Classifies raw device fixes as accepted points or rejections.

    Rules are applied in order: coordinate sanity, accuracy, timestamp
    ordering, speed ceiling, minimum spacing. Accepted fixes moving faster
    than the advisory threshold carry a "slow down" warning.
    """

    def __init__(self, config: FilterConfig | None = None):
        self.config = config or FilterConfig()

    def evaluate(self, fix: RawFix, previous: RawFix | None = None) -> FilterDecision:
        """
        Evaluate one fix against the previously accepted fix.

        Args:
            fix: Raw sample from the location provider
            previous: Last accepted fix of this session, None for the first

        Returns:
            FilterDecision with either the accepted point or a reject reason
        """
        point = fix.point
        if not point.is_finite():
            return FilterDecision.reject(
                RejectReason.INVALID_COORDINATE,
                f"Invalid coordinate ({fix.latitude}, {fix.longitude})",
            )

        if fix.accuracy_m <= 0:
            return FilterDecision.reject(
                RejectReason.LOW_ACCURACY, f"Invalid accuracy {fix.accuracy_m}"
            )
        if fix.accuracy_m > self.config.max_accuracy_m:
            return FilterDecision.reject(
                RejectReason.LOW_ACCURACY,
                f"GPS accuracy {fix.accuracy_m:.1f}m worse than {self.config.max_accuracy_m:g}m",
            )

        if previous is None:
            return FilterDecision.accept(point)

        elapsed = fix.timestamp - previous.timestamp
        if elapsed <= 0:
            return FilterDecision.reject(
                RejectReason.INVALID_TIMESTAMP,
                f"Fix timestamp {fix.timestamp} not after previous {previous.timestamp}",
            )

        distance = haversine_m(previous.point, point)
        speed_kmh = self._speed_kmh(fix, distance, elapsed)

        if speed_kmh > self.config.max_speed_kmh:
            message = (
                f"Moving at {speed_kmh:.1f} km/h, above the {self.config.max_speed_kmh:g} km/h "
                "limit. Vehicle travel is not allowed."
            )
            return FilterDecision.reject(
                RejectReason.SPEED_EXCEEDED, message, speed_kmh=speed_kmh, speed_warning=message
            )

        if distance < self.config.min_point_spacing_m:
            return FilterDecision.reject(
                RejectReason.TOO_CLOSE,
                f"Only {distance:.1f}m from previous point",
                speed_kmh=speed_kmh,
            )

        warning = None
        if speed_kmh > self.config.speed_warning_kmh:
            warning = f"Moving at {speed_kmh:.1f} km/h, please slow down"
        return FilterDecision.accept(point, speed_kmh=speed_kmh, speed_warning=warning)

    @staticmethod
    def _speed_kmh(fix: RawFix, distance_m: float, elapsed_s: float) -> float:
        """Max of the implied speed and the device speed (when known)."""
        implied = distance_m / elapsed_s
        reported = fix.speed_mps if fix.speed_mps >= 0 else 0.0
        return max(implied, reported) * _MPS_TO_KMH


class WeightedAverageSmoother:
    """
    Smooths accepted points with an accuracy-weighted moving average.

    Each point in the window is weighted by 1/accuracy^2, so precise fixes
    dominate. A window of 1 passes points through unchanged.
    """

    def __init__(self, window: int = 5):
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._buffer: deque[tuple[GeoPoint, float]] = deque(maxlen=window)

    def smooth(self, point: GeoPoint, accuracy_m: float) -> GeoPoint:
        self._buffer.append((point, max(accuracy_m, 1e-3)))
        if self.window == 1 or len(self._buffer) == 1:
            return point

        weights = [1.0 / (acc * acc) for _, acc in self._buffer]
        total = sum(weights)
        lat = sum(p.latitude * w for (p, _), w in zip(self._buffer, weights)) / total
        lon = sum(p.longitude * w for (p, _), w in zip(self._buffer, weights)) / total
        return GeoPoint(lat, lon, point.frame)

    def reset(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)
