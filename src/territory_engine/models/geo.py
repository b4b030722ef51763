"""
Geographic value types - points, frames and raw device fixes.
"""

import math
from dataclasses import dataclass
from enum import Enum


class CoordinateFrame(str, Enum):
    """Coordinate frame a GeoPoint is expressed in."""

    STORAGE = "wgs84"  # GPS / persisted geometry
    DISPLAY = "gcj02"  # Offset frame used by maps of mainland China


@dataclass(frozen=True)
class GeoPoint:
    """
    Immutable latitude/longitude pair in a named coordinate frame.

    Attributes:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        frame: Coordinate frame (storage unless stated otherwise)
    """

    latitude: float
    longitude: float
    frame: CoordinateFrame = CoordinateFrame.STORAGE

    def is_finite(self) -> bool:
        """True if both coordinates are finite and within WGS ranges."""
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )

    def require_same_frame(self, other: "GeoPoint") -> None:
        """Raise ValueError if other is expressed in a different frame."""
        if self.frame != other.frame:
            raise ValueError(
                f"Cannot compare {self.frame.value} point with {other.frame.value} point "
                "without explicit conversion"
            )

    def to_dict(self) -> dict[str, float]:
        """Serialize to the store's {"lat", "lon"} form."""
        return {"lat": self.latitude, "lon": self.longitude}

    @classmethod
    def from_dict(
        cls, data: dict, frame: CoordinateFrame = CoordinateFrame.STORAGE
    ) -> "GeoPoint":
        """Deserialize from {"lat", "lon"} (or latitude/longitude) keys."""
        lat = data["lat"] if "lat" in data else data["latitude"]
        lon = data["lon"] if "lon" in data else data["longitude"]
        return cls(latitude=float(lat), longitude=float(lon), frame=frame)


@dataclass(frozen=True)
class RawFix:
    """
    A single location sample from the device provider (storage frame).

    Attributes:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        accuracy_m: Horizontal accuracy radius in meters, <= 0 means invalid
        timestamp: Unix epoch seconds
        speed_mps: Device-reported speed in m/s, negative means unknown
    """

    latitude: float
    longitude: float
    accuracy_m: float
    timestamp: float
    speed_mps: float = -1.0

    @property
    def point(self) -> GeoPoint:
        """The fix position as a storage-frame GeoPoint."""
        return GeoPoint(self.latitude, self.longitude, CoordinateFrame.STORAGE)
