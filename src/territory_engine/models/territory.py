"""
Territory model - a persisted claim, referenced read-only by the engine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .geo import CoordinateFrame, GeoPoint

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the store (tolerates trailing Z)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Unparseable timestamp in territory record: {value!r}")
        return None


@dataclass(frozen=True)
class Territory:
    """
    A claimed parcel owned by a player.

    Attributes:
        id: Store identifier
        owner_id: Claimant user id (compared case-insensitively)
        boundary: Storage-frame ring, >= 3 points, implicitly closed
        area_m2: Area reported at claim time
        created_at: Creation timestamp, if known
        name: Optional player-given name
    """

    id: str
    owner_id: str
    boundary: tuple[GeoPoint, ...]
    area_m2: float
    created_at: datetime | None = None
    name: str | None = None

    def __post_init__(self):
        for point in self.boundary:
            if point.frame != CoordinateFrame.STORAGE:
                raise ValueError(f"Territory {self.id} boundary must be in the storage frame")

    def is_owned_by(self, owner_id: str | None) -> bool:
        """True if owner_id matches this territory's owner (case-insensitive)."""
        if owner_id is None:
            return False
        return self.owner_id.lower() == owner_id.lower()

    @property
    def is_polygon(self) -> bool:
        """True if the boundary has enough points to enclose an area."""
        return len(self.boundary) >= 3

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """Bounding box as (min_lat, max_lat, min_lon, max_lon)."""
        if not self.boundary:
            return (0.0, 0.0, 0.0, 0.0)
        lats = [p.latitude for p in self.boundary]
        lons = [p.longitude for p in self.boundary]
        return (min(lats), max(lats), min(lons), max(lons))

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed territory"

    @property
    def formatted_area(self) -> str:
        if self.area_m2 >= 1_000_000:
            return f"{self.area_m2 / 1_000_000:.2f} km²"
        return f"{self.area_m2:.0f} m²"

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Territory":
        """
        Build a Territory from a store row.

        Expected keys: id, user_id, path ([{"lat", "lon"}, ...]), area.
        Optional: name, created_at. Path entries missing a coordinate are
        skipped, matching how the store tolerates partial rows.
        """
        boundary = []
        for entry in record.get("path") or []:
            if "lat" not in entry or "lon" not in entry:
                continue
            boundary.append(GeoPoint.from_dict(entry))

        return cls(
            id=str(record["id"]),
            owner_id=str(record["user_id"]),
            boundary=tuple(boundary),
            area_m2=float(record.get("area", 0.0) or 0.0),
            created_at=_parse_timestamp(record.get("created_at")),
            name=record.get("name"),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to a store row (inverse of from_record)."""
        min_lat, max_lat, min_lon, max_lon = self.bbox
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "name": self.name,
            "path": [p.to_dict() for p in self.boundary],
            "polygon": boundary_to_wkt(self.boundary),
            "bbox_min_lat": min_lat,
            "bbox_max_lat": max_lat,
            "bbox_min_lon": min_lon,
            "bbox_max_lon": max_lon,
            "area": self.area_m2,
            "point_count": len(self.boundary),
            "is_active": True,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def boundary_to_wkt(boundary: tuple[GeoPoint, ...] | list[GeoPoint]) -> str:
    """
    Convert a boundary to EWKT.

    WKT is longitude-first and the ring must be explicitly closed, so the
    first point is appended when the ring is open.

    Returns:
        String like ``SRID=4326;POLYGON((lon lat, lon lat, ...))``
    """
    coords = list(boundary)
    if coords and (
        coords[0].latitude != coords[-1].latitude
        or coords[0].longitude != coords[-1].longitude
    ):
        coords.append(coords[0])
    points = ", ".join(f"{p.longitude} {p.latitude}" for p in coords)
    return f"SRID=4326;POLYGON(({points}))"
