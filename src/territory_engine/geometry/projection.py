"""
Distances and local planar projection.

Walked parcels are sub-kilometer, so an equirectangular projection centred
on the area of interest is accurate to well under a meter and lets all
polygon math run in plain (x, y) meters.
"""

import math
from typing import Sequence

import numpy as np

from ..models import GeoPoint
from ..utils.constants import EARTH_RADIUS_M


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """
    Great-circle distance in meters between two points of the same frame.

    Raises:
        ValueError: If the points are in different coordinate frames
    """
    a.require_same_frame(b)
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def path_length_m(points: Sequence[GeoPoint], closed: bool = False) -> float:
    """Sum of consecutive segment lengths; closed adds the last->first edge."""
    if len(points) < 2:
        return 0.0
    total = sum(haversine_m(points[i], points[i + 1]) for i in range(len(points) - 1))
    if closed:
        total += haversine_m(points[-1], points[0])
    return total


def centroid(points: Sequence[GeoPoint]) -> GeoPoint:
    """Arithmetic mean of the coordinates (fine at parcel scale)."""
    if not points:
        raise ValueError("centroid of an empty point set")
    lat = sum(p.latitude for p in points) / len(points)
    lon = sum(p.longitude for p in points) / len(points)
    return GeoPoint(lat, lon, points[0].frame)


class LocalProjection:
    """
    Equirectangular projection centred on an origin point.

    x grows east, y grows north, both in meters.

    Usage:
        proj = LocalProjection(origin)
        xy = proj.project(points)          # (N, 2) ndarray
        p = proj.unproject(100.0, -50.0)   # GeoPoint 100 m east, 50 m south
    """

    def __init__(self, origin: GeoPoint):
        self.origin = origin
        self._lat0 = math.radians(origin.latitude)
        self._lon0 = math.radians(origin.longitude)
        self._cos_lat0 = math.cos(self._lat0)

    @classmethod
    def centred_on(cls, points: Sequence[GeoPoint]) -> "LocalProjection":
        return cls(centroid(points))

    def project(self, points: Sequence[GeoPoint]) -> np.ndarray:
        """Project points to an (N, 2) array of meters."""
        if not points:
            return np.empty((0, 2), dtype=float)
        for p in points:
            self.origin.require_same_frame(p)
        coords = np.radians(np.array([[p.longitude, p.latitude] for p in points], dtype=float))
        x = (coords[:, 0] - self._lon0) * self._cos_lat0 * EARTH_RADIUS_M
        y = (coords[:, 1] - self._lat0) * EARTH_RADIUS_M
        return np.column_stack((x, y))

    def unproject(self, x: float, y: float) -> GeoPoint:
        """Inverse of project for a single (x, y) in meters."""
        lat = self._lat0 + y / EARTH_RADIUS_M
        lon = self._lon0 + x / (EARTH_RADIUS_M * self._cos_lat0)
        return GeoPoint(math.degrees(lat), math.degrees(lon), self.origin.frame)

    def __repr__(self) -> str:
        return f"LocalProjection(origin=({self.origin.latitude:.6f}, {self.origin.longitude:.6f}))"
