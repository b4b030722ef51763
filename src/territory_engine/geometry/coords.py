"""
Coordinate System Converter - WGS-84 (storage) <-> GCJ-02 (display).

Maps of mainland China are drawn in GCJ-02, a deliberately perturbed frame.
Raw GPS and everything persisted stays in WGS-84; only the UI boundary asks
for display-frame coordinates.

Design:
- Pure functions, no state
- Identity outside the region the offset applies to
- Inverse refined by fixed-point iteration (round trip well under 1 cm)
"""

import math
from typing import Iterable

from ..models import CoordinateFrame, GeoPoint

# Krasovsky 1940 ellipsoid, as used by GCJ-02
_A = 6378245.0
_EE = 0.00669342162296594323

# Applicability box (mainland China, coarse)
_MIN_LAT, _MAX_LAT = 0.8293, 55.8271
_MIN_LON, _MAX_LON = 72.004, 137.8347

_INVERSE_MAX_ITERATIONS = 10
_INVERSE_EPSILON_DEG = 1e-10


def is_in_offset_region(latitude: float, longitude: float) -> bool:
    """True if the GCJ-02 offset applies at this position."""
    return _MIN_LAT <= latitude <= _MAX_LAT and _MIN_LON <= longitude <= _MAX_LON


def _transform_lat(x: float, y: float) -> float:
    ret = -100.0 + 2.0 * x + 3.0 * y + 0.2 * y * y + 0.1 * x * y + 0.2 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(y * math.pi) + 40.0 * math.sin(y / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (160.0 * math.sin(y / 12.0 * math.pi) + 320.0 * math.sin(y * math.pi / 30.0)) * 2.0 / 3.0
    return ret


def _transform_lon(x: float, y: float) -> float:
    ret = 300.0 + x + 2.0 * y + 0.1 * x * x + 0.1 * x * y + 0.1 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(x * math.pi) + 40.0 * math.sin(x / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (150.0 * math.sin(x / 12.0 * math.pi) + 300.0 * math.sin(x / 30.0 * math.pi)) * 2.0 / 3.0
    return ret


def _offset(latitude: float, longitude: float) -> tuple[float, float]:
    """GCJ-02 offset (d_lat, d_lon) in degrees at a WGS-84 position."""
    d_lat = _transform_lat(longitude - 105.0, latitude - 35.0)
    d_lon = _transform_lon(longitude - 105.0, latitude - 35.0)

    rad_lat = latitude / 180.0 * math.pi
    magic = math.sin(rad_lat)
    magic = 1 - _EE * magic * magic
    sqrt_magic = math.sqrt(magic)

    d_lat = (d_lat * 180.0) / ((_A * (1 - _EE)) / (magic * sqrt_magic) * math.pi)
    d_lon = (d_lon * 180.0) / (_A / sqrt_magic * math.cos(rad_lat) * math.pi)
    return d_lat, d_lon


def to_display_frame(point: GeoPoint) -> GeoPoint:
    """
    Convert a storage-frame (WGS-84) point to the display frame (GCJ-02).

    Points already in the display frame are returned unchanged. Outside the
    offset region the coordinates pass through untouched.
    """
    if point.frame == CoordinateFrame.DISPLAY:
        return point
    if not is_in_offset_region(point.latitude, point.longitude):
        return GeoPoint(point.latitude, point.longitude, CoordinateFrame.DISPLAY)

    d_lat, d_lon = _offset(point.latitude, point.longitude)
    return GeoPoint(point.latitude + d_lat, point.longitude + d_lon, CoordinateFrame.DISPLAY)


def to_storage_frame(point: GeoPoint) -> GeoPoint:
    """
    Convert a display-frame (GCJ-02) point back to the storage frame (WGS-84).

    Starts from the classic single-step inverse and iterates
    ``wgs <- wgs - (forward(wgs) - gcj)`` until the forward transform of the
    estimate reproduces the input.
    """
    if point.frame == CoordinateFrame.STORAGE:
        return point
    if not is_in_offset_region(point.latitude, point.longitude):
        return GeoPoint(point.latitude, point.longitude, CoordinateFrame.STORAGE)

    d_lat, d_lon = _offset(point.latitude, point.longitude)
    lat = point.latitude - d_lat
    lon = point.longitude - d_lon

    for _ in range(_INVERSE_MAX_ITERATIONS):
        f_lat, f_lon = _offset(lat, lon)
        err_lat = (lat + f_lat) - point.latitude
        err_lon = (lon + f_lon) - point.longitude
        lat -= err_lat
        lon -= err_lon
        if abs(err_lat) < _INVERSE_EPSILON_DEG and abs(err_lon) < _INVERSE_EPSILON_DEG:
            break

    return GeoPoint(lat, lon, CoordinateFrame.STORAGE)


def path_to_display(points: Iterable[GeoPoint]) -> list[GeoPoint]:
    """Convert a sequence of points to the display frame."""
    return [to_display_frame(p) for p in points]


def path_to_storage(points: Iterable[GeoPoint]) -> list[GeoPoint]:
    """Convert a sequence of points to the storage frame."""
    return [to_storage_frame(p) for p in points]


class CoordinateConverter:
    """
    Injectable facade over the module functions.

    Hosts that never render in China can pass ``CoordinateConverter(enabled=False)``
    so both directions only relabel the frame.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def to_display(self, point: GeoPoint) -> GeoPoint:
        if not self.enabled:
            return GeoPoint(point.latitude, point.longitude, CoordinateFrame.DISPLAY)
        return to_display_frame(point)

    def to_storage(self, point: GeoPoint) -> GeoPoint:
        if not self.enabled:
            return GeoPoint(point.latitude, point.longitude, CoordinateFrame.STORAGE)
        return to_storage_frame(point)

    def __repr__(self) -> str:
        return f"CoordinateConverter(enabled={self.enabled})"
