"""
Geometry Layer
==============

Pure functions and immutable helpers:
- coords: WGS-84 <-> GCJ-02 frame conversion
- projection: haversine distance, local equirectangular projection
- polygon: shoelace area, ray casting, segment intersection on meter arrays

NO state, NO session knowledge, NO logging of business events.
"""

from .coords import (
    CoordinateConverter,
    is_in_offset_region,
    path_to_display,
    path_to_storage,
    to_display_frame,
    to_storage_frame,
)
from .polygon import (
    contains_point,
    distance_to_ring,
    find_spike,
    first_path_crossing,
    is_simple,
    open_ring,
    perimeter,
    segments_intersect,
    signed_area,
)
from .projection import LocalProjection, centroid, haversine_m, path_length_m

__all__ = [
    # Frames
    "CoordinateConverter",
    "is_in_offset_region",
    "path_to_display",
    "path_to_storage",
    "to_display_frame",
    "to_storage_frame",
    # Projection
    "LocalProjection",
    "centroid",
    "haversine_m",
    "path_length_m",
    # Polygon
    "contains_point",
    "distance_to_ring",
    "find_spike",
    "first_path_crossing",
    "is_simple",
    "open_ring",
    "perimeter",
    "segments_intersect",
    "signed_area",
]
