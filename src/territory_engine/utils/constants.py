"""
Constants used throughout the territory engine
"""

# Earth model
EARTH_RADIUS_M = 6_371_000.0  # Mean Earth radius used for haversine and local projection

# Location filter defaults
DEFAULT_MAX_ACCURACY_M = 10.0  # Only accept fixes at least this accurate
DEFAULT_MAX_SPEED_KMH = 30.0  # Faster than this is treated as teleport/vehicle
DEFAULT_SPEED_WARNING_KMH = 15.0  # Faster than this raises a "slow down" advisory
DEFAULT_SPEED_WARNING_COOLDOWN_S = 5.0  # Minimum gap between two speed advisories
DEFAULT_MIN_POINT_SPACING_M = 10.0  # Closer fixes are dropped as jitter

# Loop closure defaults
DEFAULT_CLOSURE_RADIUS_M = 30.0
DEFAULT_MIN_CLOSURE_POINTS = 10
DEFAULT_MIN_TRAVERSED_M = 100.0

# Polygon validation defaults
DEFAULT_MIN_AREA_M2 = 100.0
DEFAULT_MAX_AREA_M2 = 1_000_000.0
DEFAULT_ISOPERIMETRIC_TOLERANCE = 1.05
DEFAULT_MAX_SPIKE_RATIO = 5.0  # Vertex whose both edges exceed this multiple of the median edge is an outlier fix

# Proximity thresholds (meters), strictly decreasing
DEFAULT_CAUTION_M = 100.0
DEFAULT_WARNING_M = 50.0
DEFAULT_DANGER_M = 25.0
DEFAULT_BOUNDARY_TOLERANCE_M = 0.1
DEFAULT_CHECK_INTERVAL_S = 10.0

# Repository
DEFAULT_TERRITORY_TABLE = "territories"
DEFAULT_REQUEST_TIMEOUT_S = 10.0

# Environment variables
ENV_REPOSITORY_URL = "TERRITORY_REPOSITORY_URL"
ENV_REPOSITORY_KEY = "TERRITORY_REPOSITORY_KEY"
ENV_LOG_LEVEL = "TERRITORY_LOG_LEVEL"
