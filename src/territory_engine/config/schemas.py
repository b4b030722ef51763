"""
Pydantic schemas for configuration validation.

Every tuned constant of the engine lives here. Values are empirical, so the
schema enforces their ordering/relationships rather than exact numbers.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..utils.constants import (
    DEFAULT_BOUNDARY_TOLERANCE_M,
    DEFAULT_CAUTION_M,
    DEFAULT_CHECK_INTERVAL_S,
    DEFAULT_CLOSURE_RADIUS_M,
    DEFAULT_DANGER_M,
    DEFAULT_ISOPERIMETRIC_TOLERANCE,
    DEFAULT_MAX_ACCURACY_M,
    DEFAULT_MAX_AREA_M2,
    DEFAULT_MAX_SPEED_KMH,
    DEFAULT_MAX_SPIKE_RATIO,
    DEFAULT_MIN_AREA_M2,
    DEFAULT_MIN_CLOSURE_POINTS,
    DEFAULT_MIN_POINT_SPACING_M,
    DEFAULT_MIN_TRAVERSED_M,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_SPEED_WARNING_COOLDOWN_S,
    DEFAULT_SPEED_WARNING_KMH,
    DEFAULT_TERRITORY_TABLE,
    DEFAULT_WARNING_M,
)


class StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


class FilterConfig(StrictModel):
    """Location sample filter settings."""

    max_accuracy_m: float = Field(
        default=DEFAULT_MAX_ACCURACY_M, gt=0, description="Reject fixes less accurate than this"
    )
    max_speed_kmh: float = Field(
        default=DEFAULT_MAX_SPEED_KMH, gt=0, description="Teleport/vehicle ceiling"
    )
    speed_warning_kmh: float = Field(
        default=DEFAULT_SPEED_WARNING_KMH, gt=0, description="Advisory 'slow down' threshold"
    )
    speed_warning_cooldown_s: float = Field(default=DEFAULT_SPEED_WARNING_COOLDOWN_S, ge=0)
    min_point_spacing_m: float = Field(
        default=DEFAULT_MIN_POINT_SPACING_M, ge=0, description="Drop fixes closer than this"
    )
    smoothing_window: int = Field(
        default=1, ge=1, le=20, description="Weighted-average window, 1 disables smoothing"
    )

    @model_validator(mode="after")
    def validate_speeds(self):
        if self.speed_warning_kmh >= self.max_speed_kmh:
            raise ValueError("speed_warning_kmh must be < max_speed_kmh")
        return self


class ClosureConfig(StrictModel):
    """Loop closure detection settings."""

    closure_radius_m: float = Field(default=DEFAULT_CLOSURE_RADIUS_M, gt=0)
    min_points: int = Field(default=DEFAULT_MIN_CLOSURE_POINTS, ge=4)
    min_traversed_m: float = Field(default=DEFAULT_MIN_TRAVERSED_M, ge=0)


class ValidationConfig(StrictModel):
    """Polygon validation settings."""

    min_area_m2: float = Field(default=DEFAULT_MIN_AREA_M2, ge=0)
    max_area_m2: float = Field(default=DEFAULT_MAX_AREA_M2, gt=0)
    isoperimetric_tolerance: float = Field(
        default=DEFAULT_ISOPERIMETRIC_TOLERANCE,
        ge=1.0,
        description="Slack on the L^2/(4*pi) area bound of the walked length",
    )
    max_spike_ratio: float = Field(
        default=DEFAULT_MAX_SPIKE_RATIO,
        gt=1.0,
        description="A vertex whose two edges both exceed this multiple of the median edge is rejected",
    )

    @model_validator(mode="after")
    def validate_range(self):
        if self.min_area_m2 >= self.max_area_m2:
            raise ValueError("max_area_m2 must be > min_area_m2")
        return self


class ProximityConfig(StrictModel):
    """Collision detector thresholds (meters) and scheduling."""

    caution_m: float = Field(default=DEFAULT_CAUTION_M, gt=0)
    warning_m: float = Field(default=DEFAULT_WARNING_M, gt=0)
    danger_m: float = Field(default=DEFAULT_DANGER_M, gt=0)
    boundary_tolerance_m: float = Field(
        default=DEFAULT_BOUNDARY_TOLERANCE_M,
        ge=0,
        description="Start points this close to a boundary count as inside",
    )
    check_interval_s: float = Field(default=DEFAULT_CHECK_INTERVAL_S, gt=0)
    include_own_territories: bool = Field(
        default=False, description="Also treat the claimant's own territories as obstacles"
    )

    @model_validator(mode="after")
    def validate_order(self):
        if not self.danger_m < self.warning_m < self.caution_m:
            raise ValueError("thresholds must satisfy danger_m < warning_m < caution_m")
        return self


class CoordinatesConfig(StrictModel):
    """Display frame settings."""

    display_offset: bool = Field(
        default=True, description="Apply the GCJ-02 offset when producing display coordinates"
    )


class RepositoryConfig(StrictModel):
    """Territory repository adapter selection."""

    type: Literal["memory", "json", "rest"] = "memory"
    path: str | None = Field(default=None, description="JSON file for type=json")
    url: str | None = Field(default=None, description="Base URL for type=rest")
    api_key: str | None = None
    table: str = Field(default=DEFAULT_TERRITORY_TABLE, min_length=1)
    timeout_s: float = Field(default=DEFAULT_REQUEST_TIMEOUT_S, gt=0)
    max_retries: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def validate_target(self):
        if self.type == "json" and not self.path:
            raise ValueError("repository.path is required for type 'json'")
        if self.type == "rest" and not self.url:
            raise ValueError("repository.url is required for type 'rest'")
        return self


class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class EngineConfig(StrictModel):
    """Complete configuration schema."""

    filter: FilterConfig = Field(default_factory=FilterConfig)
    closure: ClosureConfig = Field(default_factory=ClosureConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    proximity: ProximityConfig = Field(default_factory=ProximityConfig)
    coordinates: CoordinatesConfig = Field(default_factory=CoordinatesConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def validate_config_pydantic(config: dict) -> EngineConfig:
    """
    Validate configuration using Pydantic.

    Args:
        config: Raw configuration dictionary

    Returns:
        Validated EngineConfig object

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return EngineConfig(**(config or {}))
