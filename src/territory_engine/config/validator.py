"""
Configuration Validator - Validates config syntax and semantic correctness.

Wraps the pydantic schema with readable error messages and adds advisory
warnings for settings that are legal but likely to misbehave in the field.
"""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from .schemas import EngineConfig, validate_config_pydantic

logger = logging.getLogger(__name__)


@dataclass
class ConfigReport:
    """Result of config validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    config: EngineConfig | None = None


def validate_config_full(config: dict | None) -> ConfigReport:
    """
    Comprehensive config validation with detailed error messages.

    Args:
        config: Configuration dictionary to validate (None means all defaults)

    Returns:
        ConfigReport with errors, warnings and, when valid, the parsed config.
    """
    report = ConfigReport(valid=True)

    if config is not None and not isinstance(config, dict):
        report.valid = False
        report.errors.append(f"Config must be a mapping, got {type(config).__name__}")
        return report

    try:
        parsed = validate_config_pydantic(config or {})
    except ValidationError as e:
        report.valid = False
        report.errors.extend(_format_errors(e))
        return report

    report.config = parsed
    _check_check_interval(parsed, report)
    _check_closure_vs_spacing(parsed, report)
    _check_filter(parsed, report)

    return report


def _format_errors(error: ValidationError) -> list[str]:
    """Turn pydantic errors into 'section.field: message' strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "config"
        messages.append(f"{location}: {item.get('msg', 'invalid value')}")
    return messages


def _check_check_interval(config: EngineConfig, report: ConfigReport) -> None:
    """At the speed ceiling a player must not cross the whole caution band between two checks."""
    proximity = config.proximity
    stride = config.filter.max_speed_kmh / 3.6 * proximity.check_interval_s
    if stride > proximity.caution_m:
        report.warnings.append(
            f"At {config.filter.max_speed_kmh:g} km/h a player covers {stride:.0f}m between checks, "
            f"more than proximity.caution_m ({proximity.caution_m:g}m)"
        )


def _check_closure_vs_spacing(config: EngineConfig, report: ConfigReport) -> None:
    minimum_loop = config.closure.min_points * config.filter.min_point_spacing_m
    if config.closure.min_traversed_m < minimum_loop / 2:
        report.warnings.append(
            f"closure.min_traversed_m ({config.closure.min_traversed_m}m) is small compared "
            f"to min_points x min_point_spacing_m ({minimum_loop:.0f}m)"
        )
    if config.filter.min_point_spacing_m >= config.closure.closure_radius_m:
        report.warnings.append(
            "filter.min_point_spacing_m >= closure.closure_radius_m: "
            "the closing fix may be dropped as too close"
        )


def _check_filter(config: EngineConfig, report: ConfigReport) -> None:
    if config.filter.max_accuracy_m > config.closure.closure_radius_m:
        report.warnings.append(
            f"filter.max_accuracy_m ({config.filter.max_accuracy_m}m) is looser than the "
            f"closure radius ({config.closure.closure_radius_m}m)"
        )
