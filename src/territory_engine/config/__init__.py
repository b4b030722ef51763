"""
Configuration loading and validation.

- load_config: YAML file + environment overrides -> validated EngineConfig
- validate_config_full: errors and advisory warnings for a raw dict
- EngineConfig and section schemas for type hints
"""

from .loader import load_config, load_config_with_env, print_validation_result, read_config_file
from .schemas import (
    ClosureConfig,
    CoordinatesConfig,
    EngineConfig,
    FilterConfig,
    LoggingConfig,
    ProximityConfig,
    RepositoryConfig,
    ValidationConfig,
    validate_config_pydantic,
)
from .validator import ConfigReport, validate_config_full

__all__ = [
    # Schemas
    "ClosureConfig",
    "CoordinatesConfig",
    "EngineConfig",
    "FilterConfig",
    "LoggingConfig",
    "ProximityConfig",
    "RepositoryConfig",
    "ValidationConfig",
    "validate_config_pydantic",
    # Loading
    "load_config",
    "load_config_with_env",
    "read_config_file",
    # Validation
    "ConfigReport",
    "print_validation_result",
    "validate_config_full",
]
