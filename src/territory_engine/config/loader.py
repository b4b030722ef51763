"""
Config loading - YAML files, pointer files and environment overrides.
"""

import logging
import os
from pathlib import Path

import yaml

from ..exceptions import ConfigValidationError
from ..utils.constants import ENV_LOG_LEVEL, ENV_REPOSITORY_KEY, ENV_REPOSITORY_URL
from .schemas import EngineConfig
from .validator import ConfigReport, validate_config_full

logger = logging.getLogger(__name__)


class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def read_config_file(config_path: str | Path) -> dict:
    """
    Read a YAML config file.

    Supports pointer files: if the file only contains `use: other.yaml`,
    that file (resolved relative to the pointer) is loaded instead.

    Raises:
        ConfigValidationError: If the file is missing or not valid YAML
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigValidationError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f)

        # Support pointer files: { use: "path/to/actual/config.yaml" }
        if isinstance(config, dict) and list(config.keys()) == ["use"]:
            pointer_path = path.parent / config["use"]
            logger.info(f"Config pointer: {path} -> {config['use']}")
            with open(pointer_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
            path = pointer_path
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Cannot read config {path}: {e}") from e

    logger.info(f"Configuration loaded from {path}")
    return config or {}


def load_config_with_env(config: dict) -> dict:
    """
    Apply environment variable overrides to config.

    Args:
        config: Base configuration dictionary

    Returns:
        Configuration with environment variables applied
    """
    if ENV_REPOSITORY_URL in os.environ:
        logger.info(f"Using repository URL from environment: {ENV_REPOSITORY_URL}")
        repository = config.setdefault("repository", {})
        repository["url"] = os.environ[ENV_REPOSITORY_URL]
        repository.setdefault("type", "rest")

    if ENV_REPOSITORY_KEY in os.environ:
        config.setdefault("repository", {})["api_key"] = os.environ[ENV_REPOSITORY_KEY]

    if ENV_LOG_LEVEL in os.environ:
        config.setdefault("logging", {})["level"] = os.environ[ENV_LOG_LEVEL].upper()

    return config


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    """
    Load, override and validate configuration.

    Args:
        config_path: YAML file, or None for defaults plus environment

    Returns:
        Validated EngineConfig

    Raises:
        ConfigValidationError: If the file cannot be read or fails validation
    """
    raw = read_config_file(config_path) if config_path else {}
    raw = load_config_with_env(raw)

    report = validate_config_full(raw)
    for warning in report.warnings:
        logger.warning(f"Config: {warning}")
    if not report.valid:
        raise ConfigValidationError("; ".join(report.errors))

    logger.info("Configuration validated")
    return report.config


def print_validation_result(report: ConfigReport) -> None:
    """Print validation result in Terraform-like format."""
    print()
    print(f"{Colors.BOLD}Configuration Validation{Colors.RESET}")
    print("=" * 60)

    if report.valid:
        print(f"\n{Colors.GREEN}✓ Configuration is valid{Colors.RESET}")
    else:
        print(f"\n{Colors.RED}✗ Configuration has errors{Colors.RESET}")

    if report.errors:
        print(f"\n{Colors.RED}Errors:{Colors.RESET}")
        for error in report.errors:
            print(f"  {Colors.RED}✗{Colors.RESET} {error}")

    if report.warnings:
        print(f"\n{Colors.YELLOW}Warnings:{Colors.RESET}")
        for warning in report.warnings:
            print(f"  {Colors.YELLOW}!{Colors.RESET} {warning}")

    if report.valid and report.config is not None:
        proximity = report.config.proximity
        closure = report.config.closure
        print(f"\n{Colors.BOLD}Effective thresholds:{Colors.RESET}")
        print(
            f"  Proximity: caution {proximity.caution_m:g}m, warning {proximity.warning_m:g}m, "
            f"danger {proximity.danger_m:g}m"
        )
        print(f"  Closure: {closure.closure_radius_m:g}m after {closure.min_points} points")
        print(f"  Repository: {report.config.repository.type}")

    print()
