"""
Territory Engine CLI
Replays a recorded GPS track through the claim engine.

  python -m territory_engine track.csv --territories territories.json
  python -m territory_engine --validate -c config.yaml
"""

import argparse
import csv
import logging
import sys
from pathlib import Path

from .config import (
    EngineConfig,
    load_config,
    load_config_with_env,
    print_validation_result,
    read_config_file,
    validate_config_full,
)
from .controller import ClaimController
from .exceptions import ClaimRejectedError, ConfigValidationError, RepositoryError
from .models import GeoPoint, RawFix, SessionStatus, WarningLevel
from .repository import TerritoryRepository, create_repository
from .repository.json_file import JsonFileTerritoryRepository
from .utils import CallbackQueueAdapter, get_event_summary

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


def setup_logging(quiet: bool = False, level: str = "INFO") -> None:
    """
    Setup logging configuration.

    Args:
        quiet: If True, only show warnings and errors
        level: Level name used when not quiet
    """
    resolved = logging.WARNING if quiet else getattr(logging, level.upper(), logging.INFO)

    # Custom formatter with shorter module names
    class ShortNameFormatter(logging.Formatter):
        def format(self, record):
            record.name = record.name.replace("territory_engine.", "te.")
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ShortNameFormatter(fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(resolved)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Territory Engine - Replay a GPS track as a territory claim",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m territory_engine walk.csv                          # Replay against an empty map
  python -m territory_engine walk.csv --territories map.json   # Check against stored territories
  python -m territory_engine walk.csv --territories map.json --save --owner alice

Track CSV columns:
  geoTime (epoch ms), latitude, longitude, horizontalAccuracy, speed (m/s, -1 unknown)

Config Commands:
  python -m territory_engine --validate -c config.yaml   # Check config validity

Environment Variables:
  TERRITORY_REPOSITORY_URL - REST store URL (selects the rest repository)
  TERRITORY_REPOSITORY_KEY - REST store API key
  TERRITORY_LOG_LEVEL      - Log level override
        """,
    )

    parser.add_argument("track", nargs="?", help="Recorded track CSV file")

    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (default: built-in defaults)",
    )

    parser.add_argument(
        "--territories",
        default=None,
        help="JSON file of territory rows (overrides the configured repository)",
    )

    parser.add_argument("--owner", default="cli", help="Claimant user id (default: cli)")

    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist the territory if the claim is valid",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode - only show warnings and errors",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and exit",
    )

    args = parser.parse_args(argv)
    if not args.validate and not args.track:
        parser.error("a track file is required unless --validate is given")
    return args


def read_track(path: str | Path) -> list[RawFix]:
    """
    Read a recorded track CSV into RawFix samples.

    Rows with missing or non-numeric fields are skipped with a warning.
    """
    fixes = []
    with open(path, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            try:
                speed = row.get("speed")
                fixes.append(
                    RawFix(
                        latitude=float(row["latitude"]),
                        longitude=float(row["longitude"]),
                        accuracy_m=float(row["horizontalAccuracy"]),
                        timestamp=float(row["geoTime"]) / 1000.0,
                        speed_mps=float(speed) if speed not in (None, "") else -1.0,
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping track line {line_no}: {e}")
    logger.info(f"Read {len(fixes)} fixes from {path}")
    return fixes


def replay_track(controller: ClaimController, fixes: list[RawFix]) -> SessionStatus:
    """
    Feed fixes through the controller, checking proximity every
    check_interval_s of track time. Stops at closure or abort.
    """
    if not fixes:
        logger.error("Track is empty")
        return controller.current_status()

    first = fixes[0]
    check = controller.start_tracking(GeoPoint(first.latitude, first.longitude))
    if check.blocked:
        return controller.current_status()

    interval = controller.config.proximity.check_interval_s
    last_check_at = first.timestamp

    for fix in fixes:
        controller.ingest_fix(fix)
        if controller.current_status() != SessionStatus.TRACKING:
            break
        if fix.timestamp - last_check_at >= interval:
            controller.run_collision_check()
            last_check_at = fix.timestamp
            if controller.current_status() != SessionStatus.TRACKING:
                break

    if controller.current_status() == SessionStatus.TRACKING:
        controller.run_collision_check()
    return controller.current_status()


def print_replay_summary(controller: ClaimController) -> None:
    """Print the outcome of a replay."""
    session = controller.session
    print()
    print("Claim Replay")
    print("=" * 60)
    print(f"  Status:    {session.status.value}")
    print(f"  Points:    {len(session.path)}")
    print(f"  Walked:    {session.traversed_m:.0f} m")

    collision = controller.last_collision_result()
    if collision is not None and collision.level != WarningLevel.SAFE:
        print(f"  Proximity: {collision.level.name} {collision.message}")

    if session.status == SessionStatus.ABORTED:
        print(f"  Aborted:   {session.abort_reason} {session.abort_message}".rstrip())

    validation = controller.last_validation()
    if validation is not None:
        if validation.valid:
            print(f"  Area:      {validation.area_m2:.0f} m² ({validation.point_count} points, {validation.winding})")
        else:
            print(f"  Invalid:   {validation.message}")
    print()


def build_repository(config: EngineConfig, territories_path: str | None) -> TerritoryRepository:
    if territories_path:
        return JsonFileTerritoryRepository(territories_path)
    return create_repository(config.repository)


def run_validate(config_path: str | None) -> int:
    """Run validation mode."""
    try:
        raw = read_config_file(config_path) if config_path else {}
    except ConfigValidationError as e:
        print(f"Error: {e}")
        return EXIT_ERROR
    report = validate_config_full(load_config_with_env(raw))
    print_validation_result(report)
    return EXIT_OK if report.valid else EXIT_ERROR


def run_replay(args: argparse.Namespace) -> int:
    """Run replay mode."""
    try:
        config = load_config(args.config)
    except ConfigValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_ERROR

    if not args.quiet:
        logging.root.setLevel(config.logging.level)

    events = CallbackQueueAdapter(lambda event: logger.info(get_event_summary(event)))
    controller = ClaimController(
        config,
        build_repository(config, args.territories),
        owner_id=args.owner,
        events=events,
        periodic_checks=False,
    )

    try:
        fixes = read_track(args.track)
    except OSError as e:
        logger.error(f"Cannot read track: {e}")
        return EXIT_ERROR

    try:
        status = replay_track(controller, fixes)
    except RepositoryError as e:
        logger.error(f"Territory repository failed: {e}")
        return EXIT_ERROR

    print_replay_summary(controller)

    if status != SessionStatus.CLOSED:
        controller.discard()
        return EXIT_REJECTED

    validation = controller.last_validation()
    if validation is None or not validation.valid:
        controller.discard()
        return EXIT_REJECTED

    if not args.save:
        controller.discard()
        return EXIT_OK

    try:
        territory = controller.confirm_claim()
    except ClaimRejectedError as e:
        print(f"Claim rejected: {e}")
        controller.discard()
        return EXIT_REJECTED
    except RepositoryError as e:
        logger.error(f"Saving territory failed: {e}")
        controller.discard()
        return EXIT_ERROR

    print(f"Saved territory {territory.id} ({territory.formatted_area})")
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(quiet=args.quiet or args.validate)

    if args.validate:
        sys.exit(run_validate(args.config))

    sys.exit(run_replay(args))
