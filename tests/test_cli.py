"""
Tests for the track replay CLI.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from territory_engine.cli import EXIT_OK, EXIT_REJECTED, parse_args, read_track, run_replay
from territory_engine.geometry import LocalProjection, haversine_m
from territory_engine.models import GeoPoint, Territory

ORIGIN = GeoPoint(31.2304, 121.4737)
PROJ = LocalProjection(ORIGIN)
HEADER = "geoTime,latitude,longitude,horizontalAccuracy,speed\n"


def square_rows(side: float = 100.0, step: float = 12.5) -> list[str]:
    """CSV rows walking a square counter-clockwise, one fix every 10 s."""
    n = int(side / step)
    xy = (
        [(i * step, 0.0) for i in range(n)]
        + [(side, i * step) for i in range(n)]
        + [(side - i * step, side) for i in range(n)]
        + [(0.0, side - i * step) for i in range(n)]
    )
    rows = []
    for i, (x, y) in enumerate(xy):
        p = PROJ.unproject(x, y)
        rows.append(f"{1_700_000_000_000 + i * 10_000},{p.latitude},{p.longitude},5,1.0\n")
    return rows


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.dir = Path(self.tmp.name)

        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

    def write_track(self, rows: list[str]) -> Path:
        path = self.dir / "track.csv"
        path.write_text(HEADER + "".join(rows), encoding="utf-8")
        return path


class TestReadTrack(CliTestCase):
    """Test CSV parsing."""

    def test_units_converted(self):
        """Test geoTime is milliseconds and a blank speed is unknown."""
        path = self.write_track(["1700000000500,31.23,121.47,4.5,\n"])
        fixes = read_track(path)

        self.assertEqual(len(fixes), 1)
        self.assertEqual(fixes[0].timestamp, 1_700_000_000.5)
        self.assertEqual(fixes[0].accuracy_m, 4.5)
        self.assertEqual(fixes[0].speed_mps, -1.0)

    def test_bad_rows_skipped(self):
        """Test non-numeric rows are skipped, not fatal."""
        path = self.write_track(["1700000000000,31.23,121.47,5,1\n", "oops,,,,\n"])
        self.assertEqual(len(read_track(path)), 1)


class TestParseArgs(CliTestCase):
    """Test argument handling."""

    def test_track_required_without_validate(self):
        """Test a replay needs a track file."""
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            parse_args([])
        self.assertTrue(parse_args(["--validate"]).validate)


class TestReplay(CliTestCase):
    """Test end-to-end replay."""

    def test_square_is_claimable_and_saved(self):
        """Test replaying a square walk with --save writes the territory."""
        track = self.write_track(square_rows())
        territories = self.dir / "territories.json"
        args = parse_args([str(track), "--territories", str(territories), "--save", "--owner", "alice", "-q"])

        with mock.patch("builtins.print"):
            self.assertEqual(run_replay(args), EXIT_OK)

        rows = json.loads(territories.read_text(encoding="utf-8"))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["user_id"], "alice")
        self.assertAlmostEqual(rows[0]["area"], 10_000, delta=150)

        # 8 fixes per side, closing at (0, 25): no fix was dropped by the filter
        self.assertEqual(rows[0]["point_count"], 31)
        saved = [GeoPoint.from_dict(p) for p in rows[0]["path"]]
        for corner in ((100, 0), (100, 100), (0, 100)):
            with self.subTest(corner=corner):
                nearest = min(haversine_m(PROJ.unproject(*corner), p) for p in saved)
                self.assertLess(nearest, 0.01)

    def test_start_inside_territory_rejected(self):
        """Test a walk starting inside a stored territory exits with the rejected code."""
        ring = tuple(PROJ.unproject(x, y) for x, y in ((-20, -20), (20, -20), (20, 20), (-20, 20)))
        territories = self.dir / "territories.json"
        territories.write_text(json.dumps([Territory("t-1", "bob", ring, 1600.0).to_record()]), encoding="utf-8")
        track = self.write_track(square_rows())
        args = parse_args([str(track), "--territories", str(territories), "-q"])

        with mock.patch("builtins.print"):
            self.assertEqual(run_replay(args), EXIT_REJECTED)

        self.assertEqual(len(json.loads(territories.read_text(encoding="utf-8"))), 1)


if __name__ == "__main__":
    unittest.main()
