"""
Tests for configuration validation and loading.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from territory_engine.config import (
    EngineConfig,
    load_config,
    load_config_with_env,
    read_config_file,
    validate_config_full,
)
from territory_engine.exceptions import ConfigValidationError
from territory_engine.utils.constants import ENV_LOG_LEVEL, ENV_REPOSITORY_KEY, ENV_REPOSITORY_URL


class TestConfigValidation(unittest.TestCase):
    """Test configuration validation logic."""

    def test_defaults_are_valid(self):
        """Test an empty config validates with no warnings."""
        for raw in (None, {}):
            with self.subTest(raw=raw):
                report = validate_config_full(raw)
                self.assertTrue(report.valid)
                self.assertEqual(report.errors, [])
                self.assertEqual(report.warnings, [])
                self.assertIsInstance(report.config, EngineConfig)

    def test_partial_section_keeps_other_defaults(self):
        """Test overriding one field leaves the rest at their defaults."""
        report = validate_config_full({"proximity": {"caution_m": 150}})
        self.assertTrue(report.valid)
        self.assertEqual(report.config.proximity.caution_m, 150)
        self.assertEqual(report.config.proximity.warning_m, 50)

    def test_threshold_order_enforced(self):
        """Test danger must be below warning."""
        report = validate_config_full({"proximity": {"danger_m": 60, "warning_m": 50}})
        self.assertFalse(report.valid)
        self.assertTrue(any("proximity" in e for e in report.errors))

    def test_speed_warning_below_ceiling(self):
        """Test the advisory speed must be below the rejection speed."""
        report = validate_config_full({"filter": {"speed_warning_kmh": 40, "max_speed_kmh": 30}})
        self.assertFalse(report.valid)

    def test_unknown_key_rejected(self):
        """Test typos in section keys are errors."""
        report = validate_config_full({"closure": {"radius": 30}})
        self.assertFalse(report.valid)
        self.assertTrue(any(e.startswith("closure.radius") for e in report.errors))

    def test_min_points_floor(self):
        """Test closure needs at least four points."""
        report = validate_config_full({"closure": {"min_points": 3}})
        self.assertFalse(report.valid)

    def test_spike_ratio_above_one(self):
        """Test the outlier ratio must exceed 1."""
        self.assertFalse(validate_config_full({"validation": {"max_spike_ratio": 1.0}}).valid)
        report = validate_config_full({"validation": {"max_spike_ratio": 8}})
        self.assertTrue(report.valid)
        self.assertEqual(report.config.validation.max_spike_ratio, 8)

    def test_json_repository_needs_path(self):
        """Test repository targets are required per type."""
        self.assertFalse(validate_config_full({"repository": {"type": "json"}}).valid)
        self.assertFalse(validate_config_full({"repository": {"type": "rest"}}).valid)
        self.assertTrue(validate_config_full({"repository": {"type": "json", "path": "t.json"}}).valid)

    def test_non_mapping_rejected(self):
        """Test a YAML list at top level is reported, not raised."""
        report = validate_config_full(["not", "a", "mapping"])
        self.assertFalse(report.valid)
        self.assertIn("mapping", report.errors[0])

    def test_warnings_do_not_invalidate(self):
        """Test risky but legal settings produce warnings only."""
        report = validate_config_full(
            {
                "filter": {"max_accuracy_m": 50},
                "proximity": {"check_interval_s": 60},
            }
        )
        self.assertTrue(report.valid)
        self.assertEqual(len(report.warnings), 2)


class TestEnvOverrides(unittest.TestCase):
    """Test environment variable overrides."""

    def test_repository_url_implies_rest(self):
        """Test a URL from the environment selects the REST adapter."""
        env = {ENV_REPOSITORY_URL: "https://db.example.com", ENV_REPOSITORY_KEY: "secret"}
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_config_with_env({})

        self.assertEqual(config["repository"]["type"], "rest")
        self.assertEqual(config["repository"]["url"], "https://db.example.com")
        self.assertEqual(config["repository"]["api_key"], "secret")

    def test_explicit_type_kept(self):
        """Test an explicit repository type is not overridden."""
        with mock.patch.dict(os.environ, {ENV_REPOSITORY_URL: "https://x"}, clear=True):
            config = load_config_with_env({"repository": {"type": "memory"}})
        self.assertEqual(config["repository"]["type"], "memory")

    def test_log_level_uppercased(self):
        """Test the log level override is normalised."""
        with mock.patch.dict(os.environ, {ENV_LOG_LEVEL: "debug"}, clear=True):
            config = load_config()
        self.assertEqual(config.logging.level, "DEBUG")

    def test_no_env_no_change(self):
        """Test the config is untouched without environment variables."""
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config_with_env({"closure": {}}), {"closure": {}})


class TestLoadConfig(unittest.TestCase):
    """Test reading YAML files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.dir = Path(self.tmp.name)

    def write(self, name: str, text: str) -> Path:
        path = self.dir / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_yaml(self):
        """Test values from the file reach the parsed config."""
        path = self.write("config.yaml", "closure:\n  closure_radius_m: 40\n")
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config(path)
        self.assertEqual(config.closure.closure_radius_m, 40)

    def test_pointer_file(self):
        """Test `use:` redirects to another file relative to the pointer."""
        self.write("real.yaml", "validation:\n  min_area_m2: 250\n")
        pointer = self.write("config.yaml", "use: real.yaml\n")

        self.assertEqual(read_config_file(pointer), {"validation": {"min_area_m2": 250}})

    def test_empty_file_is_defaults(self):
        """Test an empty YAML file yields the defaults."""
        path = self.write("empty.yaml", "")
        self.assertEqual(read_config_file(path), {})

    def test_missing_file(self):
        """Test a missing file raises ConfigValidationError."""
        with self.assertRaises(ConfigValidationError):
            read_config_file(self.dir / "nope.yaml")

    def test_bad_yaml(self):
        """Test malformed YAML raises ConfigValidationError."""
        path = self.write("bad.yaml", "closure: [unclosed\n")
        with self.assertRaises(ConfigValidationError):
            read_config_file(path)

    def test_invalid_values_raise(self):
        """Test load_config raises with the validation errors."""
        path = self.write("config.yaml", "proximity:\n  danger_m: -1\n")
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigValidationError) as ctx:
                load_config(path)
        self.assertIn("proximity.danger_m", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
