import json
import tempfile
import unittest
from pathlib import Path

from pitch_coach.core.config import DEFAULT_CONFIGS, ConfigManager


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults_written_on_first_use(self):
        manager = ConfigManager(str(self.config_dir))
        for section in DEFAULT_CONFIGS:
            self.assertTrue((self.config_dir / f"{section}.json").exists())
        self.assertEqual(manager.get_config("pitch_detection")["threshold"], 0.2)
        self.assertEqual(manager.get_config("aggregator")["range_min_samples"], 5)
        self.assertEqual(manager.get_config("timing")["analysis_seconds"], 2.0)

    def test_missing_keys_merged_from_defaults(self):
        with open(self.config_dir / "timing.json", "w") as f:
            json.dump({"analysis_seconds": 4.0}, f)
        manager = ConfigManager(str(self.config_dir))
        timing = manager.get_config("timing")
        self.assertEqual(timing["analysis_seconds"], 4.0)
        self.assertEqual(timing["pre_listen_seconds"], 1.5)

    def test_corrupt_file_falls_back(self):
        (self.config_dir / "aggregator.json").write_text("{not json")
        manager = ConfigManager(str(self.config_dir))
        self.assertEqual(manager.get_config("aggregator"), DEFAULT_CONFIGS["aggregator"])

        (self.config_dir / "timing.json").write_text("[1, 2]")
        manager = ConfigManager(str(self.config_dir))
        self.assertEqual(manager.get_config("timing"), DEFAULT_CONFIGS["timing"])

    def test_update_and_reset(self):
        manager = ConfigManager(str(self.config_dir))
        self.assertTrue(manager.update_config("aggregator", {"in_tune_cents": 15.0}))
        reloaded = ConfigManager(str(self.config_dir))
        self.assertEqual(reloaded.get_config("aggregator")["in_tune_cents"], 15.0)

        self.assertTrue(reloaded.reset_config("aggregator"))
        self.assertEqual(reloaded.get_config("aggregator")["in_tune_cents"], 10.0)
        self.assertFalse(reloaded.update_config("nope", {}))
        self.assertFalse(reloaded.reset_config("nope"))

    def test_get_config_returns_copy(self):
        manager = ConfigManager(str(self.config_dir))
        manager.get_config("timing")["analysis_seconds"] = 99.0
        self.assertEqual(manager.get_config("timing")["analysis_seconds"], 2.0)

    def test_unknown_section(self):
        manager = ConfigManager(str(self.config_dir))
        with self.assertRaises(ValueError):
            manager.get_config("ui")

    def test_defaults_not_shared_between_managers(self):
        first = ConfigManager(str(self.config_dir))
        first.update_config("timing", {"analysis_seconds": 3.0})
        self.assertEqual(DEFAULT_CONFIGS["timing"]["analysis_seconds"], 2.0)


if __name__ == "__main__":
    unittest.main()
