"""Configuration management for Pitch Coach components."""

from typing import Dict, Any, Optional
import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass
class TimingSettings:
    """Durations of the timed protocol phases, in seconds."""

    pre_listen_seconds: float = 1.5  # Tone plays before listening starts
    analysis_seconds: float = 2.0  # Ear-training listening window
    range_test_seconds: float = 3.0  # Range-test capture window

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "pitch_detection": {
        "threshold": 0.2,
        "min_confidence": 0.85,
        "volume_scale": 7.0,
    },
    "aggregator": {
        "mode_share": 0.25,
        "ear_min_samples": 1,  # 6 restores the stricter "more than five samples" rule
        "range_min_samples": 5,
        "in_tune_cents": 10.0,
    },
    "timing": {
        "pre_listen_seconds": 1.5,
        "analysis_seconds": 2.0,
        "range_test_seconds": 3.0,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frames_per_buffer": 2048,
        "channels": 1,
    },
}


class ConfigManager:
    """Configuration manager for Pitch Coach components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/pitch_coach by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "pitch_coach")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        # Load existing configurations or create default ones
        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
                logger.info(f"Loaded configuration from {config_file}")
            except (OSError, ValueError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return default_config.copy()

            if not isinstance(config, dict):
                logger.error(f"Ignoring {config_file}: expected a JSON object")
                return default_config.copy()

            # Ensure all default keys are present
            for key, value in default_config.items():
                if key not in config:
                    config[key] = value

            return config
        else:
            # Create default configuration
            config = default_config.copy()
            self.save_config(name, config)
            return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dictionary

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get configuration by name.

        Args:
            name: Configuration name

        Returns:
            Configuration dictionary

        Raises:
            ValueError: If the configuration name is unknown
        """
        if name not in self.configs:
            raise ValueError(f"Unknown configuration: {name}")
        return self.configs[name].copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Args:
            name: Configuration name

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])
