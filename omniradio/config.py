"""Configuration management for OmniRadio."""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict


DEFAULT_CONFIG = {
    "directory": {
        "base_url": "https://de1.api.radio-browser.info/json",
        "timeout": 10,
        "user_agent": "omniradio/0.1",
        "list_limit": 50,  # rows shown per station table
    },
    "player": {
        "volume": 80,
        "ready_timeout": 15,  # seconds before a silent stream counts as failed
        "cache_secs": 10,
        "audio_output": "auto",  # mpv audio device name
    },
    "library": {
        "recents_limit": 100,
    },
    "general": {
        "log_level": "INFO",
    },
}


def get_config_dir() -> Path:
    """Get config directory, creating if needed."""
    override = os.environ.get("OMNIRADIO_CONFIG_DIR")
    config_dir = Path(override) if override else Path.home() / ".config" / "omniradio"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get path to config file."""
    return get_config_dir() / "config.json"


def load_config() -> Dict[str, Any]:
    """Load config from file, creating default if needed."""
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config = json.load(f)
            # Merge with defaults
            merged = copy.deepcopy(DEFAULT_CONFIG)
            for key, value in config.items():
                if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                    merged[key].update(value)
                else:
                    merged[key] = value
            return merged
        except (OSError, ValueError):
            pass

    # Create default config
    save_config(DEFAULT_CONFIG)
    return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any]) -> None:
    """Save config to file."""
    config_path = get_config_path()
    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)


def update_config(section: str, key: str, value: Any) -> None:
    """Update a config value."""
    config = load_config()
    if section not in config:
        config[section] = {}
    config[section][key] = value
    save_config(config)
