"""Configuration loading.

Settings come from JSON files merged in order:
1. ~/.config/gpx-trainer/gpx-trainer.json (global, loaded first)
2. ./gpx-trainer.json (local, overrides global)

Example::

    {
        "chainrings": [50, 34],
        "cassette": [11, 12, 13, 14, 15, 17, 19, 21, 24, 28],
        "wheel_circumference": 2.1,
        "rider_weight": 75,
        "resistance_scaling": 0.2,
        "gradient_smoothing": 0.85
    }
"""

import json
import logging
from pathlib import Path

from gpx_trainer.models import BikeParams
from gpx_trainer.physics import resolve_scaling, resolve_smoothing

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "gpx-trainer" / "gpx-trainer.json"
LOCAL_CONFIG_PATH = Path("gpx-trainer.json")

DEFAULTS = {
    "chainrings": [50, 34],
    "cassette": [11, 12, 13, 14, 15, 17, 19, 21, 24, 28],
    "wheel_circumference": 2.1,
    "rider_weight": 75.0,
    "resistance_scaling": 0.2,
    "gradient_smoothing": 0.85,
    "erg_target_power": 150.0,
    "climb_gradient_threshold": 3.0,
    "climb_elevation_threshold": 30.0,
    "climb_lookahead": 500.0,
    "data_dir": None,
}


def load_config(paths: list[Path] | None = None) -> dict:
    """Load configuration from config files.

    Returns:
        Dict with merged config values, empty dict if no files exist.
    """
    if paths is None:
        paths = [CONFIG_PATH, LOCAL_CONFIG_PATH]
    config = {}
    for config_path in paths:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Skipping unreadable config %s: %s", config_path, e)
                continue
    return config


def get_setting(config: dict, key: str):
    """Return a config value, falling back to the built-in default."""
    value = config.get(key)
    return DEFAULTS[key] if value is None else value


def bike_params_from_config(config: dict) -> BikeParams:
    """Build bike parameters from a config dict.

    Unset or zero scaling/smoothing factors fall back to their defaults.

    Raises:
        ValueError: If the chainring or cassette list is empty or invalid.
    """
    chainrings = [int(t) for t in get_setting(config, "chainrings")]
    cassette = [int(t) for t in get_setting(config, "cassette")]
    if not chainrings or any(t <= 0 for t in chainrings):
        raise ValueError(f"Invalid chainrings: {chainrings}")
    if not cassette or any(t <= 0 for t in cassette):
        raise ValueError(f"Invalid cassette: {cassette}")

    return BikeParams(
        chainrings=chainrings,
        cassette=cassette,
        wheel_circumference=float(get_setting(config, "wheel_circumference")),
        rider_weight=float(get_setting(config, "rider_weight")),
        resistance_scaling=resolve_scaling(config.get("resistance_scaling")),
        gradient_smoothing=resolve_smoothing(config.get("gradient_smoothing")),
    )
