"""
===============================================================================
ORBITLAB - Configuration Loading
===============================================================================
Tunable parameters (sampling cadence, elevation masks, parking orbit,
photometric catalog, worker count) are read from a YAML file and deep-merged
over the built-in defaults below, so a partial file only needs the keys it
changes.

Lookup order for the file:
    1. explicit *config_path* argument
    2. the ORBITLAB_CONFIG environment variable
    3. <repo>/config/orbitlab_config.yaml (if present)

With none of these available the defaults are used as-is.
===============================================================================
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from orbitlab.core.constants import (
    CIVIL_TWILIGHT_SUN_ELEVATION_DEG,
    DEFAULT_MIN_ELEVATION_DEG,
    DEFAULT_PARKING_ALTITUDE,
    DEFAULT_REFERENCE_MAGNITUDE,
    DEFAULT_REFERENCE_RANGE,
    DEFAULT_SAMPLE_STEP,
    DEFAULT_VISIBILITY_ELEVATION_DEG,
    DEFAULT_WINDOW_HALF_WIDTH_DAYS,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'ORBITLAB_CONFIG'
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / 'config' / 'orbitlab_config.yaml'

DEFAULTS: Dict[str, Any] = {
    'passes': {
        'sample_step_s': DEFAULT_SAMPLE_STEP,
        'min_elevation_deg': DEFAULT_MIN_ELEVATION_DEG,
        'visibility_elevation_deg': DEFAULT_VISIBILITY_ELEVATION_DEG,
        'twilight_sun_elevation_deg': CIVIL_TWILIGHT_SUN_ELEVATION_DEG,
        'check_every': 1440,
        'refine_events': True,
        'use_illumination': True,
    },
    'launch': {
        'parking_altitude_m': DEFAULT_PARKING_ALTITUDE,
        'window_half_width_days': DEFAULT_WINDOW_HALF_WIDTH_DAYS,
    },
    'satellites': {
        'default': {
            'name': 'Unknown',
            'reference_magnitude': DEFAULT_REFERENCE_MAGNITUDE,
            'reference_range_m': DEFAULT_REFERENCE_RANGE,
        },
    },
    'parallel': {
        'num_workers': None,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the orbitlab configuration.

    Args:
        config_path: Path to a YAML config. Defaults to $ORBITLAB_CONFIG or
            config/orbitlab_config.yaml at the repository root.

    Returns:
        Dictionary of configuration parameters (defaults merged with file).

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
    """
    explicit = config_path is not None or CONFIG_ENV_VAR in os.environ
    path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)

    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        logger.debug("No config file at %s, using built-in defaults", path)
        return copy.deepcopy(DEFAULTS)

    logger.debug("Loading configuration from: %s", path)
    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping at top level")
    return _deep_merge(DEFAULTS, loaded)


def section(config: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """
    Return one top-level section merged over its built-in defaults.

    Loads the default config when *config* is None.  Caller-built dicts may
    carry partial sections; missing keys fall back to DEFAULTS.
    """
    if config is None:
        config = load_config()
    return _deep_merge(DEFAULTS.get(name, {}), config.get(name) or {})
