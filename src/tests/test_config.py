"""
===============================================================================
ORBITLAB - Configuration Test Suite
===============================================================================
Tests for YAML configuration loading: defaults, deep-merge of partial
files, the ORBITLAB_CONFIG override, the shipped config file and the
photometric catalog lookup built on top of it.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import copy
import math
from datetime import datetime, timedelta, timezone

import pytest
import yaml

from orbitlab.core.config import (
    CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH, DEFAULTS, load_config, section,
)
from orbitlab.core.exceptions import InvalidParameterError
from orbitlab.dynamics.orbital_elements import OrbitalElements
from orbitlab.guidance.transfer_planner import launch_windows
from orbitlab.observation.catalog import SatelliteProfile, get_profile
from orbitlab.observation.pass_predictor import ObserverLocation, predict_passes

EPOCH = datetime(2024, 3, 20, tzinfo=timezone.utc)


@pytest.fixture
def partial_config(tmp_path):
    path = tmp_path / 'partial.yaml'
    path.write_text(yaml.safe_dump({
        'passes': {'sample_step_s': 30.0},
        'satellites': {'12345': {'name': 'Test Sat', 'reference_magnitude': 1.5,
                                 'reference_range_m': 500000.0}},
    }))
    return path


class TestLoadConfig:

    def test_partial_file_is_merged(self, partial_config):
        config = load_config(partial_config)
        assert config['passes']['sample_step_s'] == 30.0
        assert config['passes']['min_elevation_deg'] == DEFAULTS['passes']['min_elevation_deg']
        assert config['launch'] == DEFAULTS['launch']
        assert 'default' in config['satellites']
        assert '12345' in config['satellites']

    def test_defaults_not_mutated(self, partial_config):
        load_config(partial_config)['passes']['check_every'] = 1
        assert DEFAULTS['passes']['check_every'] == 1440

    def test_missing_explicit_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'nope.yaml')

    def test_environment_override(self, partial_config, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(partial_config))
        assert load_config()['passes']['sample_step_s'] == 30.0

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_shipped_config(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        if not DEFAULT_CONFIG_PATH.exists():
            pytest.skip("repository config not present")
        config = load_config()
        assert config['satellites']['25544']['name'].startswith('ISS')
        assert config['passes']['sample_step_s'] == 60.0

    def test_section_falls_back_to_defaults(self):
        assert section({}, 'launch') == DEFAULTS['launch']


class TestCatalog:

    def test_known_profile(self, partial_config):
        profile = get_profile(12345, load_config(partial_config))
        assert profile == SatelliteProfile('12345', 'Test Sat', 1.5, 500000.0)
        assert profile.magnitude_at(5.0e6) == pytest.approx(1.5 + 5.0)

    def test_unknown_profile_falls_back(self, partial_config):
        profile = get_profile('424242', load_config(partial_config))
        assert profile.satellite_id == '424242'
        assert profile.reference_magnitude == DEFAULTS['satellites']['default']['reference_magnitude']

    def test_invalid_reference_range(self):
        with pytest.raises(InvalidParameterError):
            SatelliteProfile('1', 'bad', 1.0, 0.0)


class TestPartialSections:
    """Caller-built config dicts may omit keys; defaults fill the gaps."""

    def test_section_merges_over_defaults(self):
        passes = section({'passes': {'sample_step_s': 30.0}}, 'passes')
        assert passes['sample_step_s'] == 30.0
        assert passes['min_elevation_deg'] == DEFAULTS['passes']['min_elevation_deg']
        assert passes['check_every'] == DEFAULTS['passes']['check_every']

    def test_section_does_not_alias_defaults(self):
        section({}, 'passes')['check_every'] = 1
        assert DEFAULTS['passes']['check_every'] == 1440

    def test_predict_passes_with_partial_passes_section(self):
        elements = OrbitalElements(6.9e6, 0.001, math.radians(97.5), 0.0, 0.0, 0.0, EPOCH)
        passes = predict_passes(elements, ObserverLocation(0.0, 0.0, 0.0), EPOCH, 0.1,
                                config={'passes': {'sample_step_s': 30.0}})
        assert isinstance(passes, list)

    def test_launch_windows_with_partial_launch_section(self):
        windows = launch_windows('mars', EPOCH, 1,
                                 {'launch': {'window_half_width_days': 3.0}})
        w = windows[0]
        assert w.optimal_date - w.open_date == timedelta(days=3)
        reference = launch_windows('mars', EPOCH, 1, copy.deepcopy(DEFAULTS))[0]
        assert w.departure_delta_v == reference.departure_delta_v

    def test_catalog_without_default_entry(self):
        config = {'satellites': {'777': {'reference_magnitude': 2.0}}}
        profile = get_profile('777', config)
        assert profile.name == '777'
        assert profile.reference_magnitude == 2.0
        assert profile.reference_range == DEFAULTS['satellites']['default']['reference_range_m']
        fallback = get_profile('888', config)
        assert fallback.reference_magnitude == DEFAULTS['satellites']['default']['reference_magnitude']
