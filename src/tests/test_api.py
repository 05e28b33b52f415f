"""
===============================================================================
ORBITLAB - Display Boundary and CLI Test Suite
===============================================================================
Tests for the km / degree conversions in orbitlab.api, the pandas tables
it produces, and the ``orbitlab`` command line (output and exit codes).
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import copy
import math
from datetime import datetime, timezone

import pandas as pd
import pytest
from numpy.testing import assert_allclose

from orbitlab import api
from orbitlab.core.bodies import EARTH
from orbitlab.core.config import DEFAULTS
from orbitlab.core.exceptions import InvalidOrbitError
from orbitlab.guidance import transfer_planner
from orbitlab.main import main

START = datetime(2024, 3, 20, tzinfo=timezone.utc)


@pytest.fixture
def config():
    return copy.deepcopy(DEFAULTS)


class TestConversions:

    def test_hohmann_in_km(self):
        t = api.hohmann_transfer(6578.0, 42164.0, 'Earth')
        ref = transfer_planner.hohmann_transfer(6578e3, 42164e3, EARTH)
        assert t == ref

    def test_state_to_elements_from_sequences(self):
        r = 7.0e6
        elements = api.state_to_elements([r, 0.0, 0.0], (0.0, math.sqrt(EARTH.mu / r), 0.0),
                                         epoch=START)
        assert elements.circular_orbit and elements.equatorial_orbit
        state = api.elements_to_state(elements)
        assert_allclose(state.position.to_array(), [r, 0.0, 0.0], atol=1e-3)

    def test_elements_from_degrees(self):
        e = api.elements_from_degrees(6795.0, 0.001, 51.6, -30.0, 400.0, 90.0, START)
        assert e.semi_major_axis == 6.795e6
        assert_allclose(math.degrees(e.inclination), 51.6)
        assert_allclose(math.degrees(e.raan), 330.0)
        assert_allclose(math.degrees(e.argument_of_periapsis), 40.0)

    def test_predict_passes_builds_observer(self, config):
        elements = api.elements_from_degrees(6795.0, 0.0005, 51.6, 10.0, 0.0, 0.0, START)
        passes = api.predict_passes(elements, 51.48, 0.0, 45.0, START, 0.5, config=config)
        assert all(p.max_elevation >= 10.0 for p in passes)


class TestTables:

    def test_passes_table_columns(self, config):
        elements = api.elements_from_degrees(6795.0, 0.0005, 51.6, 200.0, 0.0, 0.0, START)
        passes = api.predict_passes(elements, 40.0, -74.0, 10.0, START, 1.0, config=config)
        df = api.passes_table(passes)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == len(passes)
        if passes:
            assert {'Rise', 'Set', 'Max El [deg]', 'Brightness', 'Range [km]'} <= set(df.columns)
            assert df['Range [km]'].iloc[0] == round(passes[0].culmination_range / 1e3, 1)

    def test_empty_passes_table(self):
        assert api.passes_table([]).empty

    def test_windows_table(self, config):
        windows = api.launch_windows('mars', START, 2, config)
        df = api.windows_table(windows)
        assert list(df['Target']) == ['Mars', 'Mars']
        assert df['Transfer [days]'].iloc[0] == pytest.approx(259.0, abs=2.0)

    def test_transfer_table(self):
        hoh = api.hohmann_transfer(6578.0, 42164.0)
        assert len(api.transfer_table(hoh)) == 3
        bie = api.bi_elliptic_transfer(6578.0, 42164.0, 100000.0)
        df = api.transfer_table(bie)
        assert len(df) == 4
        assert df['delta-V [m/s]'].iloc[-1] == round(bie.total_delta_v, 2)


class TestCommandLine:

    def test_hohmann(self, capsys):
        assert main(['hohmann', '6578', '42164']) == 0
        out = capsys.readouterr().out
        assert 'Transfer time' in out
        assert 'total' in out

    def test_windows(self, capsys):
        assert main(['windows', 'mars', '--count', '2', '--start', '2026-01-01']) == 0
        assert 'Mars' in capsys.readouterr().out

    def test_flyby(self, capsys):
        assert main(['flyby', 'jupiter', '5640', '--altitude', '1000000']) == 0
        assert 'Turn angle' in capsys.readouterr().out

    def test_elements(self, capsys):
        assert main(['elements', '7000000', '0', '0', '0', '7546', '0']) == 0
        assert 'a [km]' in capsys.readouterr().out

    def test_passes(self, capsys):
        code = main(['passes', '--lat', '25.76', '--lon', '-80.19', '--a', '6795',
                     '--inc', '51.6', '--norad', '25544', '--days', '0.5',
                     '--start', '2024-03-20T00:00:00'])
        assert code == 0
        assert capsys.readouterr().out.strip()

    def test_invalid_input_exits_with_status_2(self, caplog):
        assert main(['hohmann', '1000', '42164']) == 2
        assert 'InvalidOrbitError' in caplog.text

    def test_engine_error_type(self):
        with pytest.raises(InvalidOrbitError):
            api.hohmann_transfer(1000.0, 42164.0)
