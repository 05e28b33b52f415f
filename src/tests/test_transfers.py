"""
===============================================================================
ORBITLAB - Transfer Planner Test Suite
===============================================================================
Tests for Hohmann and bi-elliptic transfers (LEO -> GEO reference values,
vis-viva consistency, crossover ratio), interplanetary launch windows
(synodic spacing, C3 and flight time estimates, config overrides) and
gravity assists (turn angle, v-infinity conservation, exit velocity).
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import copy
import math
from datetime import datetime, timedelta, timezone

import pytest
from numpy.testing import assert_allclose

from orbitlab.core.bodies import EARTH, JUPITER, MARS
from orbitlab.core.config import DEFAULTS
from orbitlab.core.exceptions import InvalidOrbitError, InvalidParameterError
from orbitlab.core.vectors import Vector3, angle_between, magnitude
from orbitlab.dynamics.orbital_elements import vis_viva
from orbitlab.guidance.transfer_planner import (
    GravityAssist, bi_elliptic_transfer, escape_delta_v, flyby_exit_velocity,
    gravity_assist, hohmann_transfer, launch_windows, synodic_period,
)

START = datetime(2026, 1, 1, tzinfo=timezone.utc)
R_LEO = 6578e3
R_GEO = 42164e3


@pytest.fixture
def config():
    return copy.deepcopy(DEFAULTS)


# =============================================================================
# Test: Hohmann transfer
# =============================================================================

class TestHohmannTransfer:

    def test_leo_to_geo(self):
        """LEO (6578 km) -> GEO: about 3.94 km/s and 5.25 h."""
        t = hohmann_transfer(R_LEO, R_GEO, EARTH)
        assert 3900.0 <= t.total_delta_v <= 4000.0
        assert_allclose(t.transfer_time / 3600.0, 5.25, rtol=0.05)
        assert t.delta_v1 > 0 and t.delta_v2 > 0
        assert t.central_body is EARTH

    def test_burns_consistent_with_vis_viva(self):
        t = hohmann_transfer(R_LEO, R_GEO, 'earth')
        mu = EARTH.mu
        a = t.transfer_semi_major_axis
        assert_allclose(t.delta_v1, vis_viva(R_LEO, a, mu) - math.sqrt(mu / R_LEO), rtol=1e-12)
        assert_allclose(t.delta_v2, math.sqrt(mu / R_GEO) - vis_viva(R_GEO, a, mu), rtol=1e-12)
        assert_allclose(t.total_delta_v, abs(t.delta_v1) + abs(t.delta_v2))

    def test_lowering_transfer_is_symmetric(self):
        up = hohmann_transfer(R_LEO, R_GEO)
        down = hohmann_transfer(R_GEO, R_LEO)
        assert down.delta_v1 < 0 and down.delta_v2 < 0
        assert_allclose(down.total_delta_v, up.total_delta_v, rtol=1e-12)
        assert_allclose(down.transfer_time, up.transfer_time, rtol=1e-12)

    def test_same_radius_costs_nothing(self):
        t = hohmann_transfer(R_LEO, R_LEO)
        assert_allclose(t.total_delta_v, 0.0, atol=1e-9)

    @pytest.mark.parametrize("r1, r2", [(6000e3, R_GEO), (R_LEO, EARTH.radius)])
    def test_radius_inside_body(self, r1, r2):
        with pytest.raises(InvalidOrbitError):
            hohmann_transfer(r1, r2, EARTH)

    def test_other_central_body(self):
        t = hohmann_transfer(MARS.radius + 300e3, 20428e3, 'Mars')
        assert t.central_body is MARS
        assert t.total_delta_v > 0

    def test_unknown_body(self):
        with pytest.raises(InvalidParameterError):
            hohmann_transfer(R_LEO, R_GEO, 'Vulcan')


# =============================================================================
# Test: bi-elliptic transfer
# =============================================================================

class TestBiEllipticTransfer:

    def test_more_expensive_at_small_ratio(self):
        hoh = hohmann_transfer(R_LEO, R_GEO)
        bie = bi_elliptic_transfer(R_LEO, R_GEO, 2.0 * R_GEO)
        assert bie.total_delta_v > hoh.total_delta_v
        assert bie.transfer_time > hoh.transfer_time

    def test_cheaper_at_large_ratio(self):
        r2 = 20.0 * R_LEO
        hoh = hohmann_transfer(R_LEO, r2)
        bie = bi_elliptic_transfer(R_LEO, r2, 60.0 * R_LEO)
        assert bie.total_delta_v < hoh.total_delta_v

    def test_reduces_to_hohmann_when_intermediate_equals_target(self):
        hoh = hohmann_transfer(R_LEO, R_GEO)
        bie = bi_elliptic_transfer(R_LEO, R_GEO, R_GEO)
        assert_allclose(bie.delta_v3, 0.0, atol=1e-9)
        assert_allclose(bie.total_delta_v, hoh.total_delta_v, rtol=1e-12)

    def test_intermediate_too_small(self):
        with pytest.raises(InvalidOrbitError):
            bi_elliptic_transfer(R_LEO, R_GEO, 0.5 * R_GEO)


# =============================================================================
# Test: launch windows
# =============================================================================

class TestLaunchWindows:

    def test_mars_windows(self, config):
        windows = launch_windows('Mars', START, 3, config)
        assert len(windows) == 3
        assert windows[0].optimal_date == START
        for w in windows:
            assert w.open_date == w.optimal_date - timedelta(days=7)
            assert w.close_date == w.optimal_date + timedelta(days=7)
            assert w.target_body is MARS
            assert w.arrival_date > w.optimal_date
            assert -math.pi < w.phase_angle <= math.pi

        # About 259 days, C3 about 8.7 km^2/s^2, dV from LEO about 3.6 km/s
        assert_allclose(windows[0].transfer_duration_days, 259.0, atol=2.0)
        assert_allclose(windows[0].c3_km2_s2, 8.7, atol=0.5)
        assert 3400.0 < windows[0].departure_delta_v < 3800.0
        # Mars must lead Earth by ~44 deg at departure
        assert_allclose(math.degrees(windows[0].phase_angle), 44.0, atol=2.0)

    def test_spacing_is_synodic_period(self, config):
        windows = launch_windows(MARS, START, 4, config)
        spacing = [(b.optimal_date - a.optimal_date).total_seconds()
                   for a, b in zip(windows, windows[1:])]
        assert_allclose(spacing, synodic_period('mars'), rtol=1e-12)
        assert_allclose(synodic_period('mars') / 86400.0, 779.94)

    @pytest.mark.parametrize("target, days", [('venus', 146.0), ('jupiter', 997.0)])
    def test_transfer_durations(self, config, target, days):
        w = launch_windows(target, START, 1, config)[0]
        assert_allclose(w.transfer_duration_days, days, rtol=0.02)

    def test_inner_planet_v_infinity_positive(self, config):
        w = launch_windows('venus', START, 1, config)[0]
        assert w.v_infinity > 0
        assert_allclose(w.characteristic_energy, w.v_infinity ** 2)

    def test_deterministic(self, config):
        a = launch_windows('jupiter', START, 2, config)
        b = launch_windows('jupiter', START, 2, config)
        assert a == b

    @pytest.mark.parametrize("count", [0, -1])
    def test_invalid_count(self, config, count):
        with pytest.raises(InvalidParameterError):
            launch_windows('mars', START, count, config)

    @pytest.mark.parametrize("target", ['Earth', 'Sun', 'Moon'])
    def test_invalid_target(self, config, target):
        with pytest.raises(InvalidParameterError):
            launch_windows(target, START, 1, config)

    def test_config_overrides(self, config):
        config['launch']['window_half_width_days'] = 3.0
        config['launch']['parking_altitude_m'] = 400000.0
        w = launch_windows('mars', START, 1, config)[0]
        assert w.close_date - w.open_date == timedelta(days=6)
        default = launch_windows('mars', START, 1, copy.deepcopy(DEFAULTS))[0]
        assert w.departure_delta_v < default.departure_delta_v

    def test_escape_delta_v_zero_excess(self):
        r = EARTH.radius + 200e3
        expected = math.sqrt(2.0 * EARTH.mu / r) - math.sqrt(EARTH.mu / r)
        assert_allclose(escape_delta_v(0.0, r), expected, rtol=1e-12)


# =============================================================================
# Test: gravity assist
# =============================================================================

class TestGravityAssist:

    def test_jupiter_flyby(self):
        ga = gravity_assist('Jupiter', 5640.0, 200000e3)
        assert ga.body is JUPITER
        assert ga.incoming_speed == ga.outgoing_speed == 5640.0
        assert 0.0 < ga.turn_angle < math.pi
        assert_allclose(ga.delta_v, 2.0 * 5640.0 * math.sin(ga.turn_angle / 2.0))

    def test_turn_angle_formula(self):
        v_inf, h = 3000.0, 500e3
        ga = gravity_assist(MARS, v_inf, h)
        rp = MARS.radius + h
        expected = 2.0 * math.asin(1.0 / (1.0 + rp * v_inf ** 2 / MARS.mu))
        assert_allclose(ga.turn_angle, expected, rtol=1e-14)
        assert_allclose(ga.periapsis_speed, math.sqrt(v_inf ** 2 + 2.0 * MARS.mu / rp))

    def test_closer_flyby_turns_more(self):
        near = gravity_assist(EARTH, 4000.0, 300e3)
        far = gravity_assist(EARTH, 4000.0, 30000e3)
        assert near.turn_angle > far.turn_angle
        assert near.delta_v > far.delta_v

    def test_energy_conserved_in_exit_velocity(self):
        ga = gravity_assist(JUPITER, 6000.0, 1.0e6)
        v_in = Vector3(6000.0, 0.0, 0.0)
        v_out = flyby_exit_velocity(v_in, ga, Vector3(0.0, 0.0, 1.0))
        assert_allclose(magnitude(v_out), magnitude(v_in), rtol=1e-14)
        assert_allclose(angle_between(v_in, v_out), ga.turn_angle, rtol=1e-10)
        assert_allclose(magnitude(v_out - v_in), ga.delta_v, rtol=1e-10)

    def test_periapsis_below_surface(self):
        with pytest.raises(InvalidOrbitError):
            gravity_assist(MARS, 3000.0, 0.0)
        with pytest.raises(InvalidOrbitError):
            gravity_assist(MARS, 3000.0, -100.0)

    def test_non_positive_v_infinity(self):
        with pytest.raises(InvalidParameterError):
            gravity_assist(MARS, 0.0, 500e3)

    def test_unequal_speeds_rejected(self):
        with pytest.raises(InvalidParameterError):
            GravityAssist(MARS, 3000.0, 3001.0, 0.5, 100.0, 500e3, 5000.0)
