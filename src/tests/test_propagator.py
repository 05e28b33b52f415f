"""
===============================================================================
ORBITLAB - Trajectory Propagator Test Suite
===============================================================================
Tests for velocity-Verlet integration (step bookkeeping, energy behaviour,
agreement with the analytic Kepler solution) and for the vectorized
analytic propagator.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from numpy.testing import assert_allclose

from orbitlab.core.bodies import EARTH, MOON
from orbitlab.core.exceptions import InvalidParameterError
from orbitlab.core.vectors import Vector3
from orbitlab.dynamics.orbital_elements import (
    OrbitalElements, StateVector, elements_to_state,
)
from orbitlab.dynamics.propagator import (
    Attractor, gravitational_acceleration, propagate, propagate_kepler,
)

MU = EARTH.mu
EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def leo_state():
    r = EARTH.radius + 400e3
    return StateVector(Vector3(r, 0.0, 0.0), Vector3(0.0, math.sqrt(MU / r), 0.0), EPOCH)


@pytest.fixture
def eccentric_elements():
    return OrbitalElements(1.0e7, 0.2, 0.6, 1.1, 0.4, 0.0, EPOCH)


# =============================================================================
# Test: Verlet step bookkeeping
# =============================================================================

class TestVerletSteps:

    def test_step_count_and_endpoint(self, leo_state):
        states = propagate(leo_state, 1000.0, 30.0, [EARTH])
        assert len(states) == math.ceil(1000.0 / 30.0) + 1
        assert states[0] is leo_state
        assert states[-1].epoch == EPOCH + timedelta(seconds=1000.0)

    def test_exact_multiple(self, leo_state):
        states = propagate(leo_state, 600.0, 60.0, [EARTH])
        assert len(states) == 11
        epochs = [s.epoch for s in states]
        assert epochs == sorted(epochs)

    @pytest.mark.parametrize("duration, step", [(0.0, 10.0), (-5.0, 10.0),
                                                (100.0, 0.0), (100.0, -1.0)])
    def test_invalid_arguments(self, leo_state, duration, step):
        with pytest.raises(InvalidParameterError):
            propagate(leo_state, duration, step, [EARTH])

    def test_no_attractors_is_straight_line(self, leo_state):
        states = propagate(leo_state, 100.0, 10.0, [])
        expected = leo_state.position + leo_state.velocity * 100.0
        assert_allclose(states[-1].position.to_array(), expected.to_array(), rtol=1e-12)


# =============================================================================
# Test: Verlet accuracy
# =============================================================================

class TestVerletAccuracy:

    def test_circular_orbit_radius_conserved(self, leo_state):
        period = 2.0 * math.pi * math.sqrt(leo_state.radius ** 3 / MU)
        states = propagate(leo_state, period, 10.0, [EARTH])
        radii = np.array([s.radius for s in states])
        assert_allclose(radii, leo_state.radius, rtol=1e-4)
        assert_allclose(states[-1].position.to_array(), leo_state.position.to_array(),
                        atol=2e-3 * leo_state.radius)

    def test_energy_bounded(self, eccentric_elements):
        start = elements_to_state(eccentric_elements, MU)
        period = eccentric_elements.period(MU)
        states = propagate(start, 3.0 * period, 5.0, [EARTH])
        energy = np.array([s.specific_energy(MU) for s in states])
        drift = np.abs(energy - energy[0]) / abs(energy[0])
        assert drift.max() < 1e-4

    def test_matches_kepler_solution(self, eccentric_elements):
        start = elements_to_state(eccentric_elements, MU)
        states = propagate(start, 3600.0, 2.0, [EARTH])
        pos, vel = propagate_kepler(eccentric_elements, MU, [3600.0])
        assert_allclose(states[-1].position.to_array(), pos[0], rtol=0.0, atol=50.0)
        assert_allclose(states[-1].velocity.to_array(), vel[0], rtol=0.0, atol=0.05)

    def test_offset_attractor(self):
        # Same orbit shifted by a constant offset around a displaced Earth.
        offset = Vector3(1.0e8, -2.0e7, 3.0e6)
        r = 7.0e6
        rel = StateVector(Vector3(r, 0, 0), Vector3(0, math.sqrt(MU / r), 0), EPOCH)
        shifted = StateVector(rel.position + offset, rel.velocity, EPOCH)
        a = propagate(rel, 500.0, 10.0, [EARTH])
        b = propagate(shifted, 500.0, 10.0, [Attractor(EARTH, offset)])
        assert_allclose((b[-1].position - offset).to_array(),
                        a[-1].position.to_array(), rtol=0.0, atol=1e-3)

    def test_accelerations_superpose(self):
        p = Vector3(4.0e8, 1.0e7, 0.0)
        moon_at = Attractor(MOON, Vector3(3.844e8, 0.0, 0.0))
        total = gravitational_acceleration(p, [Attractor(EARTH), moon_at])
        earth_only = gravitational_acceleration(p, [Attractor(EARTH)])
        moon_only = gravitational_acceleration(p, [moon_at])
        assert_allclose(total.to_array(), (earth_only + moon_only).to_array(), rtol=1e-14)

    def test_invalid_attractor_type(self, leo_state):
        with pytest.raises(InvalidParameterError):
            propagate(leo_state, 10.0, 1.0, ["Earth"])


# =============================================================================
# Test: analytic propagation
# =============================================================================

class TestKeplerPropagation:

    def test_zero_offset_matches_elements_to_state(self, eccentric_elements):
        pos, vel = propagate_kepler(eccentric_elements, MU, [0.0])
        state = elements_to_state(eccentric_elements, MU)
        assert_allclose(pos[0], state.position.to_array(), rtol=1e-12)
        assert_allclose(vel[0], state.velocity.to_array(), rtol=1e-12)

    def test_periodicity(self, eccentric_elements):
        period = eccentric_elements.period(MU)
        pos, _ = propagate_kepler(eccentric_elements, MU, [0.0, period, -period])
        assert_allclose(pos[1], pos[0], rtol=0.0, atol=1e-3)
        assert_allclose(pos[2], pos[0], rtol=0.0, atol=1e-3)

    def test_batch_shape_and_energy(self, eccentric_elements):
        offsets = np.linspace(0.0, 2.0e4, 1000)
        pos, vel = propagate_kepler(eccentric_elements, MU, offsets)
        assert pos.shape == (1000, 3)
        assert vel.shape == (1000, 3)
        r = np.linalg.norm(pos, axis=1)
        v = np.linalg.norm(vel, axis=1)
        energy = 0.5 * v ** 2 - MU / r
        assert_allclose(energy, -MU / (2.0 * eccentric_elements.semi_major_axis), rtol=1e-9)
