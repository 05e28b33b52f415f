"""
===============================================================================
ORBITLAB - Trajectory Propagator
===============================================================================
Two ways of moving a spacecraft forward in time:

    propagate          Numerical, velocity-Verlet over any set of point-mass
                       attractors held at fixed positions.  Symplectic, so
                       orbital energy oscillates but does not drift.

    propagate_kepler   Analytic two-body motion of an element set at an
                       arbitrary array of time offsets.  One vectorized
                       Kepler solve per call; this is what the pass
                       predictor samples.

Velocity-Verlet (kick-drift-kick form):

    v_{n+1/2} = v_n + (dt/2) a(r_n)
    r_{n+1}   = r_n + dt v_{n+1/2}
    v_{n+1}   = v_{n+1/2} + (dt/2) a(r_{n+1})

Global error is O(dt^2); one acceleration evaluation per step.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Sequence, Tuple, Union

import numpy as np

from orbitlab.core.bodies import CelestialBody
from orbitlab.core.exceptions import InvalidParameterError
from orbitlab.core.frames import perifocal_to_eci_matrix
from orbitlab.core.vectors import Vector3, magnitude
from orbitlab.dynamics.orbital_elements import (
    OrbitalElements,
    StateVector,
    eccentric_to_true_anomaly,
    perifocal_state,
    solve_kepler,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attractor:
    """A point mass at a fixed inertial position."""
    body: CelestialBody
    position: Vector3 = Vector3.zero()

    @property
    def mu(self) -> float:
        return self.body.mu


AttractorLike = Union[Attractor, CelestialBody]


def _as_attractors(bodies: Sequence[AttractorLike]) -> List[Attractor]:
    attractors = []
    for b in bodies:
        if isinstance(b, Attractor):
            attractors.append(b)
        elif isinstance(b, CelestialBody):
            attractors.append(Attractor(b))
        else:
            raise InvalidParameterError(
                f"Attractor must be a CelestialBody or Attractor, got {type(b).__name__}"
            )
    return attractors


def gravitational_acceleration(position: Vector3,
                               attractors: Sequence[Attractor]) -> Vector3:
    """
    Sum of point-mass accelerations:

        a = sum_i  -mu_i (r - r_i) / |r - r_i|^3
    """
    total = Vector3.zero()
    for att in attractors:
        rel = position - att.position
        d = magnitude(rel)
        if d == 0.0:
            raise InvalidParameterError(
                f"Trajectory passes through the centre of {att.body.name}"
            )
        total = total + rel * (-att.mu / d ** 3)
    return total


def propagate(
    initial_state: StateVector,
    duration: float,
    timestep: float,
    bodies: Sequence[AttractorLike],
) -> List[StateVector]:
    """
    Integrate a trajectory with velocity-Verlet.

    Parameters
    ----------
    initial_state : StateVector
        Starting position, velocity and epoch.
    duration : float
        Total propagation time (s), > 0.
    timestep : float
        Nominal step (s), > 0.  The last step is shortened so the series
        ends exactly at *duration*.
    bodies : sequence of CelestialBody or Attractor
        Gravitating bodies.  A bare CelestialBody sits at the origin.

    Returns
    -------
    list of StateVector
        ceil(duration / timestep) + 1 states, the first being
        *initial_state*.

    Raises
    ------
    InvalidParameterError
        If duration or timestep is not positive.
    """
    if timestep <= 0:
        raise InvalidParameterError(f"timestep must be positive, got {timestep}")
    if duration <= 0:
        raise InvalidParameterError(f"duration must be positive, got {duration}")

    attractors = _as_attractors(bodies)
    n_steps = int(math.ceil(duration / timestep))

    logger.debug("Verlet propagation: %d steps of %.3f s over %d attractor(s)",
                 n_steps, timestep, len(attractors))

    states = [initial_state]
    r = initial_state.position
    v = initial_state.velocity
    a = gravitational_acceleration(r, attractors)
    elapsed = 0.0

    for k in range(n_steps):
        dt = timestep if k < n_steps - 1 else duration - elapsed
        v_half = v + a * (0.5 * dt)
        r = r + v_half * dt
        a = gravitational_acceleration(r, attractors)
        v = v_half + a * (0.5 * dt)
        elapsed += dt
        states.append(StateVector(
            position=r,
            velocity=v,
            epoch=initial_state.epoch + timedelta(seconds=elapsed),
        ))

    return states


def propagate_kepler(
    elements: OrbitalElements,
    mu: float,
    offsets: Union[Sequence[float], np.ndarray],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Analytic two-body positions and velocities at time offsets from the
    elements' epoch.

    Parameters
    ----------
    elements : OrbitalElements
    mu : float
        Gravitational parameter (m^3/s^2).
    offsets : array_like
        Seconds from ``elements.epoch`` (may be negative).

    Returns
    -------
    positions, velocities : np.ndarray
        Shape (N, 3), inertial frame, SI units.
    """
    if mu <= 0:
        raise InvalidParameterError(f"mu must be positive, got {mu}")

    t = np.atleast_1d(np.asarray(offsets, dtype=np.float64))
    e = elements.eccentricity
    M = elements.mean_anomaly + elements.mean_motion(mu) * t
    E = np.atleast_1d(solve_kepler(M, e))
    nu = eccentric_to_true_anomaly(E, e)

    r_pqw, v_pqw = perifocal_state(elements.semi_major_axis, e, nu, mu)
    R = perifocal_to_eci_matrix(
        elements.raan, elements.inclination, elements.argument_of_periapsis
    )
    return r_pqw @ R.T, v_pqw @ R.T
