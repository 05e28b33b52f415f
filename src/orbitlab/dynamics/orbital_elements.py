"""
===============================================================================
ORBITLAB - Orbital Elements Converter
===============================================================================
Bidirectional mapping between Cartesian state vectors and classical
Keplerian elements for bound (elliptical) orbits.

    StateVector      (r, v, epoch)
        |   state_to_elements   ^
        v                       |   elements_to_state
    OrbitalElements  (a, e, i, RAAN, argp, M, epoch)

Degenerate geometry is reported, not hidden:

    - Equatorial orbit (i ~ 0 or pi): the node line does not exist.  RAAN is
      set to 0 and ``equatorial_orbit`` is True.  The argument of periapsis
      is then measured from the x-axis (longitude of periapsis).
    - Circular orbit (e ~ 0): periapsis does not exist.  The argument of
      periapsis is set to 0 and ``circular_orbit`` is True.  The anomaly is
      then measured from the ascending node (argument of latitude) or, when
      also equatorial, from the x-axis (true longitude).

These conventions keep elements_to_state(state_to_elements(s)) == s even for
the degenerate cases.

Hyperbolic and parabolic trajectories are outside this representation and
raise UnboundOrbitError; flybys are described by guidance.GravityAssist.

References
----------
    [1] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.,
        Algorithms 2, 9 and 10.
    [2] Curtis, "Orbital Mechanics for Engineering Students", 4th ed.

===============================================================================
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Union

import numpy as np
from scipy.optimize import newton

from orbitlab.core.constants import (
    ANGULAR_MOMENTUM_TOL,
    CIRCULAR_TOL,
    EQUATORIAL_TOL,
    INCLINATION_TOL,
    KEPLER_MAX_ITERATIONS,
    KEPLER_TOLERANCE,
    PI,
    TWO_PI,
)
from orbitlab.core.exceptions import (
    ConvergenceError,
    DegenerateOrbitError,
    InvalidOrbitError,
    InvalidParameterError,
    UnboundOrbitError,
)
from orbitlab.core.frames import as_utc, perifocal_to_eci_matrix
from orbitlab.core.vectors import Vector3, cross, dot, magnitude, scale, sub

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class StateVector:
    """
    Translational state at a single instant.

    Attributes
    ----------
    position : Vector3
        Position (m), inertial frame.
    velocity : Vector3
        Velocity (m/s), inertial frame.
    epoch : datetime
        Instant at which the state is valid (UTC).
    """
    position: Vector3
    velocity: Vector3
    epoch: datetime

    @property
    def radius(self) -> float:
        return magnitude(self.position)

    @property
    def speed(self) -> float:
        return magnitude(self.velocity)

    def specific_energy(self, mu: float) -> float:
        """v^2/2 - mu/r (J/kg)."""
        return 0.5 * self.speed ** 2 - mu / self.radius


@dataclass(frozen=True)
class OrbitalElements:
    """
    Classical Keplerian elements of a bound orbit.

    Attributes
    ----------
    semi_major_axis : float
        a (m), > 0.
    eccentricity : float
        e, in [0, 1).
    inclination : float
        i (rad), [0, pi].
    raan : float
        Right ascension of the ascending node (rad), [0, 2*pi).
    argument_of_periapsis : float
        (rad), [0, 2*pi).
    mean_anomaly : float
        M at *epoch* (rad), [0, 2*pi).
    epoch : datetime
        Reference instant of the mean anomaly.
    equatorial_orbit : bool
        RAAN undefined; reported as 0.
    circular_orbit : bool
        Argument of periapsis undefined; reported as 0.
    """
    semi_major_axis: float
    eccentricity: float
    inclination: float
    raan: float
    argument_of_periapsis: float
    mean_anomaly: float
    epoch: datetime
    equatorial_orbit: bool = False
    circular_orbit: bool = False

    def __post_init__(self):
        if self.eccentricity < 0.0:
            raise InvalidOrbitError(
                f"Eccentricity must be non-negative, got {self.eccentricity}"
            )
        if self.eccentricity >= 1.0 or self.semi_major_axis <= 0.0:
            raise UnboundOrbitError(
                f"Elements describe an unbound orbit (a = {self.semi_major_axis:.4e} m, "
                f"e = {self.eccentricity:.6f})"
            )
        if not -INCLINATION_TOL <= self.inclination <= PI + INCLINATION_TOL:
            raise InvalidParameterError(
                f"Inclination must be in [0, pi] rad, got {self.inclination}"
            )

    @property
    def periapsis_radius(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity)

    @property
    def apoapsis_radius(self) -> float:
        return self.semi_major_axis * (1.0 + self.eccentricity)

    @property
    def true_anomaly(self) -> float:
        return mean_to_true_anomaly(self.mean_anomaly, self.eccentricity)

    def mean_motion(self, mu: float) -> float:
        """n = sqrt(mu / a^3) (rad/s)."""
        return math.sqrt(mu / self.semi_major_axis ** 3)

    def period(self, mu: float) -> float:
        return orbital_period(self.semi_major_axis, mu)

    def at_epoch(self, epoch: datetime, mu: float) -> 'OrbitalElements':
        """Same orbit with the mean anomaly advanced (or rewound) to *epoch*."""
        dt = (as_utc(epoch) - as_utc(self.epoch)).total_seconds()
        mean_anomaly = (self.mean_anomaly + self.mean_motion(mu) * dt) % TWO_PI
        return replace(self, mean_anomaly=mean_anomaly, epoch=epoch)


# =============================================================================
# SCALAR ORBIT RELATIONS
# =============================================================================

def vis_viva(r: float, a: float, mu: float) -> float:
    """Orbital speed from the vis-viva equation v = sqrt(mu (2/r - 1/a))."""
    return math.sqrt(mu * (2.0 / r - 1.0 / a))


def orbital_period(a: float, mu: float) -> float:
    """
    Kepler's third law, T = 2*pi*sqrt(a^3/mu).

    Raises
    ------
    UnboundOrbitError
        If a <= 0 (open orbits have no period).
    """
    if a <= 0:
        raise UnboundOrbitError(
            f"Orbital period is undefined for a <= 0 (got a = {a:.4e} m)."
        )
    return TWO_PI * math.sqrt(a ** 3 / mu)


# =============================================================================
# ANOMALY CONVERSIONS
# =============================================================================

def solve_kepler(
    mean_anomaly: ArrayLike,
    eccentricity: float,
    tol: float = KEPLER_TOLERANCE,
    max_iter: int = KEPLER_MAX_ITERATIONS,
) -> ArrayLike:
    """
    Solve Kepler's equation M = E - e sin(E) for the eccentric anomaly.

    Newton-Raphson on f(E) = E - e sin(E) - M with f'(E) = 1 - e cos(E),
    which is strictly positive for e < 1.  Starting guess (Vallado Alg. 2):

        E0 = M          for e < 0.8
        E0 = pi         otherwise

    Accepts a scalar or an ndarray of mean anomalies; arrays are iterated
    element-wise in a single vectorized Newton loop.

    Parameters
    ----------
    mean_anomaly : float or np.ndarray
        M (rad).  Wrapped into [0, 2*pi) before solving.
    eccentricity : float
        e in [0, 1).
    tol : float
        Step-size convergence tolerance (rad).
    max_iter : int
        Iteration budget.

    Returns
    -------
    float or np.ndarray
        Eccentric anomaly E (rad), same shape as *mean_anomaly*.

    Raises
    ------
    ConvergenceError
        If the iteration fails to converge within *max_iter* steps.
    """
    if not 0.0 <= eccentricity < 1.0:
        raise UnboundOrbitError(
            f"Kepler's equation (elliptic form) needs 0 <= e < 1, got {eccentricity}"
        )

    M = np.mod(np.asarray(mean_anomaly, dtype=np.float64), TWO_PI)
    if eccentricity < 0.8:
        E0 = M.copy()
    else:
        E0 = np.full_like(M, PI)

    def _f(E, M, e):
        return E - e * np.sin(E) - M

    def _fprime(E, M, e):
        return 1.0 - e * np.cos(E)

    # disp=False: report failures through the convergence flags instead of
    # raising (scalar) or merely warning (partially failed arrays).
    result = newton(_f, E0, fprime=_fprime, args=(M, eccentricity),
                    tol=tol, maxiter=max_iter, full_output=True, disp=False)
    if np.size(E0) > 1:
        E, converged = result.root, result.converged
    else:
        E, converged = result[0], result[1].converged

    if not np.all(converged):
        n_failed = int(np.size(converged) - np.count_nonzero(converged))
        raise ConvergenceError(
            f"Kepler's equation did not converge in {max_iter} iterations "
            f"for {n_failed} of {np.size(M)} mean anomalies (e = {eccentricity})"
        )

    if np.ndim(E) == 0:
        return float(E)
    return np.asarray(E)


def true_to_mean_anomaly(nu: float, e: float) -> float:
    """
    Mean anomaly from true anomaly.

        E = 2 atan( sqrt((1-e)/(1+e)) tan(nu/2) )
        M = E - e sin(E)

    The half-angle tangent is evaluated in two-argument form so that
    nu = pi does not blow up.
    """
    E = 2.0 * math.atan2(math.sqrt(1.0 - e) * math.sin(nu / 2.0),
                         math.sqrt(1.0 + e) * math.cos(nu / 2.0))
    return (E - e * math.sin(E)) % TWO_PI


def eccentric_to_true_anomaly(E: ArrayLike, e: float) -> ArrayLike:
    """nu = 2 atan( sqrt((1+e)/(1-e)) tan(E/2) ), in two-argument form."""
    return 2.0 * np.arctan2(np.sqrt(1.0 + e) * np.sin(np.asarray(E) / 2.0),
                            np.sqrt(1.0 - e) * np.cos(np.asarray(E) / 2.0))


def mean_to_true_anomaly(M: float, e: float) -> float:
    return float(eccentric_to_true_anomaly(solve_kepler(M, e), e)) % TWO_PI


# =============================================================================
# CARTESIAN -> KEPLERIAN
# =============================================================================

def state_to_elements(state: StateVector, mu: float) -> OrbitalElements:
    """
    Convert a Cartesian state vector to classical Keplerian elements.

    The algorithm computes:
        h = r x v                       (angular momentum)
        n = (-h_y, h_x, 0)              (ascending node vector, z_hat x h)
        e_vec = (v x h)/mu - r/|r|      (eccentricity vector)
        E = v^2/2 - mu/|r|              (specific energy)
        a = -mu / (2E)
        i = acos(h_z / |h|)
        RAAN = acos(n_x / |n|),  2*pi - RAAN if n_y < 0
        argp = acos(n . e / (|n| e)),  2*pi - argp if e_z < 0
        nu = acos(e . r / (e |r|)),  2*pi - nu if r . v < 0

    Parameters
    ----------
    state : StateVector
        Position (m) and velocity (m/s).
    mu : float
        Gravitational parameter (m^3/s^2).

    Returns
    -------
    OrbitalElements

    Raises
    ------
    DegenerateOrbitError
        If |h| ~ 0 (rectilinear trajectory).
    UnboundOrbitError
        If the specific energy is >= 0.
    """
    if mu <= 0:
        raise InvalidParameterError(f"mu must be positive, got {mu}")

    r = state.position
    v = state.velocity
    r_mag = magnitude(r)
    v_mag = magnitude(v)

    h = cross(r, v)
    h_mag = magnitude(h)
    if r_mag == 0.0 or h_mag <= ANGULAR_MOMENTUM_TOL * r_mag * max(v_mag, 1e-300):
        raise DegenerateOrbitError(
            f"Zero angular momentum (|h| = {h_mag:.3e} m^2/s); trajectory is rectilinear"
        )

    energy = 0.5 * v_mag * v_mag - mu / r_mag
    if energy >= 0.0:
        raise UnboundOrbitError(
            f"Specific energy {energy:.4e} J/kg >= 0: parabolic or hyperbolic trajectory"
        )
    a = -mu / (2.0 * energy)

    e_vec = sub(scale(cross(v, h), 1.0 / mu), scale(r, 1.0 / r_mag))
    e = magnitude(e_vec)

    inc = math.acos(max(-1.0, min(1.0, h.z / h_mag)))

    n = Vector3(-h.y, h.x, 0.0)
    n_mag = magnitude(n)

    equatorial = n_mag <= EQUATORIAL_TOL * h_mag
    circular = e <= CIRCULAR_TOL
    prograde = h.z >= 0.0

    # Right ascension of the ascending node
    if equatorial:
        raan = 0.0
    else:
        raan = math.acos(max(-1.0, min(1.0, n.x / n_mag)))
        if n.y < 0.0:
            raan = TWO_PI - raan

    # Argument of periapsis
    if circular:
        argp = 0.0
    elif equatorial:
        # Longitude of periapsis; the x-axis stands in for the node line.
        argp = math.atan2(e_vec.y if prograde else -e_vec.y, e_vec.x) % TWO_PI
    else:
        argp = math.acos(max(-1.0, min(1.0, dot(n, e_vec) / (n_mag * e))))
        if e_vec.z < 0.0:
            argp = TWO_PI - argp

    # True anomaly (or its circular-orbit stand-ins)
    if not circular:
        nu = math.acos(max(-1.0, min(1.0, dot(e_vec, r) / (e * r_mag))))
        if dot(r, v) < 0.0:
            nu = TWO_PI - nu
    elif not equatorial:
        # Argument of latitude
        nu = math.acos(max(-1.0, min(1.0, dot(n, r) / (n_mag * r_mag))))
        if r.z < 0.0:
            nu = TWO_PI - nu
    else:
        # True longitude
        nu = math.atan2(r.y if prograde else -r.y, r.x) % TWO_PI

    mean_anomaly = true_to_mean_anomaly(nu, e)

    logger.debug(
        "state_to_elements: a=%.1f m, e=%.6f, i=%.4f rad (equatorial=%s, circular=%s)",
        a, e, inc, equatorial, circular,
    )
    return OrbitalElements(
        semi_major_axis=a,
        eccentricity=e,
        inclination=inc,
        raan=raan % TWO_PI,
        argument_of_periapsis=argp % TWO_PI,
        mean_anomaly=mean_anomaly,
        epoch=state.epoch,
        equatorial_orbit=equatorial,
        circular_orbit=circular,
    )


# =============================================================================
# KEPLERIAN -> CARTESIAN
# =============================================================================

def perifocal_state(a: float, e: float, nu: ArrayLike, mu: float):
    """
    Position and velocity in the perifocal (PQW) frame.

        p = a (1 - e^2)
        r = p / (1 + e cos(nu))
        r_pqw = r [cos(nu), sin(nu), 0]
        v_pqw = sqrt(mu/p) [-sin(nu), e + cos(nu), 0]

    Returns (N, 3) arrays for array *nu*, (3,) arrays for scalar *nu*.
    """
    p = a * (1.0 - e * e)
    nu = np.asarray(nu, dtype=np.float64)
    cos_nu = np.cos(nu)
    sin_nu = np.sin(nu)
    r_mag = p / (1.0 + e * cos_nu)
    zeros = np.zeros_like(nu)
    r_pqw = np.stack([r_mag * cos_nu, r_mag * sin_nu, zeros], axis=-1)
    v_pqw = math.sqrt(mu / p) * np.stack([-sin_nu, e + cos_nu, zeros], axis=-1)
    return r_pqw, v_pqw


def elements_to_state(elements: OrbitalElements, mu: float) -> StateVector:
    """
    Convert Keplerian elements to a Cartesian state at the elements' epoch.

    The procedure is:
        1. Solve Kepler's equation for E, then recover the true anomaly.
        2. Build position and velocity in the perifocal (PQW) frame.
        3. Rotate PQW -> ECI with the 3-1-3 sequence (RAAN, i, argp).

    Parameters
    ----------
    elements : OrbitalElements
    mu : float
        Gravitational parameter (m^3/s^2).

    Returns
    -------
    StateVector

    Raises
    ------
    ConvergenceError
        If Kepler's equation fails to converge.
    """
    if mu <= 0:
        raise InvalidParameterError(f"mu must be positive, got {mu}")

    e = elements.eccentricity
    E = solve_kepler(elements.mean_anomaly, e)
    nu = float(eccentric_to_true_anomaly(E, e))

    r_pqw, v_pqw = perifocal_state(elements.semi_major_axis, e, nu, mu)
    R = perifocal_to_eci_matrix(
        elements.raan, elements.inclination, elements.argument_of_periapsis
    )

    return StateVector(
        position=Vector3.from_array(R @ r_pqw),
        velocity=Vector3.from_array(R @ v_pqw),
        epoch=elements.epoch,
    )
