"""
===============================================================================
ORBITLAB - Transfer Planner
===============================================================================
Impulsive manoeuvre design between circular orbits, interplanetary launch
window estimates and unpowered planetary flybys.

    hohmann_transfer       Two-burn, minimum-energy transfer between coplanar
                           circular orbits.
    bi_elliptic_transfer   Three-burn transfer via a distant apoapsis; cheaper
                           than Hohmann for large radius ratios (r2/r1 > ~11.94).
    launch_windows         Recurring Earth-departure opportunities, spaced by
                           the Earth-target synodic period.
    gravity_assist         Turn angle and velocity change of a hyperbolic
                           flyby in the planet's frame.

All interplanetary figures are patched-conic estimates on circular coplanar
planetary orbits.  They are deterministic: the same inputs always produce
the same windows.

References
----------
    [1] Curtis, "Orbital Mechanics for Engineering Students", Ch. 6 and 8.
    [2] Vallado, "Fundamentals of Astrodynamics and Applications", Sec. 6.3.

===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from orbitlab.core.bodies import EARTH, SUN, CelestialBody, get_body
from orbitlab.core.config import section
from orbitlab.core.constants import (
    PI,
    PLANET_MEAN_DISTANCE,
    SECONDS_PER_DAY,
    SYNODIC_PERIOD_DAYS,
    TWO_PI,
)
from orbitlab.core.exceptions import InvalidOrbitError, InvalidParameterError
from orbitlab.core.vectors import Vector3, rotate_about_axis

logger = logging.getLogger(__name__)

BodyLike = Union[str, CelestialBody]


# =============================================================================
# RESULT RECORDS
# =============================================================================

@dataclass(frozen=True)
class HohmannTransfer:
    """
    Two-impulse transfer between circular orbits of radius r1 and r2.

    Burns are signed along the velocity direction: negative values are
    retrograde (lowering) burns.  ``total_delta_v`` sums magnitudes.
    """
    initial_radius: float
    final_radius: float
    transfer_semi_major_axis: float
    delta_v1: float
    delta_v2: float
    total_delta_v: float
    transfer_time: float
    central_body: CelestialBody

    @property
    def transfer_time_hours(self) -> float:
        return self.transfer_time / 3600.0


@dataclass(frozen=True)
class BiEllipticTransfer:
    """Three-impulse transfer through an intermediate apoapsis."""
    initial_radius: float
    final_radius: float
    intermediate_radius: float
    delta_v1: float
    delta_v2: float
    delta_v3: float
    total_delta_v: float
    transfer_time: float
    central_body: CelestialBody


@dataclass(frozen=True)
class LaunchWindow:
    """
    One Earth-departure opportunity.

    Attributes
    ----------
    open_date, optimal_date, close_date : datetime
        Window bounds; optimal_date is the nominal departure.
    target_body : CelestialBody
    characteristic_energy : float
        C3 = v_inf^2 (m^2/s^2).
    departure_delta_v : float
        Burn from the LEO parking orbit onto the escape hyperbola (m/s).
    transfer_duration : float
        Heliocentric time of flight (s).
    arrival_date : datetime
    phase_angle : float
        Required lead of the target over Earth at departure (rad, (-pi, pi]).
    """
    open_date: datetime
    optimal_date: datetime
    close_date: datetime
    target_body: CelestialBody
    characteristic_energy: float
    departure_delta_v: float
    transfer_duration: float
    arrival_date: datetime
    phase_angle: float

    @property
    def v_infinity(self) -> float:
        return math.sqrt(self.characteristic_energy)

    @property
    def c3_km2_s2(self) -> float:
        return self.characteristic_energy / 1.0e6

    @property
    def transfer_duration_days(self) -> float:
        return self.transfer_duration / SECONDS_PER_DAY


@dataclass(frozen=True)
class GravityAssist:
    """
    Unpowered hyperbolic flyby seen from the flyby body.

    The speed relative to the body is unchanged; only the direction turns
    by ``turn_angle``.
    """
    body: CelestialBody
    incoming_speed: float
    outgoing_speed: float
    turn_angle: float
    delta_v: float
    periapsis_altitude: float
    periapsis_speed: float

    def __post_init__(self):
        if not math.isclose(self.incoming_speed, self.outgoing_speed,
                            rel_tol=1e-12, abs_tol=0.0):
            raise InvalidParameterError(
                f"Flyby must conserve v_inf: incoming {self.incoming_speed} m/s, "
                f"outgoing {self.outgoing_speed} m/s"
            )

    @property
    def turn_angle_deg(self) -> float:
        return math.degrees(self.turn_angle)


# =============================================================================
# CIRCULAR-ORBIT TRANSFERS
# =============================================================================

def _check_radius(r: float, body: CelestialBody, label: str) -> None:
    if r <= body.radius:
        raise InvalidOrbitError(
            f"{label} radius {r:.1f} m is inside {body.name} "
            f"(radius {body.radius:.1f} m)"
        )


def hohmann_transfer(r1: float, r2: float,
                     body: BodyLike = EARTH) -> HohmannTransfer:
    """
    Hohmann transfer between circular coplanar orbits.

    The transfer ellipse has its apsides at r1 and r2:

        a_t = (r1 + r2) / 2
        dv1 = sqrt(mu (2/r1 - 1/a_t)) - sqrt(mu/r1)
        dv2 = sqrt(mu/r2) - sqrt(mu (2/r2 - 1/a_t))
        tof = pi sqrt(a_t^3 / mu)

    Parameters
    ----------
    r1, r2 : float
        Initial and final orbit radii (m), measured from the body centre.
    body : str or CelestialBody
        Central body.

    Returns
    -------
    HohmannTransfer

    Raises
    ------
    InvalidOrbitError
        If either radius does not clear the body's surface.
    """
    body = get_body(body)
    _check_radius(r1, body, "Initial")
    _check_radius(r2, body, "Final")

    mu = body.mu
    a_t = (r1 + r2) / 2.0

    v1 = math.sqrt(mu / r1)
    v2 = math.sqrt(mu / r2)
    v_peri = math.sqrt(mu * (2.0 / r1 - 1.0 / a_t))
    v_apo = math.sqrt(mu * (2.0 / r2 - 1.0 / a_t))

    dv1 = v_peri - v1
    dv2 = v2 - v_apo
    tof = PI * math.sqrt(a_t ** 3 / mu)

    logger.debug("Hohmann %s: r1=%.1f km r2=%.1f km dv=%.2f m/s tof=%.1f s",
                 body.name, r1 / 1e3, r2 / 1e3, abs(dv1) + abs(dv2), tof)

    return HohmannTransfer(
        initial_radius=r1,
        final_radius=r2,
        transfer_semi_major_axis=a_t,
        delta_v1=dv1,
        delta_v2=dv2,
        total_delta_v=abs(dv1) + abs(dv2),
        transfer_time=tof,
        central_body=body,
    )


def bi_elliptic_transfer(r1: float, r2: float, r_intermediate: float,
                         body: BodyLike = EARTH) -> BiEllipticTransfer:
    """
    Bi-elliptic transfer between circular coplanar orbits.

    Transfer geometry:
        Ellipse 1: periapsis at r1, apoapsis at r_int
        Ellipse 2: periapsis at r2, apoapsis at r_int

    Impulses:
        dv1 = v_t1(r1) - v_circ(r1)
        dv2 = v_t2(r_int) - v_t1(r_int)
        dv3 = v_circ(r2) - v_t2(r2)

    Raises
    ------
    InvalidOrbitError
        If a radius is inside the body or r_int < max(r1, r2).
    """
    body = get_body(body)
    _check_radius(r1, body, "Initial")
    _check_radius(r2, body, "Final")
    if r_intermediate < max(r1, r2):
        raise InvalidOrbitError(
            f"Intermediate radius {r_intermediate:.1f} m must be >= max(r1, r2)"
        )

    mu = body.mu
    a1 = (r1 + r_intermediate) / 2.0
    a2 = (r2 + r_intermediate) / 2.0

    v_circ_1 = math.sqrt(mu / r1)
    v_circ_2 = math.sqrt(mu / r2)
    v_t1_peri = math.sqrt(mu * (2.0 / r1 - 1.0 / a1))
    v_t1_apo = math.sqrt(mu * (2.0 / r_intermediate - 1.0 / a1))
    v_t2_apo = math.sqrt(mu * (2.0 / r_intermediate - 1.0 / a2))
    v_t2_peri = math.sqrt(mu * (2.0 / r2 - 1.0 / a2))

    dv1 = v_t1_peri - v_circ_1
    dv2 = v_t2_apo - v_t1_apo
    dv3 = v_circ_2 - v_t2_peri
    tof = PI * (math.sqrt(a1 ** 3 / mu) + math.sqrt(a2 ** 3 / mu))

    return BiEllipticTransfer(
        initial_radius=r1,
        final_radius=r2,
        intermediate_radius=r_intermediate,
        delta_v1=dv1,
        delta_v2=dv2,
        delta_v3=dv3,
        total_delta_v=abs(dv1) + abs(dv2) + abs(dv3),
        transfer_time=tof,
        central_body=body,
    )


# =============================================================================
# INTERPLANETARY DEPARTURE
# =============================================================================

def synodic_period(target: BodyLike) -> float:
    """Earth-target synodic period (s), from the constant table."""
    body = get_body(target)
    try:
        return SYNODIC_PERIOD_DAYS[body.key] * SECONDS_PER_DAY
    except KeyError:
        raise InvalidParameterError(
            f"No Earth synodic period for {body.name}; "
            f"valid targets: {sorted(SYNODIC_PERIOD_DAYS)}"
        ) from None


def escape_delta_v(v_infinity: float, parking_radius: float,
                   body: BodyLike = EARTH) -> float:
    """
    Burn from a circular parking orbit onto a hyperbola with excess speed
    *v_infinity*:

        dv = sqrt(v_esc^2 + v_inf^2) - v_circ,   v_esc = sqrt(2 mu / r)
    """
    body = get_body(body)
    _check_radius(parking_radius, body, "Parking")
    mu = body.mu
    v_esc_sq = 2.0 * mu / parking_radius
    return math.sqrt(v_esc_sq + v_infinity ** 2) - math.sqrt(mu / parking_radius)


def _wrap_pi(angle: float) -> float:
    """Wrap to (-pi, pi]."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped <= -PI:
        wrapped += TWO_PI
    elif wrapped > PI:
        wrapped -= TWO_PI
    return wrapped


def launch_windows(
    target: BodyLike,
    from_date: datetime,
    count: int,
    config: Optional[Dict[str, Any]] = None,
) -> List[LaunchWindow]:
    """
    Upcoming Earth-departure windows toward a planet.

    Windows recur every Earth-target synodic period; the first nominal
    departure is *from_date*.  Each window's energy and timing come from
    a heliocentric Hohmann transfer between the mean planetary distances:

        v_inf = | sqrt(mu_sun / r_E) (sqrt(2 r_T / (r_E + r_T)) - 1) |
        C3    = v_inf^2
        tof   = pi sqrt(((r_E + r_T)/2)^3 / mu_sun)
        phase = pi - n_T tof                         (wrapped to (-pi, pi])

    Parameters
    ----------
    target : str or CelestialBody
        Destination planet.
    from_date : datetime
        First nominal departure.
    count : int
        Number of windows, > 0.
    config : dict, optional
        Loaded configuration; ``launch.parking_altitude_m`` and
        ``launch.window_half_width_days`` are read from it.

    Returns
    -------
    list of LaunchWindow
        Chronological.

    Raises
    ------
    InvalidParameterError
        If count <= 0, or the target is Earth, the Sun or the Moon.
    """
    if count <= 0:
        raise InvalidParameterError(f"count must be positive, got {count}")

    body = get_body(target)
    if body.key not in PLANET_MEAN_DISTANCE or body.key == EARTH.key:
        raise InvalidParameterError(
            f"{body.name} is not a valid interplanetary target"
        )

    launch_cfg = section(config, 'launch')
    parking_radius = EARTH.radius + float(launch_cfg['parking_altitude_m'])
    half_width = timedelta(days=float(launch_cfg['window_half_width_days']))

    mu_sun = SUN.mu
    r_e = PLANET_MEAN_DISTANCE[EARTH.key]
    r_t = PLANET_MEAN_DISTANCE[body.key]

    v_inf = abs(math.sqrt(mu_sun / r_e) * (math.sqrt(2.0 * r_t / (r_e + r_t)) - 1.0))
    c3 = v_inf ** 2
    tof = PI * math.sqrt(((r_e + r_t) / 2.0) ** 3 / mu_sun)
    n_target = math.sqrt(mu_sun / r_t ** 3)
    phase = _wrap_pi(PI - n_target * tof)
    dv_depart = escape_delta_v(v_inf, parking_radius, EARTH)

    spacing = timedelta(seconds=synodic_period(body))
    flight = timedelta(seconds=tof)

    logger.debug("%s windows: C3=%.2f km^2/s^2 dv=%.1f m/s tof=%.1f d every %.1f d",
                 body.name, c3 / 1e6, dv_depart, tof / SECONDS_PER_DAY,
                 spacing.total_seconds() / SECONDS_PER_DAY)

    windows = []
    for k in range(count):
        optimal = from_date + k * spacing
        windows.append(LaunchWindow(
            open_date=optimal - half_width,
            optimal_date=optimal,
            close_date=optimal + half_width,
            target_body=body,
            characteristic_energy=c3,
            departure_delta_v=dv_depart,
            transfer_duration=tof,
            arrival_date=optimal + flight,
            phase_angle=phase,
        ))
    return windows


# =============================================================================
# GRAVITY ASSIST
# =============================================================================

def gravity_assist(body: BodyLike, v_infinity: float,
                   periapsis_altitude: float) -> GravityAssist:
    """
    Hyperbolic flyby of *body*.

        r_p   = R_body + h_p
        delta = 2 asin( 1 / (1 + r_p v_inf^2 / mu) )      (turn angle)
        dv    = 2 v_inf sin(delta / 2)
        v_p   = sqrt(v_inf^2 + 2 mu / r_p)                (periapsis speed)

    Raises
    ------
    InvalidParameterError
        If v_infinity <= 0.
    InvalidOrbitError
        If periapsis_altitude <= 0 (trajectory intersects the body).
    """
    body = get_body(body)
    if v_infinity <= 0:
        raise InvalidParameterError(
            f"v_infinity must be positive, got {v_infinity}"
        )
    if periapsis_altitude <= 0:
        raise InvalidOrbitError(
            f"Periapsis altitude {periapsis_altitude} m intersects {body.name}"
        )

    mu = body.mu
    rp = body.radius + periapsis_altitude
    turn = 2.0 * math.asin(1.0 / (1.0 + rp * v_infinity ** 2 / mu))
    dv = 2.0 * v_infinity * math.sin(turn / 2.0)

    return GravityAssist(
        body=body,
        incoming_speed=v_infinity,
        outgoing_speed=v_infinity,
        turn_angle=turn,
        delta_v=dv,
        periapsis_altitude=periapsis_altitude,
        periapsis_speed=math.sqrt(v_infinity ** 2 + 2.0 * mu / rp),
    )


def flyby_exit_velocity(v_in: Vector3, assist: GravityAssist,
                        plane_normal: Vector3) -> Vector3:
    """
    Outgoing excess velocity: *v_in* turned by the assist's turn angle about
    *plane_normal* (right-handed).  Magnitude is preserved.
    """
    return rotate_about_axis(v_in, plane_normal, assist.turn_angle)
