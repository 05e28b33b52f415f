"""
===============================================================================
ORBITLAB - Reference Frame Transformations
===============================================================================
Supports: ECI (mean equator of date, approximated as J2000), ECEF,
          Geodetic (WGS84), topocentric East-North-Up, Perifocal.

Predicting a satellite pass means walking a position through several frames:

    Orbit geometry  -> Perifocal -> ECI   (3-1-3 Euler rotation)
    Earth rotation  -> ECI -> ECEF        (Greenwich mean sidereal time)
    Observer        -> Geodetic -> ECEF   (WGS84 ellipsoid)
    Look angles     -> ECEF -> ENU        (azimuth / elevation / range)

Polar motion, nutation and UT1-UTC are ignored; at the arc-second level this
is far below the resolution of a naked-eye pass prediction.

Most functions accept either a single 3-vector or an (N, 3) array together
with a matching scalar or length-N array of angles, so the pass predictor
can transform a whole day of samples in one call.

References
----------
    [1] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.
    [2] Montenbruck & Gill, "Satellite Orbits", Springer, 2000.
    [3] The Astronomical Almanac, low-precision solar coordinates.

===============================================================================
"""

from datetime import datetime, timezone
from typing import Tuple, Union

import numpy as np

from orbitlab.core.constants import (
    AU,
    DAYS_PER_JULIAN_CENTURY,
    DEG2RAD,
    EARTH_EQUATORIAL_RADIUS,
    EARTH_FLATTENING,
    JULIAN_DATE_J2000,
    SECONDS_PER_DAY,
    TWO_PI,
)

ArrayLike = Union[float, np.ndarray]

_UNIX_EPOCH_JD = 2440587.5


# =============================================================================
# ELEMENTARY ROTATION MATRICES
# =============================================================================

def Rx(angle: float) -> np.ndarray:
    """
    Elementary (frame) rotation about the X-axis:

        Rx(a) = | 1    0       0     |
                | 0   cos(a)  sin(a)  |
                | 0  -sin(a)  cos(a)  |
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [1.0,  0.0,  0.0],
        [0.0,    c,    s],
        [0.0,   -s,    c],
    ], dtype=np.float64)


def Rz(angle: float) -> np.ndarray:
    """
    Elementary (frame) rotation about the Z-axis:

        Rz(a) = |  cos(a)  sin(a)  0 |
                | -sin(a)  cos(a)  0 |
                |    0       0     1 |
    """
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([
        [  c,    s,  0.0],
        [ -s,    c,  0.0],
        [0.0,  0.0,  1.0],
    ], dtype=np.float64)


def perifocal_to_eci_matrix(raan: float, inc: float, argp: float) -> np.ndarray:
    """
    Rotation matrix from the perifocal (PQW) frame to ECI.

    The classical 3-1-3 sequence, undone in reverse order:

        R_eci_pqw = Rz(-RAAN) * Rx(-inc) * Rz(-argp)

    References
    ----------
    Vallado (2013), Algorithm 10.
    """
    return Rz(-raan) @ Rx(-inc) @ Rz(-argp)


# =============================================================================
# TIME
# =============================================================================

def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def julian_date(moment: datetime) -> float:
    """
    Julian date (UTC-based) of a datetime.

    Computed from the POSIX timestamp, whose day boundary falls on
    JD 2440587.5 (1970-01-01 00:00 UTC).
    """
    return as_utc(moment).timestamp() / SECONDS_PER_DAY + _UNIX_EPOCH_JD


def gmst(jd: ArrayLike) -> ArrayLike:
    """
    Greenwich mean sidereal time (rad, [0, 2*pi)) for UT1 Julian date(s).

    IAU-82 expression (Vallado Eq. 3-47):

        theta = 67310.54841 + (876600 h + 8640184.812866) T
                + 0.093104 T^2 - 6.2e-6 T^3        [seconds of time]

    with T in Julian centuries from J2000.  UTC is used for UT1.
    """
    t = (np.asarray(jd, dtype=np.float64) - JULIAN_DATE_J2000) / DAYS_PER_JULIAN_CENTURY
    theta_sec = (
        67310.54841
        + (876600.0 * 3600.0 + 8640184.812866) * t
        + 0.093104 * t * t
        - 6.2e-6 * t * t * t
    )
    # 86400 s of sidereal time = 2*pi rad
    theta = np.mod(theta_sec * (TWO_PI / SECONDS_PER_DAY), TWO_PI)
    if np.ndim(theta) == 0:
        return float(theta)
    return theta


# =============================================================================
# ECI <-> ECEF
# =============================================================================

def eci_to_ecef(r_eci: np.ndarray, theta: ArrayLike) -> np.ndarray:
    """
    Rotate ECI position(s) into ECEF by the sidereal angle(s) *theta*:

        r_ecef = Rz(theta) * r_eci

    Parameters
    ----------
    r_eci : np.ndarray
        Shape (3,) or (N, 3), metres.
    theta : float or np.ndarray
        GMST in radians, scalar or shape (N,).
    """
    r = np.asarray(r_eci, dtype=np.float64)
    c = np.cos(theta)
    s = np.sin(theta)
    x = c * r[..., 0] + s * r[..., 1]
    y = -s * r[..., 0] + c * r[..., 1]
    return np.stack([x, y, r[..., 2] * np.ones_like(x)], axis=-1)


def ecef_to_eci(r_ecef: np.ndarray, theta: ArrayLike) -> np.ndarray:
    """Inverse of eci_to_ecef."""
    return eci_to_ecef(r_ecef, -np.asarray(theta))


# =============================================================================
# GEODETIC -> ECEF (WGS84)
# =============================================================================

def geodetic_to_ecef(lat_rad: float, lon_rad: float, alt_m: float) -> np.ndarray:
    """
    Convert geodetic coordinates to ECEF using the WGS84 ellipsoid.

    With N the prime vertical radius of curvature,

        N = a / sqrt(1 - e^2 * sin^2(lat))

        x = (N + h) * cos(lat) * cos(lon)
        y = (N + h) * cos(lat) * sin(lon)
        z = (N * (1 - e^2) + h) * sin(lat)

    References
    ----------
    Vallado (2013), Algorithm 51.
    """
    a = EARTH_EQUATORIAL_RADIUS
    f = EARTH_FLATTENING
    e2 = 2.0 * f - f * f

    sin_lat = np.sin(lat_rad)
    cos_lat = np.cos(lat_rad)

    N = a / np.sqrt(1.0 - e2 * sin_lat * sin_lat)

    x = (N + alt_m) * cos_lat * np.cos(lon_rad)
    y = (N + alt_m) * cos_lat * np.sin(lon_rad)
    z = (N * (1.0 - e2) + alt_m) * sin_lat

    return np.array([x, y, z], dtype=np.float64)


# =============================================================================
# ECEF -> TOPOCENTRIC (East-North-Up)
# =============================================================================

def ecef_to_enu(rho_ecef: np.ndarray, lat_rad: float, lon_rad: float) -> np.ndarray:
    """
    Rotate an ECEF line-of-sight vector into the observer's local
    East-North-Up frame.

        | e |   |     -sin(lon)           cos(lon)          0     |
        | n | = | -sin(lat)cos(lon)  -sin(lat)sin(lon)  cos(lat)  | * rho
        | u |   |  cos(lat)cos(lon)   cos(lat)sin(lon)  sin(lat)  |
    """
    sin_lat, cos_lat = np.sin(lat_rad), np.cos(lat_rad)
    sin_lon, cos_lon = np.sin(lon_rad), np.cos(lon_rad)
    R = np.array([
        [-sin_lon, cos_lon, 0.0],
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat],
    ], dtype=np.float64)
    return np.asarray(rho_ecef, dtype=np.float64) @ R.T


def look_angles(
    r_ecef: np.ndarray, lat_rad: float, lon_rad: float, alt_m: float
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Azimuth, elevation and range of target(s) seen from a ground observer.

        azimuth   = atan2(east, north)   measured clockwise from north
        elevation = asin(up / range)

    Parameters
    ----------
    r_ecef : np.ndarray
        Target position(s) in ECEF, shape (3,) or (N, 3), metres.
    lat_rad, lon_rad, alt_m : float
        Observer geodetic coordinates.

    Returns
    -------
    azimuth : np.ndarray
        Radians in [0, 2*pi).
    elevation : np.ndarray
        Radians in [-pi/2, pi/2].
    slant_range : np.ndarray
        Metres.
    """
    site = geodetic_to_ecef(lat_rad, lon_rad, alt_m)
    enu = ecef_to_enu(np.asarray(r_ecef, dtype=np.float64) - site, lat_rad, lon_rad)
    east, north, up = enu[..., 0], enu[..., 1], enu[..., 2]
    slant_range = np.sqrt(east * east + north * north + up * up)
    azimuth = np.mod(np.arctan2(east, north), TWO_PI)
    elevation = np.arcsin(np.clip(up / slant_range, -1.0, 1.0))
    return azimuth, elevation, slant_range


# =============================================================================
# LOW-PRECISION SUN EPHEMERIS
# =============================================================================

def sun_position_eci(jd: ArrayLike) -> np.ndarray:
    """
    Geocentric Sun position in ECI (m), good to about 0.01 deg.

    Astronomical Almanac low-precision formulae (Vallado Algorithm 29):

        lambda_M = 280.460 + 36000.771 T                 (mean longitude)
        M        = 357.5291092 + 35999.05034 T           (mean anomaly)
        lambda   = lambda_M + 1.914666471 sin M + 0.019994643 sin 2M
        r        = 1.000140612 - 0.016708617 cos M - 0.000139589 cos 2M  [AU]
        eps      = 23.439291 - 0.0130042 T

        r_sun = r [cos(lambda), cos(eps) sin(lambda), sin(eps) sin(lambda)]

    Returns shape (3,) for scalar *jd*, (N, 3) for an array.
    """
    t = (np.asarray(jd, dtype=np.float64) - JULIAN_DATE_J2000) / DAYS_PER_JULIAN_CENTURY
    mean_lon = (280.460 + 36000.771 * t) * DEG2RAD
    mean_anom = (357.5291092 + 35999.05034 * t) * DEG2RAD
    ecl_lon = mean_lon + (
        1.914666471 * np.sin(mean_anom) + 0.019994643 * np.sin(2.0 * mean_anom)
    ) * DEG2RAD
    r_au = (
        1.000140612
        - 0.016708617 * np.cos(mean_anom)
        - 0.000139589 * np.cos(2.0 * mean_anom)
    )
    eps = (23.439291 - 0.0130042 * t) * DEG2RAD

    r = r_au * AU
    return np.stack([
        r * np.cos(ecl_lon),
        r * np.cos(eps) * np.sin(ecl_lon),
        r * np.sin(eps) * np.sin(ecl_lon),
    ], axis=-1)


def is_sunlit(r_eci: np.ndarray, r_sun_eci: np.ndarray,
              body_radius: float = EARTH_EQUATORIAL_RADIUS) -> np.ndarray:
    """
    Cylindrical-shadow test.

    A point is eclipsed when it lies behind the Earth (r . s_hat < 0) and
    within one Earth radius of the Earth-Sun line.  The penumbra is ignored.
    """
    r = np.asarray(r_eci, dtype=np.float64)
    s = np.asarray(r_sun_eci, dtype=np.float64)
    s_hat = s / np.linalg.norm(s, axis=-1, keepdims=True)
    along = np.sum(r * s_hat, axis=-1)
    perp = np.linalg.norm(r - along[..., None] * s_hat, axis=-1)
    return (along >= 0.0) | (perp > body_radius)
