"""
===============================================================================
ORBITLAB - Display Boundary
===============================================================================
Thin layer between the SI-unit engine and a user interface.  Inputs arrive
in the units people type (km, degrees, calendar dates) and tabular outputs
leave as pandas DataFrames in display units.

Nothing here does orbital mechanics of its own; every function converts,
delegates to the engine, and (for the *_table helpers) formats.
===============================================================================
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Sequence, Union

import pandas as pd

from orbitlab.core.bodies import EARTH, CelestialBody
from orbitlab.core.constants import DEG2RAD, RAD2DEG, SECONDS_PER_DAY
from orbitlab.core.vectors import Vector3
from orbitlab.dynamics import orbital_elements as _elements
from orbitlab.dynamics.orbital_elements import OrbitalElements, StateVector
from orbitlab.guidance import transfer_planner as _planner
from orbitlab.guidance.transfer_planner import (
    BiEllipticTransfer,
    GravityAssist,
    HohmannTransfer,
    LaunchWindow,
)
from orbitlab.observation import pass_predictor as _passes
from orbitlab.observation.pass_predictor import ObserverLocation, SatellitePass

BodyLike = Union[str, CelestialBody]
VectorLike = Union[Vector3, Sequence[float]]

_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def _vector(v: VectorLike) -> Vector3:
    if isinstance(v, Vector3):
        return v
    return Vector3.from_array(v)


def _local(moment: datetime, tz) -> str:
    if tz is not None:
        moment = moment.astimezone(tz) if moment.tzinfo else moment.replace(
            tzinfo=timezone.utc).astimezone(tz)
    return moment.strftime(_TIME_FORMAT)


# =============================================================================
# TRANSFERS
# =============================================================================

def hohmann_transfer(r1_km: float, r2_km: float,
                     central_body: BodyLike = 'Earth') -> HohmannTransfer:
    """Hohmann transfer between circular orbit radii given in km."""
    return _planner.hohmann_transfer(r1_km * 1e3, r2_km * 1e3, central_body)


def bi_elliptic_transfer(r1_km: float, r2_km: float, r_intermediate_km: float,
                         central_body: BodyLike = 'Earth') -> BiEllipticTransfer:
    return _planner.bi_elliptic_transfer(r1_km * 1e3, r2_km * 1e3,
                                         r_intermediate_km * 1e3, central_body)


def launch_windows(target: BodyLike, from_date: datetime, count: int,
                   config: Optional[Dict[str, Any]] = None):
    return _planner.launch_windows(target, from_date, count, config)


def gravity_assist(body: BodyLike, v_infinity_mps: float,
                   periapsis_altitude_m: float) -> GravityAssist:
    return _planner.gravity_assist(body, v_infinity_mps, periapsis_altitude_m)


# =============================================================================
# ELEMENT CONVERSIONS
# =============================================================================

def state_to_elements(position: VectorLike, velocity: VectorLike,
                      mu: float = EARTH.mu,
                      epoch: Optional[datetime] = None) -> OrbitalElements:
    """Elements from position (m) and velocity (m/s) given as sequences."""
    state = StateVector(
        position=_vector(position),
        velocity=_vector(velocity),
        epoch=epoch if epoch is not None else datetime.now(timezone.utc),
    )
    return _elements.state_to_elements(state, mu)


def elements_to_state(elements: OrbitalElements, mu: float = EARTH.mu) -> StateVector:
    return _elements.elements_to_state(elements, mu)


def elements_from_degrees(
    semi_major_axis_km: float,
    eccentricity: float,
    inclination_deg: float,
    raan_deg: float,
    argument_of_periapsis_deg: float,
    mean_anomaly_deg: float,
    epoch: datetime,
) -> OrbitalElements:
    """Build an element set from display units (km, degrees)."""
    return OrbitalElements(
        semi_major_axis=semi_major_axis_km * 1e3,
        eccentricity=eccentricity,
        inclination=inclination_deg * DEG2RAD,
        raan=(raan_deg % 360.0) * DEG2RAD,
        argument_of_periapsis=(argument_of_periapsis_deg % 360.0) * DEG2RAD,
        mean_anomaly=(mean_anomaly_deg % 360.0) * DEG2RAD,
        epoch=epoch,
    )


def elements_table(elements: OrbitalElements) -> pd.DataFrame:
    """Single-row summary of an element set in km and degrees."""
    return pd.DataFrame([{
        'a [km]': round(elements.semi_major_axis / 1e3, 3),
        'e': round(elements.eccentricity, 6),
        'i [deg]': round(elements.inclination * RAD2DEG, 4),
        'RAAN [deg]': round(elements.raan * RAD2DEG, 4),
        'argp [deg]': round(elements.argument_of_periapsis * RAD2DEG, 4),
        'M [deg]': round(elements.mean_anomaly * RAD2DEG, 4),
        'equatorial': elements.equatorial_orbit,
        'circular': elements.circular_orbit,
    }])


# =============================================================================
# PASSES
# =============================================================================

def predict_passes(
    elements: OrbitalElements,
    observer_lat: float,
    observer_lon: float,
    observer_alt: float,
    from_date: datetime,
    days_ahead: float,
    min_elevation_deg: Optional[float] = None,
    satellite_id: Union[str, int] = 'default',
    cancel: Optional[Any] = None,
    config: Optional[Dict[str, Any]] = None,
):
    """Passes over an observer at (lat deg, lon deg, alt m)."""
    observer = ObserverLocation(observer_lat, observer_lon, observer_alt)
    return _passes.predict_passes(elements, observer, from_date, days_ahead,
                                  min_elevation_deg, satellite_id, cancel, config)


# =============================================================================
# TABLES
# =============================================================================

def passes_table(passes: Iterable[SatellitePass], tz=None) -> pd.DataFrame:
    """
    One row per pass: local times, compass directions, peak elevation,
    range in km and brightness.
    """
    rows = []
    for p in passes:
        rows.append({
            'Satellite': p.satellite_name or p.satellite_id,
            'NORAD': p.satellite_id,
            'Rise': _local(p.rise_time, tz),
            'Rise Dir': p.rise_direction,
            'Culmination': _local(p.culmination_time, tz),
            'Max El [deg]': round(p.max_elevation, 1),
            'Set': _local(p.set_time, tz),
            'Set Dir': p.set_direction,
            'Duration [min]': round(p.duration.total_seconds() / 60.0, 1),
            'Range [km]': round(p.culmination_range / 1e3, 1),
            'Magnitude': round(p.estimated_magnitude, 1),
            'Visible': p.is_visible,
            'Illumination': p.illumination.value,
            'Brightness': p.visibility_description,
        })
    return pd.DataFrame(rows)


def windows_table(windows: Iterable[LaunchWindow], tz=None) -> pd.DataFrame:
    rows = []
    for w in windows:
        rows.append({
            'Target': w.target_body.name,
            'Opens': _local(w.open_date, tz),
            'Optimal': _local(w.optimal_date, tz),
            'Closes': _local(w.close_date, tz),
            'C3 [km^2/s^2]': round(w.c3_km2_s2, 2),
            'Departure dV [km/s]': round(w.departure_delta_v / 1e3, 3),
            'Transfer [days]': round(w.transfer_duration / SECONDS_PER_DAY, 1),
            'Arrival': _local(w.arrival_date, tz),
            'Phase [deg]': round(math.degrees(w.phase_angle), 1),
        })
    return pd.DataFrame(rows)


def transfer_table(transfer: Union[HohmannTransfer, BiEllipticTransfer]) -> pd.DataFrame:
    """Burn-by-burn breakdown of a Hohmann or bi-elliptic transfer in m/s."""
    burns = [transfer.delta_v1, transfer.delta_v2]
    if isinstance(transfer, BiEllipticTransfer):
        burns.append(transfer.delta_v3)
    rows = [{'Burn': k + 1, 'delta-V [m/s]': round(dv, 2)} for k, dv in enumerate(burns)]
    rows.append({'Burn': 'total', 'delta-V [m/s]': round(transfer.total_delta_v, 2)})
    df = pd.DataFrame(rows)
    df.attrs['transfer_time_h'] = transfer.transfer_time / 3600.0
    return df
