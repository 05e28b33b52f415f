"""
===============================================================================
ORBITLAB - Satellite Pass Predictor
===============================================================================
Finds the intervals during which a satellite is above an observer's horizon,
and estimates how bright it will look.

Pipeline per sample instant t (default cadence 60 s):

    elements --propagate_kepler--> r_eci(t)
    r_eci    --GMST(t)----------> r_ecef(t)
    r_ecef   --WGS84 site, ENU--> azimuth, elevation, range

A four-state scanner walks the elevation series:

    BELOW_HORIZON --el >= 0--> RISING --el drops--> CULMINATING
          ^                                               |
          |                                               v
          +------------------el < 0------------------ SETTING

A pass is only reported once it has been seen to rise AND set inside the
search window.  Rise and set are then refined to the exact horizon crossing
(Brent's method on the bracketing sample interval) and the culmination to
the true elevation maximum (bounded scalar minimization).

Visibility needs the satellite in sunlight (cylindrical Earth shadow) while
the observer's Sun is below civil twilight.  With illumination disabled the
fallback rule is: visible when the pass peaks above 30 deg.

Long scans are chunked; between chunks an optional ``cancel`` object (any
object with ``is_set()``, e.g. threading.Event or multiprocessing.Event) is
polled and, once set, the passes completed so far are returned.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.optimize import brentq, minimize_scalar

from orbitlab.core import frames
from orbitlab.core.bodies import EARTH
from orbitlab.core.config import load_config, section
from orbitlab.core.constants import DEG2RAD, RAD2DEG, SECONDS_PER_DAY
from orbitlab.core.exceptions import InvalidParameterError
from orbitlab.dynamics.orbital_elements import OrbitalElements
from orbitlab.dynamics.propagator import propagate_kepler
from orbitlab.observation.catalog import SatelliteProfile, get_profile

logger = logging.getLogger(__name__)

_COMPASS_POINTS = ('N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW')


class Illumination(Enum):
    SUNLIT = 'sunlit'
    ECLIPSED = 'eclipsed'
    UNKNOWN = 'unknown'


class ScanState(Enum):
    BELOW_HORIZON = 'below_horizon'
    RISING = 'rising'
    CULMINATING = 'culminating'
    SETTING = 'setting'


def compass_point(azimuth_deg: float) -> str:
    """Eight-point compass direction for an azimuth in degrees."""
    return _COMPASS_POINTS[int(((azimuth_deg % 360.0) + 22.5) // 45.0) % 8]


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class ObserverLocation:
    """
    Ground observer.

    Attributes
    ----------
    latitude : float
        Geodetic latitude (deg), [-90, 90].
    longitude : float
        East longitude (deg), [-180, 360).
    altitude : float
        Height above the WGS84 ellipsoid (m).
    """
    latitude: float
    longitude: float
    altitude: float = 0.0

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidParameterError(
                f"Latitude must be in [-90, 90] deg, got {self.latitude}"
            )
        if not -180.0 <= self.longitude < 360.0:
            raise InvalidParameterError(
                f"Longitude must be in [-180, 360) deg, got {self.longitude}"
            )

    @property
    def latitude_rad(self) -> float:
        return self.latitude * DEG2RAD

    @property
    def longitude_rad(self) -> float:
        return self.longitude * DEG2RAD


@dataclass(frozen=True)
class SatellitePass:
    """
    One horizon-to-horizon pass.  Angles in degrees, range in metres.

    Construction enforces rise_time < culmination_time < set_time.
    """
    satellite_id: str
    rise_time: datetime
    culmination_time: datetime
    set_time: datetime
    max_elevation: float
    rise_azimuth: float
    set_azimuth: float
    estimated_magnitude: float
    is_visible: bool
    culmination_azimuth: float = 0.0
    culmination_range: float = 0.0
    illumination: Illumination = Illumination.UNKNOWN
    satellite_name: str = ''

    def __post_init__(self):
        if not self.rise_time < self.culmination_time < self.set_time:
            raise InvalidParameterError(
                f"Pass events out of order: rise {self.rise_time}, "
                f"culmination {self.culmination_time}, set {self.set_time}"
            )

    @property
    def duration(self) -> timedelta:
        return self.set_time - self.rise_time

    @property
    def rise_direction(self) -> str:
        return compass_point(self.rise_azimuth)

    @property
    def set_direction(self) -> str:
        return compass_point(self.set_azimuth)

    @property
    def culmination_direction(self) -> str:
        return compass_point(self.culmination_azimuth)

    @property
    def visibility_description(self) -> str:
        m = self.estimated_magnitude
        if m < 0:
            return "Very Bright (like Venus)"
        if m < 2:
            return "Bright (like a bright star)"
        if m < 4:
            return "Visible (naked eye)"
        return "Hard to see (binoculars needed)"

    def is_in_progress(self, at: datetime) -> bool:
        return self.rise_time <= at <= self.set_time


class _RawPass(NamedTuple):
    """Sample instants (s from scan start) bracketing one pass."""
    before_rise: float
    rise: float
    peak: float
    last_above: float
    below: float


# =============================================================================
# GEOMETRY
# =============================================================================

class _Track:
    """Look angles of one satellite from one observer, as a function of
    seconds elapsed since the scan start."""

    def __init__(self, elements: OrbitalElements, observer: ObserverLocation,
                 start: datetime):
        self.elements = elements
        self.observer = observer
        self._offset = (frames.as_utc(start) - frames.as_utc(elements.epoch)).total_seconds()
        self._jd0 = frames.julian_date(start)
        self._mu = EARTH.mu

    def _jd(self, t: np.ndarray) -> np.ndarray:
        return self._jd0 + t / SECONDS_PER_DAY

    def eci(self, t) -> np.ndarray:
        t = np.atleast_1d(np.asarray(t, dtype=np.float64))
        positions, _ = propagate_kepler(self.elements, self._mu, self._offset + t)
        return positions

    def look(self, t) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Azimuth (rad), elevation (rad), range (m) at offsets *t*."""
        t = np.atleast_1d(np.asarray(t, dtype=np.float64))
        r_ecef = frames.eci_to_ecef(self.eci(t), frames.gmst(self._jd(t)))
        return frames.look_angles(
            r_ecef,
            self.observer.latitude_rad,
            self.observer.longitude_rad,
            self.observer.altitude,
        )

    def elevation(self, t: float) -> float:
        return float(self.look(t)[1][0])

    def illumination(self, t: float, twilight_deg: float) -> Tuple[bool, bool]:
        """(satellite sunlit, observer in darkness) at offset *t*."""
        t_arr = np.atleast_1d(float(t))
        jd = self._jd(t_arr)
        sun_eci = frames.sun_position_eci(jd)
        sunlit = bool(frames.is_sunlit(self.eci(t_arr), sun_eci)[0])

        sun_ecef = frames.eci_to_ecef(sun_eci, frames.gmst(jd))
        _, sun_el, _ = frames.look_angles(
            sun_ecef,
            self.observer.latitude_rad,
            self.observer.longitude_rad,
            self.observer.altitude,
        )
        dark = bool(sun_el[0] * RAD2DEG < twilight_deg)
        return sunlit, dark


# =============================================================================
# SCAN STATE MACHINE
# =============================================================================

class _PassScanner:
    """
    Consumes (t, elevation) samples in time order and emits a _RawPass each
    time a complete rise/set sequence has been observed.
    """

    def __init__(self):
        self.state = ScanState.BELOW_HORIZON
        self._prev_t: Optional[float] = None
        self._prev_el: Optional[float] = None
        self._before_rise = 0.0
        self._rise = 0.0
        self._peak_t = 0.0
        self._peak_el = -math.inf

    def feed(self, t: float, el: float) -> Optional[_RawPass]:
        finished = None
        above = el >= 0.0

        if self.state is ScanState.BELOW_HORIZON:
            # A satellite already up at the first sample has no observed rise.
            if above and self._prev_el is not None and self._prev_el < 0.0:
                self.state = ScanState.RISING
                self._before_rise = self._prev_t
                self._rise = t
                self._peak_t = t
                self._peak_el = el
        elif not above:
            finished = _RawPass(self._before_rise, self._rise, self._peak_t,
                                self._prev_t, t)
            self.state = ScanState.BELOW_HORIZON
        elif el > self._peak_el:
            self._peak_t = t
            self._peak_el = el
            self.state = ScanState.RISING
        elif self.state is ScanState.RISING:
            self.state = ScanState.CULMINATING
        else:
            self.state = ScanState.SETTING

        self._prev_t = t
        self._prev_el = el
        return finished


# =============================================================================
# PASS ASSEMBLY
# =============================================================================

def _refine(raw: _RawPass, track: _Track, step: float) -> Tuple[float, float, float]:
    t_rise = brentq(track.elevation, raw.before_rise, raw.rise, xtol=1e-3)
    t_set = brentq(track.elevation, raw.last_above, raw.below, xtol=1e-3)

    lo = max(raw.peak - step, t_rise)
    hi = min(raw.peak + step, t_set)
    t_peak = raw.peak
    if hi > lo:
        res = minimize_scalar(lambda x: -track.elevation(x), bounds=(lo, hi),
                              method='bounded', options={'xatol': 1e-2})
        if res.success and -res.fun > track.elevation(raw.peak):
            t_peak = float(res.x)
    return t_rise, t_peak, t_set


def _build_pass(
    raw: _RawPass,
    track: _Track,
    start: datetime,
    profile: SatelliteProfile,
    opts: Dict[str, Any],
    min_elevation_deg: float,
) -> Optional[SatellitePass]:
    if opts['refine_events']:
        t_rise, t_peak, t_set = _refine(raw, track, opts['sample_step_s'])
    else:
        t_rise, t_peak, t_set = raw.rise, raw.peak, raw.below

    if not t_rise < t_peak < t_set:
        logger.debug("Dropping pass with unordered events (rise=%.1f s, peak=%.1f s, set=%.1f s)",
                     t_rise, t_peak, t_set)
        return None

    az, el, rng = track.look([t_rise, t_peak, t_set])
    max_el = float(el[1] * RAD2DEG)
    if max_el < min_elevation_deg:
        return None

    if opts['use_illumination']:
        sunlit, dark = track.illumination(t_peak, float(opts['twilight_sun_elevation_deg']))
        illumination = Illumination.SUNLIT if sunlit else Illumination.ECLIPSED
        visible = sunlit and dark
    else:
        illumination = Illumination.UNKNOWN
        visible = max_el > float(opts['visibility_elevation_deg'])

    return SatellitePass(
        satellite_id=profile.satellite_id,
        rise_time=start + timedelta(seconds=t_rise),
        culmination_time=start + timedelta(seconds=t_peak),
        set_time=start + timedelta(seconds=t_set),
        max_elevation=max_el,
        rise_azimuth=float(az[0] * RAD2DEG),
        set_azimuth=float(az[2] * RAD2DEG),
        estimated_magnitude=profile.magnitude_at(float(rng[1])),
        is_visible=visible,
        culmination_azimuth=float(az[1] * RAD2DEG),
        culmination_range=float(rng[1]),
        illumination=illumination,
        satellite_name=profile.name,
    )


# =============================================================================
# PUBLIC API
# =============================================================================

def predict_passes(
    elements: OrbitalElements,
    observer: ObserverLocation,
    from_date: datetime,
    days_ahead: float,
    min_elevation_deg: Optional[float] = None,
    satellite_id: Union[str, int] = 'default',
    cancel: Optional[Any] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[SatellitePass]:
    """
    Predict the passes of one satellite over one observer.

    Parameters
    ----------
    elements : OrbitalElements
        Geocentric element set of the satellite.
    observer : ObserverLocation
    from_date : datetime
        Start of the search window.
    days_ahead : float
        Window length (days), > 0.
    min_elevation_deg : float, optional
        Passes peaking lower are discarded.  Defaults to
        ``passes.min_elevation_deg``.
    satellite_id : str or int
        NORAD id; selects the photometric profile.
    cancel : object with ``is_set()``, optional
        Polled every ``passes.check_every`` samples.
    config : dict, optional
        Loaded configuration.

    Returns
    -------
    list of SatellitePass
        Sorted by rise time.  Partial if cancelled.

    Raises
    ------
    InvalidParameterError
        If days_ahead or the sample step is not positive.
    """
    if days_ahead <= 0:
        raise InvalidParameterError(f"days_ahead must be positive, got {days_ahead}")
    if config is None:
        config = load_config()

    opts = dict(section(config, 'passes'))
    step = float(opts['sample_step_s'])
    if step <= 0:
        raise InvalidParameterError(f"sample_step_s must be positive, got {step}")
    if min_elevation_deg is None:
        min_elevation_deg = float(opts['min_elevation_deg'])
    check_every = max(1, int(opts['check_every']))

    profile = get_profile(satellite_id, config)
    track = _Track(elements, observer, from_date)
    scanner = _PassScanner()

    n_samples = int(math.floor(days_ahead * SECONDS_PER_DAY / step + 1e-9)) + 1
    logger.info("Scanning passes of %s (%s): %d samples over %.2f day(s)",
                profile.satellite_id, profile.name, n_samples, days_ahead)

    passes: List[SatellitePass] = []
    for chunk_start in range(0, n_samples, check_every):
        if cancel is not None and cancel.is_set():
            logger.info("Pass scan of %s cancelled after %d/%d samples, returning %d pass(es)",
                        profile.satellite_id, chunk_start, n_samples, len(passes))
            return sorted(passes, key=lambda p: p.rise_time)

        t = np.arange(chunk_start, min(chunk_start + check_every, n_samples)) * step
        _, elevation, _ = track.look(t)
        for ti, eli in zip(t.tolist(), elevation.tolist()):
            raw = scanner.feed(ti, eli)
            if raw is None:
                continue
            sat_pass = _build_pass(raw, track, from_date, profile, opts, min_elevation_deg)
            if sat_pass is not None:
                passes.append(sat_pass)

    if scanner.state is not ScanState.BELOW_HORIZON:
        logger.debug("Discarding pass of %s still above the horizon at window end",
                     profile.satellite_id)

    logger.info("Found %d pass(es) of %s", len(passes), profile.satellite_id)
    return sorted(passes, key=lambda p: p.rise_time)


def predict_passes_for_many(
    requests: Iterable[Tuple[Union[str, int], OrbitalElements]],
    observer: ObserverLocation,
    from_date: datetime,
    days_ahead: float,
    min_elevation_deg: Optional[float] = None,
    cancel: Optional[Any] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[SatellitePass]:
    """
    Passes of several satellites, merged into one list sorted by rise time.

    *requests* is an iterable of ``(satellite_id, elements)`` pairs.
    """
    if config is None:
        config = load_config()
    merged: List[SatellitePass] = []
    for satellite_id, elements in requests:
        if cancel is not None and cancel.is_set():
            break
        merged.extend(predict_passes(elements, observer, from_date, days_ahead,
                                     min_elevation_deg, satellite_id, cancel, config))
    return sorted(merged, key=lambda p: p.rise_time)


def look_angles(
    elements: OrbitalElements,
    observer: ObserverLocation,
    epochs: Sequence[datetime],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Azimuth (deg), elevation (deg) and range (m) of a satellite at arbitrary
    instants, for live pointing.
    """
    if len(epochs) == 0:
        empty = np.empty(0)
        return empty, empty.copy(), empty.copy()
    start = epochs[0]
    track = _Track(elements, observer, start)
    t = np.array([(frames.as_utc(e) - frames.as_utc(start)).total_seconds() for e in epochs])
    az, el, rng = track.look(t)
    return az * RAD2DEG, el * RAD2DEG, rng


# =============================================================================
# FILTERS
# =============================================================================

def visible_passes(passes: Iterable[SatellitePass]) -> List[SatellitePass]:
    return [p for p in passes if p.is_visible]


def passes_for_satellite(passes: Iterable[SatellitePass],
                         satellite_id: Union[str, int]) -> List[SatellitePass]:
    key = str(satellite_id)
    return [p for p in passes if p.satellite_id == key]


def passes_on_day(passes: Iterable[SatellitePass], day: date,
                  tz: Optional[tzinfo] = None) -> List[SatellitePass]:
    """Passes rising on calendar *day*, in time zone *tz* if given."""
    selected = []
    for p in passes:
        rise = p.rise_time
        if tz is not None:
            rise = frames.as_utc(rise).astimezone(tz)
        if rise.date() == day:
            selected.append(p)
    return selected


def next_pass(passes: Iterable[SatellitePass], after: datetime) -> Optional[SatellitePass]:
    upcoming = [p for p in passes if p.rise_time >= after]
    return min(upcoming, key=lambda p: p.rise_time) if upcoming else None


def passes_in_progress(passes: Iterable[SatellitePass], at: datetime) -> List[SatellitePass]:
    return [p for p in passes if p.is_in_progress(at)]
