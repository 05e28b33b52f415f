"""
===============================================================================
ORBITLAB - Physical and Astronomical Constants
===============================================================================
Central repository for the constants used by the orbital-mechanics engine.
SI units throughout (meters, seconds, kilograms, radians).

Body masses and radii live in core.bodies; gravitational parameters are
always derived from them (mu = G * M) rather than tabulated here.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
GRAVITATIONAL_CONSTANT = 6.67430e-11   # m^3 / (kg * s^2)
AU = 1.495978707e11                    # Astronomical Unit in meters

# =============================================================================
# TIME
# =============================================================================
SECONDS_PER_DAY = 86400.0
JULIAN_DATE_J2000 = 2451545.0          # 2000-01-01 12:00 TT
DAYS_PER_JULIAN_CENTURY = 36525.0

# =============================================================================
# EARTH FIGURE AND ROTATION (WGS84)
# =============================================================================
EARTH_EQUATORIAL_RADIUS = 6378137.0    # m
EARTH_POLAR_RADIUS = 6356752.314       # m
EARTH_FLATTENING = 1.0 / 298.257223563
EARTH_ROTATION_RATE = 7.2921159e-5     # rad/s (sidereal)
ECLIPTIC_OBLIQUITY_J2000 = 23.439291 * DEG2RAD

# =============================================================================
# NUMERICAL TOLERANCES
# =============================================================================
# Magnitudes below this are treated as zero when normalizing.
VECTOR_ZERO_TOL = 1e-12
# |h| / (|r| |v|) below this means a rectilinear trajectory.
ANGULAR_MOMENTUM_TOL = 1e-10
# sin(i) below this means the node line is undefined.
EQUATORIAL_TOL = 1e-10
# Eccentricities below this are reported as circular.
CIRCULAR_TOL = 1e-10
# Slack on the [0, pi] inclination bound for degree-to-radian round-off.
INCLINATION_TOL = 1e-12

KEPLER_TOLERANCE = 1e-10               # rad
KEPLER_MAX_ITERATIONS = 50

# =============================================================================
# HELIOCENTRIC ORBIT TABLES
# =============================================================================
# Mean heliocentric distances (m), treated as circular coplanar orbits for
# launch-window estimates.
PLANET_MEAN_DISTANCE = {
    'mercury': 0.387098 * AU,
    'venus': 0.723332 * AU,
    'earth': 1.000000 * AU,
    'mars': 1.523679 * AU,
    'jupiter': 5.2044 * AU,
    'saturn': 9.5826 * AU,
    'uranus': 19.2184 * AU,
    'neptune': 30.110387 * AU,
}

# Earth-target synodic periods (days). Properties of the pair, tabulated
# rather than recomputed.
SYNODIC_PERIOD_DAYS = {
    'mercury': 115.88,
    'venus': 583.92,
    'mars': 779.94,
    'jupiter': 398.88,
    'saturn': 378.09,
    'uranus': 369.66,
    'neptune': 367.49,
}

# =============================================================================
# OBSERVATION DEFAULTS
# =============================================================================
DEFAULT_PARKING_ALTITUDE = 200000.0    # m
DEFAULT_WINDOW_HALF_WIDTH_DAYS = 7.0
DEFAULT_SAMPLE_STEP = 60.0             # s
DEFAULT_MIN_ELEVATION_DEG = 10.0
DEFAULT_VISIBILITY_ELEVATION_DEG = 30.0
CIVIL_TWILIGHT_SUN_ELEVATION_DEG = -6.0
DEFAULT_REFERENCE_RANGE = 1.0e6        # m (standard magnitude range)
DEFAULT_REFERENCE_MAGNITUDE = 4.0
