"""
===============================================================================
ORBITLAB - Celestial Body Table
===============================================================================
Read-only table of the bodies the planner knows about.  Only mass and radius
are stored; the gravitational parameter is derived on access so the two can
never drift apart.

The table is a module-level MappingProxyType built once at import time and
shared by every caller (and every worker process) without locking.
===============================================================================
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from orbitlab.core.constants import GRAVITATIONAL_CONSTANT
from orbitlab.core.exceptions import InvalidParameterError


@dataclass(frozen=True)
class CelestialBody:
    """
    A gravitating body.

    Attributes
    ----------
    name : str
        Display name ("Earth", "Mars", ...).
    mass : float
        Mass (kg).
    radius : float
        Mean radius (m).
    """
    name: str
    mass: float
    radius: float

    @property
    def mu(self) -> float:
        """Gravitational parameter G * M (m^3/s^2)."""
        return GRAVITATIONAL_CONSTANT * self.mass

    @property
    def key(self) -> str:
        return self.name.lower()


SUN = CelestialBody('Sun', 1.98847e30, 6.957e8)
MERCURY = CelestialBody('Mercury', 3.3011e23, 2439700.0)
VENUS = CelestialBody('Venus', 4.8675e24, 6051800.0)
EARTH = CelestialBody('Earth', 5.97237e24, 6371000.0)
MOON = CelestialBody('Moon', 7.342e22, 1737400.0)
MARS = CelestialBody('Mars', 6.4171e23, 3389500.0)
JUPITER = CelestialBody('Jupiter', 1.89819e27, 69911000.0)
SATURN = CelestialBody('Saturn', 5.6834e26, 58232000.0)
URANUS = CelestialBody('Uranus', 8.6810e25, 25362000.0)
NEPTUNE = CelestialBody('Neptune', 1.02413e26, 24622000.0)

BODIES: Mapping[str, CelestialBody] = MappingProxyType({
    body.key: body
    for body in (SUN, MERCURY, VENUS, EARTH, MOON, MARS,
                 JUPITER, SATURN, URANUS, NEPTUNE)
})


def get_body(body: Union[str, CelestialBody]) -> CelestialBody:
    """
    Look up a body by case-insensitive name.

    Args:
        body: Body name, or a CelestialBody (returned unchanged).

    Returns:
        The CelestialBody record.

    Raises:
        InvalidParameterError: If the name is not in the table.
    """
    if isinstance(body, CelestialBody):
        return body
    try:
        return BODIES[str(body).strip().lower()]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown body: {body}. Valid: {sorted(BODIES)}"
        ) from None
