"""
===============================================================================
ORBITLAB - Satellite Photometric Catalog
===============================================================================
Each tracked satellite carries a reference pair (magnitude m0 at range d0)
from which the apparent brightness at any range follows the inverse-square
law:

    m = m0 + 5 log10(d / d0)

Entries live in the ``satellites`` section of the configuration, keyed by
NORAD catalog number.  Unknown ids fall back to the ``default`` entry.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from orbitlab.core.config import section
from orbitlab.core.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SatelliteProfile:
    satellite_id: str
    name: str
    reference_magnitude: float
    reference_range: float

    def __post_init__(self):
        if self.reference_range <= 0:
            raise InvalidParameterError(
                f"reference_range must be positive, got {self.reference_range}"
            )

    def magnitude_at(self, slant_range: float) -> float:
        """Apparent visual magnitude at *slant_range* metres."""
        return self.reference_magnitude + 5.0 * math.log10(slant_range / self.reference_range)


def get_profile(satellite_id: Union[str, int],
                config: Optional[Dict[str, Any]] = None) -> SatelliteProfile:
    """
    Photometric profile for a satellite.

    Args:
        satellite_id: NORAD catalog number (str or int).
        config: Loaded configuration; the default config is used if None.

    Returns:
        The catalog entry, or the default entry under the requested id.
    """
    catalog = section(config, 'satellites')
    key = str(satellite_id).strip()
    entry = dict(catalog['default'])
    if key in catalog:
        # Fields missing from a catalog entry come from the default profile.
        entry['name'] = key
        entry.update(catalog[key] or {})
    else:
        logger.warning("Satellite %s not in photometric catalog, using default profile", key)
    return SatelliteProfile(
        satellite_id=key,
        name=str(entry['name']),
        reference_magnitude=float(entry['reference_magnitude']),
        reference_range=float(entry['reference_range_m']),
    )
