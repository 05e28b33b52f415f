"""
Error kinds raised by the orbital-mechanics engine.

Every error is local and recoverable. Each concrete class also derives from
the built-in exception a caller would reach for first (ValueError for bad
inputs and degenerate geometry, RuntimeError for numerical failure), so
``except ValueError`` keeps working for code that predates this module.
"""


class OrbitalMechanicsError(Exception):
    """Base class for all orbitlab errors."""


class DegenerateVectorError(OrbitalMechanicsError, ValueError):
    """A near-zero-length vector was normalized."""


class DegenerateOrbitError(OrbitalMechanicsError, ValueError):
    """Zero specific angular momentum (rectilinear trajectory)."""


class UnboundOrbitError(OrbitalMechanicsError, ValueError):
    """Keplerian elements requested for a parabolic or hyperbolic path."""


class InvalidOrbitError(OrbitalMechanicsError, ValueError):
    """Orbit radius inside the body, or non-positive periapsis altitude."""


class InvalidParameterError(OrbitalMechanicsError, ValueError):
    """Non-positive timestep, duration or count, or an unknown name."""


class ConvergenceError(OrbitalMechanicsError, RuntimeError):
    """Kepler's equation did not converge within the iteration budget."""
