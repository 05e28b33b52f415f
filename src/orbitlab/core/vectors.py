"""
===============================================================================
ORBITLAB - 3D Vector Algebra
===============================================================================
Immutable 3-vector value type and the pure functions every other component
builds on.  Functions never mutate their arguments; each returns a new
Vector3 (or a float).

The operator overloads on Vector3 delegate to the module-level functions so
that formulas can be written either way:

    e = sub(scale(cross(v, h), 1.0 / mu), normalize(r))
    e = cross(v, h) / mu - normalize(r)

Batch work (thousands of samples) is done with NumPy arrays elsewhere;
``to_array`` / ``from_array`` bridge the two worlds.
===============================================================================
"""

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from orbitlab.core.constants import VECTOR_ZERO_TOL
from orbitlab.core.exceptions import DegenerateVectorError


@dataclass(frozen=True)
class Vector3:
    """
    Immutable Cartesian 3-vector.

    Attributes
    ----------
    x, y, z : float
        Components, in whatever unit the caller is working in (m, m/s, ...).
    """
    x: float
    y: float
    z: float

    def __post_init__(self):
        object.__setattr__(self, 'x', float(self.x))
        object.__setattr__(self, 'y', float(self.y))
        object.__setattr__(self, 'z', float(self.z))

    @classmethod
    def zero(cls) -> 'Vector3':
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> 'Vector3':
        """Build from any 3-element sequence or ndarray."""
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        if arr.shape != (3,):
            raise ValueError(f"Expected 3 components, got shape {arr.shape}")
        return cls(arr[0], arr[1], arr[2])

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y, self.z))

    def __add__(self, other: 'Vector3') -> 'Vector3':
        return add(self, other)

    def __sub__(self, other: 'Vector3') -> 'Vector3':
        return sub(self, other)

    def __neg__(self) -> 'Vector3':
        return scale(self, -1.0)

    def __mul__(self, k: float) -> 'Vector3':
        return scale(self, k)

    __rmul__ = __mul__

    def __truediv__(self, k: float) -> 'Vector3':
        return scale(self, 1.0 / k)

    @property
    def magnitude(self) -> float:
        return magnitude(self)

    def dot(self, other: 'Vector3') -> float:
        return dot(self, other)

    def cross(self, other: 'Vector3') -> 'Vector3':
        return cross(self, other)

    def normalized(self) -> 'Vector3':
        return normalize(self)

    def distance_to(self, other: 'Vector3') -> float:
        return distance(self, other)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def add(a: Vector3, b: Vector3) -> Vector3:
    return Vector3(a.x + b.x, a.y + b.y, a.z + b.z)


def sub(a: Vector3, b: Vector3) -> Vector3:
    return Vector3(a.x - b.x, a.y - b.y, a.z - b.z)


def scale(v: Vector3, k: float) -> Vector3:
    return Vector3(v.x * k, v.y * k, v.z * k)


def dot(a: Vector3, b: Vector3) -> float:
    return a.x * b.x + a.y * b.y + a.z * b.z


def cross(a: Vector3, b: Vector3) -> Vector3:
    """Right-handed cross product a x b."""
    return Vector3(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


def magnitude(v: Vector3) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def normalize(v: Vector3) -> Vector3:
    """
    Unit vector along *v*.

    Raises
    ------
    DegenerateVectorError
        If |v| is below VECTOR_ZERO_TOL.
    """
    mag = magnitude(v)
    if mag < VECTOR_ZERO_TOL:
        raise DegenerateVectorError(
            f"Cannot normalize near-zero vector (|v| = {mag:.3e})"
        )
    return scale(v, 1.0 / mag)


def distance(a: Vector3, b: Vector3) -> float:
    return magnitude(sub(a, b))


def angle_between(a: Vector3, b: Vector3) -> float:
    """Unsigned angle between two vectors (rad), in [0, pi]."""
    cos_angle = dot(normalize(a), normalize(b))
    return math.acos(max(-1.0, min(1.0, cos_angle)))


def rotate_about_axis(v: Vector3, axis: Vector3, angle: float) -> Vector3:
    """
    Rotate *v* by *angle* (rad) about *axis* using Rodrigues' formula:

        v_rot = v cos(a) + (k x v) sin(a) + k (k . v)(1 - cos(a))

    The magnitude of *v* is preserved.
    """
    k = normalize(axis)
    c = math.cos(angle)
    s = math.sin(angle)
    return add(
        add(scale(v, c), scale(cross(k, v), s)),
        scale(k, dot(k, v) * (1.0 - c)),
    )
