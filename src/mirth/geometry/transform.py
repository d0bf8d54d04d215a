"""Affine transforms between an object's local space and world space.

A ``Transform`` holds a 4x4 affine matrix (local -> world) together with its
inverse (world -> local). The inverse is computed once, at construction, and
both matrices are read-only afterwards so they can never drift apart.

Host-side math is done in float64 with NumPy. Inside kernels the two matrices
are uploaded as ``mat4`` values and applied with the ``transform_*`` Taichi
functions at the bottom of this module:

    points   use the full affine matrix (translation included)
    vectors  use the linear 3x3 part only
    normals  use the transpose of the inverse's linear part
    rays     map the origin as a point, the direction as a vector and keep
             (min_t, max_t) unchanged, so hit distances agree in both spaces

Example:
    >>> t = Transform.from_sequence([Scale((2.0, 2.0, 2.0)), Translation((0.0, 0.0, -5.0))])
    >>> t.point_to_global((1.0, 0.0, 0.0))
    array([ 2.,  0., -5.])
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray

vec3 = tm.vec3
mat4 = tm.mat4

# Determinants below this magnitude are treated as singular
SINGULAR_TOLERANCE = 1e-12


class SingularTransformError(ValueError):
    """Raised when a transform matrix cannot be inverted."""


def _as_vec3(value: npt.ArrayLike, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite, got {arr.tolist()}")
    return arr


# =============================================================================
# Primitive Steps
# =============================================================================


@dataclass(frozen=True)
class Rotation:
    """Rotation about an axis through the origin.

    Attributes:
        axis: Rotation axis. Normalized before use; must not be zero.
        angle: Rotation angle in degrees (right-handed).
    """

    axis: tuple[float, float, float]
    angle: float

    def matrix(self) -> np.ndarray:
        axis = _as_vec3(self.axis, "rotation axis")
        norm = np.linalg.norm(axis)
        if norm < SINGULAR_TOLERANCE:
            raise ValueError("rotation axis must be non-zero")
        x, y, z = axis / norm
        theta = math.radians(self.angle)
        c = math.cos(theta)
        s = math.sin(theta)
        k = 1.0 - c
        # Rodrigues' rotation formula
        return np.array(
            [
                [c + x * x * k, x * y * k - z * s, x * z * k + y * s, 0.0],
                [y * x * k + z * s, c + y * y * k, y * z * k - x * s, 0.0],
                [z * x * k - y * s, z * y * k + x * s, c + z * z * k, 0.0],
                [0.0, 0.0, 0.0, 1.0],
            ]
        )


@dataclass(frozen=True)
class Translation:
    offset: tuple[float, float, float]

    def matrix(self) -> np.ndarray:
        m = np.identity(4)
        m[:3, 3] = _as_vec3(self.offset, "translation")
        return m


@dataclass(frozen=True)
class Scale:
    factors: tuple[float, float, float]

    def matrix(self) -> np.ndarray:
        m = np.identity(4)
        m[:3, :3] = np.diag(_as_vec3(self.factors, "scale"))
        return m


TransformStep = Rotation | Translation | Scale


# =============================================================================
# Transform
# =============================================================================


class Transform:
    """An affine local-to-world matrix paired with its inverse.

    Args:
        matrix: 4x4 affine matrix mapping local coordinates to world
            coordinates. The bottom row must be (0, 0, 0, 1).

    Raises:
        ValueError: If the matrix is not 4x4, not finite, or not affine.
        SingularTransformError: If the matrix is not invertible.
    """

    __slots__ = ("_matrix", "_inverse")

    def __init__(self, matrix: npt.ArrayLike) -> None:
        m = np.array(matrix, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError(f"transform matrix must be 4x4, got shape {m.shape}")
        if not np.all(np.isfinite(m)):
            raise ValueError("transform matrix must be finite")
        if not np.allclose(m[3], (0.0, 0.0, 0.0, 1.0)):
            raise ValueError(f"transform matrix must be affine, bottom row is {m[3].tolist()}")
        det = np.linalg.det(m)
        if abs(det) < SINGULAR_TOLERANCE:
            raise SingularTransformError(f"transform matrix is singular (determinant {det:g})")
        inverse = np.linalg.inv(m)
        m.setflags(write=False)
        inverse.setflags(write=False)
        self._matrix = m
        self._inverse = inverse

    @classmethod
    def identity(cls) -> "Transform":
        return cls(np.identity(4))

    @classmethod
    def for_viewer(
        cls,
        look_from: npt.ArrayLike,
        look_at: npt.ArrayLike,
        up_direction: npt.ArrayLike,
    ) -> "Transform":
        """Build a camera-style transform looking from one point at another.

        The local frame looks down -z with +y up. The up vector is re-derived
        so the basis is orthonormal; ``up_direction`` only picks the roll.

        Args:
            look_from: Eye position (becomes the translation).
            look_at: Point the local -z axis points at.
            up_direction: Approximate up direction.

        Raises:
            ValueError: If look_from equals look_at or up is parallel to the
                viewing direction.
        """
        eye = _as_vec3(look_from, "look_from")
        target = _as_vec3(look_at, "look_at")
        up = _as_vec3(up_direction, "up_direction")

        forward = eye - target
        forward_len = np.linalg.norm(forward)
        if forward_len < SINGULAR_TOLERANCE:
            raise ValueError("look_from and look_at must differ")
        forward = forward / forward_len

        right = np.cross(up, forward)
        right_len = np.linalg.norm(right)
        if right_len < SINGULAR_TOLERANCE:
            raise ValueError("up_direction must not be parallel to the viewing direction")
        right = right / right_len
        true_up = np.cross(forward, right)

        m = np.identity(4)
        m[:3, 0] = right
        m[:3, 1] = true_up
        m[:3, 2] = forward
        m[:3, 3] = eye
        return cls(m)

    @classmethod
    def from_sequence(cls, steps: Iterable[TransformStep]) -> "Transform":
        """Compose primitive steps, applied in the order given.

        Each step is pre-multiplied onto the running product, so the first
        step is the first one applied to a local point.
        """
        result = np.identity(4)
        for step in steps:
            result = step.matrix() @ result
        return cls(result)

    @property
    def matrix(self) -> np.ndarray:
        """Local-to-world matrix (read-only)."""
        return self._matrix

    @property
    def inverse(self) -> np.ndarray:
        """World-to-local matrix (read-only)."""
        return self._inverse

    # ------------------------------------------------------------------
    # Host-side application
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_point(m: np.ndarray, p: npt.ArrayLike) -> np.ndarray:
        return m[:3, :3] @ np.asarray(p, dtype=np.float64) + m[:3, 3]

    @staticmethod
    def _apply_vector(m: np.ndarray, v: npt.ArrayLike) -> np.ndarray:
        return m[:3, :3] @ np.asarray(v, dtype=np.float64)

    def point_to_global(self, p: npt.ArrayLike) -> np.ndarray:
        return self._apply_point(self._matrix, p)

    def point_to_local(self, p: npt.ArrayLike) -> np.ndarray:
        return self._apply_point(self._inverse, p)

    def vector_to_global(self, v: npt.ArrayLike) -> np.ndarray:
        return self._apply_vector(self._matrix, v)

    def vector_to_local(self, v: npt.ArrayLike) -> np.ndarray:
        return self._apply_vector(self._inverse, v)

    def normal_to_global(self, n: npt.ArrayLike) -> np.ndarray:
        """Map a local surface normal to world space (not renormalized)."""
        return self._inverse[:3, :3].T @ np.asarray(n, dtype=np.float64)

    def to_taichi(self) -> tuple[ti.Matrix, ti.Matrix]:
        """Return (matrix, inverse) as Taichi matrices for field upload."""
        return ti.Matrix(self._matrix.tolist()), ti.Matrix(self._inverse.tolist())

    def __repr__(self) -> str:
        return f"Transform({self._matrix.tolist()!r})"


# =============================================================================
# Device-side application
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    return vec3(
        m[0, 0] * p.x + m[0, 1] * p.y + m[0, 2] * p.z + m[0, 3],
        m[1, 0] * p.x + m[1, 1] * p.y + m[1, 2] * p.z + m[1, 3],
        m[2, 0] * p.x + m[2, 1] * p.y + m[2, 2] * p.z + m[2, 3],
    )


@ti.func
def transform_vector(m: mat4, v: vec3) -> vec3:
    return vec3(
        m[0, 0] * v.x + m[0, 1] * v.y + m[0, 2] * v.z,
        m[1, 0] * v.x + m[1, 1] * v.y + m[1, 2] * v.z,
        m[2, 0] * v.x + m[2, 1] * v.y + m[2, 2] * v.z,
    )


@ti.func
def transform_normal(inverse: mat4, n: vec3) -> vec3:
    """Map a normal with the inverse-transpose of the forward transform.

    Args:
        inverse: The inverse of the transform the surface went through.
        n: The normal before the transform.

    Returns:
        The transformed normal. Not renormalized.
    """
    return vec3(
        inverse[0, 0] * n.x + inverse[1, 0] * n.y + inverse[2, 0] * n.z,
        inverse[0, 1] * n.x + inverse[1, 1] * n.y + inverse[2, 1] * n.z,
        inverse[0, 2] * n.x + inverse[1, 2] * n.y + inverse[2, 2] * n.z,
    )


@ti.func
def transform_ray(m: mat4, ray: Ray) -> Ray:
    """Map a ray through m, keeping its parametric range."""
    return Ray(
        origin=transform_point(m, ray.origin),
        direction=transform_vector(m, ray.direction),
        min_t=ray.min_t,
        max_t=ray.max_t,
    )
