"""Ray data structure, tolerance helpers and vector utilities.

Rays carry their own valid parametric range ``(min_t, max_t)``. A fresh ray
starts at ``min_t = EPSILON`` so that a ray leaving a surface does not
re-intersect it, and ``max_t = +inf``; the range is narrowed as closer hits are
found during a group search.

All sign and zero checks on floating-point values go through ``is_negative``,
``is_positive`` and ``is_zero`` so that the same tolerance absorbs rounding
error in intersection, transform and sampling code.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = make_ray(origin, direction)  # inside a kernel
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Tolerance for every floating-point sign/zero comparison
EPSILON = 1e-5

# Initial range of a freshly generated ray
RAY_MIN_T = EPSILON
INFINITY = float("inf")


@ti.dataclass
class Ray:
    """A ray with an origin, a direction and a valid parametric range.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; intersection distances are measured in multiples of it.
        min_t: Exclusive lower bound of accepted hit distances.
        max_t: Exclusive upper bound of accepted hit distances.
    """

    origin: vec3
    direction: vec3
    min_t: ti.f32
    max_t: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray with the default range ``(EPSILON, +inf)``.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, min_t=RAY_MIN_T, max_t=INFINITY)


@ti.func
def is_in_range(ray: Ray, t: ti.f32) -> ti.i32:
    """Check whether t lies strictly inside the ray's valid range."""
    return (t > ray.min_t) and (t < ray.max_t)


# =============================================================================
# Tolerance Helpers
# =============================================================================


@ti.func
def is_negative(x: ti.f32) -> ti.i32:
    return x < -EPSILON


@ti.func
def is_positive(x: ti.f32) -> ti.i32:
    return x > EPSILON


@ti.func
def is_zero(x: ti.f32) -> ti.i32:
    return ti.abs(x) <= EPSILON


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the length (magnitude) of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


# =============================================================================
# Orthonormal Basis
# =============================================================================


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis whose z-axis is the given direction.

    The input is normalized here, so world-space normals that are not unit
    length (e.g. after a non-uniform scale) can be passed directly.

    Args:
        normal: The direction that becomes the local z-axis.

    Returns:
        A tuple (tangent, bitangent, normal) of unit vectors forming a
        right-handed orthonormal basis.
    """
    n = normalize(normal)
    # Helper axis must not be parallel to n
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(n.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    bitangent = normalize(cross(n, a))
    tangent = cross(bitangent, n)
    return tangent, bitangent, n


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a direction from local to world coordinates.

    Args:
        local_dir: Direction in local coordinates (z-up).
        tangent: The x-axis of the local frame in world coordinates.
        bitangent: The y-axis of the local frame in world coordinates.
        normal: The z-axis of the local frame in world coordinates.

    Returns:
        The direction in world coordinates.
    """
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal
