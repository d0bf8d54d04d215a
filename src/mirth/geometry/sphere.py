"""Sphere primitive with robust ray-sphere intersection.

The sphere is defined in its own local space by a center and a radius, and
placed in the world by a ``Transform``. Intersection moves the world ray into
local space, solves the quadratic there and maps the hit point and normal
back.

The quadratic is solved with the robust formula from Ray Tracing Gems to avoid
catastrophic cancellation when b^2 is nearly equal to 4ac. A discriminant
within EPSILON of zero is treated as a tangent hit.

This module also defines ``IntersectionInfo``, the hit record shared by every
shape.

Example:
    >>> sphere = Sphere(center=(0.0, 0.0, -5.0), radius=1.0)
    >>> # Inside a kernel:
    >>> info = intersect_sphere(ray, center, radius, to_world, to_local)
"""

import math
from dataclasses import dataclass, field

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import (
    INFINITY,
    Ray,
    is_in_range,
    is_negative,
    is_zero,
    ray_at,
)
from src.mirth.geometry.transform import (
    Transform,
    transform_normal,
    transform_point,
    transform_ray,
)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3
vec2 = tm.vec2
mat4 = tm.mat4


@dataclass(frozen=True)
class Sphere:
    """A sphere in local space, placed in the world by a transform.

    Attributes:
        center: Local-space center.
        radius: Radius (strictly positive).
        transform: Local-to-world transform.
    """

    center: tuple[float, float, float] = (0.0, 0.0, 0.0)
    radius: float = 1.0
    transform: Transform = field(default_factory=Transform.identity)

    def __post_init__(self) -> None:
        if len(self.center) != 3:
            raise ValueError(f"Sphere center must have 3 components, got {self.center}")
        if not math.isfinite(self.radius) or self.radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")


@ti.dataclass
class IntersectionInfo:
    """Record of a ray-shape intersection.

    Attributes:
        hit: 1 if the ray intersected the shape, 0 otherwise. Authoritative.
        point: World-space hit point.
        t: Parametric distance along the ray. +inf when there is no hit.
        normal: World-space surface normal facing against the incoming ray.
            Not guaranteed unit length under non-uniform scales.
        uv: Texture coordinates in [0, 1]^2.
        front_face: 1 if the ray hit the side the local normal points to.
    """

    hit: ti.i32
    point: vec3
    t: ti.f32
    normal: vec3
    uv: vec2
    front_face: ti.i32


@ti.func
def no_intersection() -> IntersectionInfo:
    return IntersectionInfo(
        hit=0,
        point=vec3(0.0, 0.0, 0.0),
        t=INFINITY,
        normal=vec3(0.0, 0.0, 0.0),
        uv=vec2(0.0, 0.0),
        front_face=0,
    )


@ti.func
def make_intersection(ray: Ray, point: vec3, t: ti.f32, normal: vec3, uv: vec2) -> IntersectionInfo:
    """Build a hit record, orienting the normal against the world-space ray."""
    front_face = 1
    oriented = normal
    if tm.dot(ray.direction, normal) > 0.0:
        front_face = 0
        oriented = -normal
    return IntersectionInfo(hit=1, point=point, t=t, normal=oriented, uv=uv, front_face=front_face)


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent ray through the center plane
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_uv(local_normal: vec3) -> vec2:
    """Spherical texture coordinates of a unit normal.

    u runs around the y-axis starting at -x; v runs from the bottom pole (0)
    to the top pole (1).
    """
    theta = ti.acos(ti.min(ti.max(-local_normal.y, -1.0), 1.0))
    phi = ti.atan2(-local_normal.z, local_normal.x) + tm.pi
    return vec2(phi / (2.0 * tm.pi), theta / tm.pi)


@ti.func
def intersect_sphere(
    ray: Ray,
    center: vec3,
    radius: ti.f32,
    to_world: mat4,
    to_local: mat4,
) -> IntersectionInfo:
    """Intersect a world-space ray with a transformed sphere.

    Solves |o + t d - c|^2 = r^2 in local space with
        a = d.d,  h = d.(o - c),  c = |o - c|^2 - r^2
    (h is half of the usual b). The smaller root is preferred; if it is
    outside the ray's range the larger root is tried, which handles rays
    starting inside the sphere. The hit point is re-projected onto the exact
    surface before being mapped back to world space.

    Args:
        ray: World-space ray, including its valid range.
        center: Local-space center.
        radius: Radius.
        to_world: Local-to-world matrix.
        to_local: World-to-local matrix.

    Returns:
        An IntersectionInfo; ``no_intersection()`` on a miss.
    """
    local_ray = transform_ray(to_local, ray)
    oc = local_ray.origin - center

    a = tm.dot(local_ray.direction, local_ray.direction)
    h = tm.dot(local_ray.direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    discriminant = h * h - a * c
    if is_zero(discriminant):
        discriminant = 0.0

    result = no_intersection()

    if not is_negative(discriminant):
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = is_in_range(local_ray, t)
        if not valid:
            t = t1
            valid = is_in_range(local_ray, t)

        if valid:
            # Remove floating-point drift off the surface
            local_point = center + tm.normalize(ray_at(local_ray, t) - center) * radius
            local_normal = (local_point - center) / radius
            result = make_intersection(
                ray,
                transform_point(to_world, local_point),
                t,
                transform_normal(to_local, local_normal),
                sphere_uv(local_normal),
            )

    return result
