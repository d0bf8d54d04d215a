"""Quad primitive with ray-quad intersection.

In local space a quad is the axis-aligned rectangle in the plane z = 0 with
corners at the origin and at (width, height, 0); its local normal is +z. A
``Transform`` places it in the world.

Ray-quad intersection:
1. Move the ray into local space.
2. Reject rays whose local direction is parallel to the plane (|d.z| within
   EPSILON of zero).
3. Solve o.z + t d.z = 0 and reject t outside the ray's range.
4. Snap the hit point onto z = 0 and reject points outside
   [0, width] x [0, height].

Example:
    >>> floor = Quad(width=4.0, height=4.0, transform=Transform.from_sequence(
    ...     [Rotation((1.0, 0.0, 0.0), -90.0), Translation((-2.0, -1.0, 2.0))]))
"""

import math
from dataclasses import dataclass, field

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray, is_in_range, is_zero, ray_at
from src.mirth.geometry.sphere import IntersectionInfo, make_intersection, no_intersection
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
class Quad:
    """A width x height rectangle in the local z = 0 plane.

    Attributes:
        width: Extent along local x (strictly positive).
        height: Extent along local y (strictly positive).
        transform: Local-to-world transform.
    """

    width: float = 1.0
    height: float = 1.0
    transform: Transform = field(default_factory=Transform.identity)

    def __post_init__(self) -> None:
        for name, value in (("width", self.width), ("height", self.height)):
            if not math.isfinite(value) or value <= 0.0:
                raise ValueError(f"Quad {name} must be positive, got {value}")

    @property
    def area(self) -> float:
        """Local-space area."""
        return self.width * self.height


@ti.func
def intersect_quad(
    ray: Ray,
    width: ti.f32,
    height: ti.f32,
    to_world: mat4,
    to_local: mat4,
) -> IntersectionInfo:
    """Intersect a world-space ray with a transformed quad.

    Both sides of the quad are hit; the reported normal faces the incoming
    ray.

    Args:
        ray: World-space ray, including its valid range.
        width: Extent along local x.
        height: Extent along local y.
        to_world: Local-to-world matrix.
        to_local: World-to-local matrix.

    Returns:
        An IntersectionInfo; ``no_intersection()`` on a miss.
    """
    local_ray = transform_ray(to_local, ray)
    result = no_intersection()

    dz = local_ray.direction.z
    if not is_zero(dz):
        t = -local_ray.origin.z / dz
        if is_in_range(local_ray, t):
            local_point = ray_at(local_ray, t)
            local_point.z = 0.0

            inside = (
                local_point.x >= 0.0
                and local_point.x <= width
                and local_point.y >= 0.0
                and local_point.y <= height
            )
            if inside:
                result = make_intersection(
                    ray,
                    transform_point(to_world, local_point),
                    t,
                    transform_normal(to_local, vec3(0.0, 0.0, 1.0)),
                    vec2(local_point.x / width, local_point.y / height),
                )

    return result
