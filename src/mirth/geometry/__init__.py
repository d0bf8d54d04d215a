"""Geometry module for transforms and shape primitives.

Components:
    transform: Affine local/world transforms (host NumPy + device functions)
    sphere: Sphere primitive and the shared IntersectionInfo hit record
    quad: Width x height rectangle in the local z = 0 plane

Every shape intersects a world-space ray by moving it into local space,
solving in closed form and mapping the hit point and normal back:

    info = intersect_<shape>(ray, <shape params>, to_world, to_local)
"""

from .quad import Quad, intersect_quad
from .sphere import IntersectionInfo, Sphere, intersect_sphere, no_intersection
from .transform import (
    Rotation,
    Scale,
    SingularTransformError,
    Transform,
    Translation,
    transform_normal,
    transform_point,
    transform_ray,
    transform_vector,
)

__all__ = [
    "Transform",
    "Rotation",
    "Translation",
    "Scale",
    "SingularTransformError",
    "transform_point",
    "transform_vector",
    "transform_normal",
    "transform_ray",
    "Sphere",
    "IntersectionInfo",
    "intersect_sphere",
    "no_intersection",
    "Quad",
    "intersect_quad",
]
