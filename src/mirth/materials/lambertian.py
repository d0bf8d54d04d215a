"""Lambertian (ideal diffuse) material implementation.

This module implements the Lambertian BRDF, which models ideal diffuse reflection
where incident light is scattered uniformly in all directions weighted by the
cosine of the angle from the surface normal.

The Lambertian BRDF is:
    f_r(wi, wo) = albedo / pi

The probability density function for cosine-weighted hemisphere sampling is:
    pdf(wi) = cos(theta) / pi

where theta is the angle between the sampled direction and the surface normal.
The albedo is not stored on the material: it is the object's texture color,
passed in as ``light``.

Example:
    >>> # Within a Taichi kernel:
    >>> scatter, state = scatter_lambertian(ray, info, light, state)
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray, build_onb_from_normal, local_to_world, make_ray
from src.mirth.core.sampler import sample_cosine_hemisphere
from src.mirth.geometry.sphere import IntersectionInfo
from src.mirth.materials.material import MaterialKind, ScatterResult

# Type alias for 3D vectors
vec3 = tm.vec3


@dataclass(frozen=True)
class Lambertian:
    """An opaque, purely diffuse surface. It never absorbs."""

    @property
    def kind(self) -> MaterialKind:
        return MaterialKind.LAMBERTIAN


@ti.func
def eval_lambertian(albedo: vec3) -> vec3:
    """Evaluate the Lambertian BRDF.

    The Lambertian BRDF is constant for all directions:
        f_r = albedo / pi

    This function returns the BRDF value (not including the cosine term,
    which is applied separately in the rendering equation).

    Args:
        albedo: The diffuse reflectance color (RGB).

    Returns:
        The BRDF value (albedo / pi).
    """
    return albedo / tm.pi


@ti.func
def pdf_lambertian(normal: vec3, scattered_direction: vec3) -> ti.f32:
    """Compute the PDF for Lambertian cosine-weighted sampling.

    Args:
        normal: The surface normal.
        scattered_direction: The sampled scatter direction.

    Returns:
        cos(theta) / pi, or 0 if the direction is below the surface.
    """
    cos_theta = tm.dot(tm.normalize(normal), tm.normalize(scattered_direction))
    pdf = 0.0
    if cos_theta > 0.0:
        pdf = cos_theta / tm.pi
    return pdf


@ti.func
def scatter_lambertian(ray: Ray, info: IntersectionInfo, light: vec3, state: ti.u32):
    """Scatter a ray off a Lambertian surface.

    Samples a cosine-weighted direction in the frame whose z-axis is the hit
    normal and starts the scattered ray at the hit point.

    Args:
        ray: The incoming ray (unused; diffuse scattering ignores it).
        info: The hit record.
        light: The texture color at the hit.
        state: Generator state.

    Returns:
        A tuple (ScatterResult, new_state). ``did_scatter`` is always 1.
    """
    sample, rng = sample_cosine_hemisphere(state)
    tangent, bitangent, n = build_onb_from_normal(info.normal)
    direction = local_to_world(sample.point, tangent, bitangent, n)

    result = ScatterResult(
        did_scatter=1,
        scattered_ray=make_ray(info.point, direction),
        pdf=pdf_lambertian(n, direction),
        light=light,
    )
    return result, rng
