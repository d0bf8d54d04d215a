"""Sampling of unit domains with their probability densities.

Each sampler consumes two uniform draws from the caller's generator state and
returns a ``SampleResult`` (point and density) together with the advanced
state. Hemisphere samples are expressed in a local frame whose z-axis is "up";
callers map them to world space with ``build_onb_from_normal`` and
``local_to_world`` from ``core.ray``.

Densities:
    disc:                 1 / pi              (area measure)
    uniform hemisphere:   1 / (2 pi)          (solid angle)
    cosine hemisphere:    cos(theta) / pi     (solid angle)
"""

import taichi as ti
import taichi.math as tm

from src.mirth.core.rng import rng_next_float

vec3 = tm.vec3


@ti.dataclass
class SampleResult:
    """A sampled point on a unit domain and its density.

    Attributes:
        point: The sampled point. Disc samples have z = 0.
        pdf: Probability density of the sample under the sampling distribution.
    """

    point: vec3
    pdf: ti.f32


@ti.func
def uniform_hemisphere_pdf() -> ti.f32:
    return 1.0 / (2.0 * tm.pi)


@ti.func
def cosine_hemisphere_pdf(cos_theta: ti.f32) -> ti.f32:
    """Density of the cosine-weighted hemisphere for a direction at angle theta."""
    return ti.max(cos_theta, 0.0) / tm.pi


@ti.func
def _hemisphere_point(cos_theta: ti.f32, u2: ti.f32) -> vec3:
    phi = 2.0 * tm.pi * u2
    sin_theta = ti.sqrt(ti.max(0.0, 1.0 - cos_theta * cos_theta))
    return vec3(ti.cos(phi) * sin_theta, ti.sin(phi) * sin_theta, cos_theta)


@ti.func
def sample_unit_disc(state: ti.u32):
    """Uniform point in the unit disc.

    Uses r = sqrt(u1), phi = 2 pi u2 so that the points are uniform in area.

    Args:
        state: Generator state.

    Returns:
        A tuple (SampleResult, new_state).
    """
    u1, rng = rng_next_float(state)
    u2, rng = rng_next_float(rng)
    r = ti.sqrt(u1)
    phi = 2.0 * tm.pi * u2
    point = vec3(r * ti.cos(phi), r * ti.sin(phi), 0.0)
    return SampleResult(point=point, pdf=1.0 / tm.pi), rng


@ti.func
def sample_uniform_hemisphere(state: ti.u32):
    """Direction uniformly distributed over the solid angle of the upper hemisphere.

    Args:
        state: Generator state.

    Returns:
        A tuple (SampleResult, new_state).
    """
    u1, rng = rng_next_float(state)
    u2, rng = rng_next_float(rng)
    point = _hemisphere_point(u1, u2)
    return SampleResult(point=point, pdf=uniform_hemisphere_pdf()), rng


@ti.func
def sample_cosine_hemisphere(state: ti.u32):
    """Cosine-weighted direction in the upper hemisphere.

    This is the importance sampling distribution for Lambertian surfaces.

    Args:
        state: Generator state.

    Returns:
        A tuple (SampleResult, new_state).
    """
    u1, rng = rng_next_float(state)
    u2, rng = rng_next_float(rng)
    cos_theta = ti.sqrt(u1)
    point = _hemisphere_point(cos_theta, u2)
    return SampleResult(point=point, pdf=cosine_hemisphere_pdf(cos_theta)), rng
