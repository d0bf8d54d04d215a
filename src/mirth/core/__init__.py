"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    rng: Keyed per-pixel random number generation
    sampler: Disc and hemisphere sampling with their densities
    image: Running-mean image accumulation
    integrator: Ambient occlusion and path tracing estimators
    progressive: The sample loop over an image buffer

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    EPSILON,
    INFINITY,
    RAY_MIN_T,
    Ray,
    build_onb_from_normal,
    cross,
    dot,
    is_in_range,
    length,
    length_squared,
    local_to_world,
    make_ray,
    normalize,
    ray_at,
)
from .rng import rng_next_float, rng_seed
from .sampler import (
    SampleResult,
    cosine_hemisphere_pdf,
    sample_cosine_hemisphere,
    sample_uniform_hemisphere,
    sample_unit_disc,
    uniform_hemisphere_pdf,
)

# Note: integrator and progressive are NOT imported here because they declare
# fields. Import them directly once Taichi is initialized:
#   from src.mirth.core.progressive import ProgressiveRenderer

__all__ = [
    "EPSILON",
    "INFINITY",
    "RAY_MIN_T",
    "Ray",
    "ray_at",
    "make_ray",
    "is_in_range",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "build_onb_from_normal",
    "local_to_world",
    "rng_seed",
    "rng_next_float",
    "SampleResult",
    "sample_unit_disc",
    "sample_uniform_hemisphere",
    "sample_cosine_hemisphere",
    "uniform_hemisphere_pdf",
    "cosine_hemisphere_pdf",
]
