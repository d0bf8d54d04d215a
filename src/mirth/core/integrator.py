"""Radiance estimation along camera rays and the per-sample render kernel.

Two integrators share the Material/Shape/ObjectGroup contracts:

    AMBIENT_OCCLUSION  One-bounce binary visibility. A primary ray that
                       misses returns black. On a hit, the object's material
                       scatters one ray; the result is white if that ray
                       escapes the group and black if it is blocked. The
                       recursion limit does not apply.
    PATH_TRACING       Recursive estimator bounded by the recursion limit.
                       Throughput is multiplied by f * cos / pdf at every
                       bounce; an escaping ray picks up the background color
                       and a path that runs out of bounces contributes black.

Every trace seeds its own generator from (seed, pixel index, sample index), so
a render is reproducible regardless of how pixels are scheduled.

Example:
    >>> setup_camera(camera)
    >>> group.upload()
    >>> setup_integrator(IntegratorSettings(kind=IntegratorKind.AMBIENT_OCCLUSION))
    >>> buffer = ImageBuffer(*camera.resolution)
    >>> for s in range(16):
    ...     render_sample_into(buffer, sample_index=s, seed=0)
    >>> image = buffer.average_samples()
"""

from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.mirth.camera.thin_lens import generate_ray, get_camera_resolution, is_camera_ready
from src.mirth.core.image import ImageBuffer
from src.mirth.core.ray import Ray
from src.mirth.core.rng import rng_seed
from src.mirth.materials.texture import validate_color
from src.mirth.scene.objects import eval_object, intersect_group, is_occluded, scatter_object

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Integrator Settings
# =============================================================================

DEFAULT_NUM_SAMPLES = 64
DEFAULT_RECURSION_LIMIT = 64


class IntegratorKind(IntEnum):
    AMBIENT_OCCLUSION = 0
    PATH_TRACING = 1


@dataclass(frozen=True)
class IntegratorSettings:
    """Integrator selection and its parameters.

    Attributes:
        kind: Which estimator to run.
        num_samples: Sample passes per pixel.
        recursion_limit: Maximum path length for recursive integrators.
        background: Color picked up by rays escaping the scene (path tracing).
    """

    kind: IntegratorKind = IntegratorKind.AMBIENT_OCCLUSION
    num_samples: int = DEFAULT_NUM_SAMPLES
    recursion_limit: int = DEFAULT_RECURSION_LIMIT
    background: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        IntegratorKind(self.kind)
        if self.num_samples <= 0:
            raise ValueError(f"num_samples must be positive, got {self.num_samples}")
        if self.recursion_limit <= 0:
            raise ValueError(f"recursion_limit must be positive, got {self.recursion_limit}")
        validate_color(self.background, "background color")


_integrator_kind = ti.field(dtype=ti.i32, shape=())
_recursion_limit = ti.field(dtype=ti.i32, shape=())
_background = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_integrator(settings: IntegratorSettings) -> None:
    """Upload integrator settings to the device."""
    _integrator_kind[None] = int(settings.kind)
    _recursion_limit[None] = settings.recursion_limit
    _background[None] = vec3(settings.background[0], settings.background[1], settings.background[2])


def reset_integrator() -> None:
    setup_integrator(IntegratorSettings())


# =============================================================================
# Estimators
# =============================================================================


@ti.func
def ambient_occlusion(ray: Ray, state: ti.u32):
    """Estimate unoccluded sky visibility along a ray.

    Args:
        ray: World-space camera ray.
        state: Generator state.

    Returns:
        A tuple (color, new_state); color is black or white.
    """
    color = vec3(0.0, 0.0, 0.0)
    rng = state
    obj, info = intersect_group(ray)
    if obj >= 0:
        scatter, rng = scatter_object(obj, ray, info, rng)
        if scatter.did_scatter == 1:
            if is_occluded(scatter.scattered_ray) == 0:
                color = vec3(1.0, 1.0, 1.0)
    return color, rng


@ti.func
def path_trace(ray: Ray, state: ti.u32):
    """Estimate radiance with a recursion-limited random walk.

    Args:
        ray: World-space camera ray.
        state: Generator state.

    Returns:
        A tuple (radiance, new_state).
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    rng = state
    current = Ray(origin=ray.origin, direction=ray.direction, min_t=ray.min_t, max_t=ray.max_t)

    # Taichi doesn't support break in ti.func loops
    active = 1

    for _ in range(_recursion_limit[None]):
        if active == 1:
            obj, info = intersect_group(current)
            if obj < 0:
                radiance += throughput * _background[None]
                active = 0
            else:
                scatter, rng = scatter_object(obj, current, info, rng)
                cos_theta = tm.dot(tm.normalize(info.normal), tm.normalize(scatter.scattered_ray.direction))
                if scatter.did_scatter == 0 or scatter.pdf <= 0.0 or cos_theta <= 0.0:
                    active = 0
                else:
                    throughput *= eval_object(obj, scatter.light) * cos_theta / scatter.pdf
                    current = scatter.scattered_ray

    return radiance, rng


@ti.func
def spectrum_from_ray(ray: Ray, state: ti.u32):
    """Estimate the color arriving along a ray with the configured integrator.

    Returns:
        A tuple (color, new_state).
    """
    color = vec3(0.0, 0.0, 0.0)
    rng = state
    kind = _integrator_kind[None]
    if kind == int(IntegratorKind.AMBIENT_OCCLUSION):
        color, rng = ambient_occlusion(ray, rng)
    elif kind == int(IntegratorKind.PATH_TRACING):
        color, rng = path_trace(ray, rng)
    return color, rng


@ti.func
def _sanitize(color: vec3) -> vec3:
    # Clamp negative values and drop NaN/Inf from numerical errors
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


@ti.func
def render_pixel_impl(i: ti.i32, j: ti.i32, width: ti.i32, sample_index: ti.u32, seed: ti.u32) -> vec3:
    """Estimate one sample of pixel (i, j), sampling at the pixel center."""
    pixel_index = ti.cast(j * width + i, ti.u32)
    rng = rng_seed(seed, pixel_index, sample_index)
    px = ti.cast(i, ti.f32) + 0.5
    py = ti.cast(j, ti.f32) + 0.5
    ray, rng = generate_ray(px, py, rng)
    color, rng = spectrum_from_ray(ray, rng)
    return _sanitize(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_sample(sample: ti.template(), width: ti.i32, height: ti.i32, sample_index: ti.u32, seed: ti.u32):
    for i, j in ti.ndrange(width, height):
        sample[i, j] = render_pixel_impl(i, j, width, sample_index, seed)


@ti.kernel
def _render_single_pixel(i: ti.i32, j: ti.i32, width: ti.i32, sample_index: ti.u32, seed: ti.u32) -> vec3:
    return render_pixel_impl(i, j, width, sample_index, seed)


def _check_camera_ready() -> None:
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")


def render_sample_into(buffer: ImageBuffer, sample_index: int, seed: int = 0) -> None:
    """Render one sample pass of every pixel and merge it into a buffer.

    Args:
        buffer: Destination buffer; its size must match the camera resolution.
        sample_index: Index of this pass, part of every pixel's generator key.
        seed: Render-wide seed.

    Raises:
        RuntimeError: If the camera has not been set up.
        ValueError: If the buffer size differs from the camera resolution.
    """
    _check_camera_ready()
    resolution = get_camera_resolution()
    if (buffer.width, buffer.height) != resolution:
        raise ValueError(
            f"Buffer size {buffer.width}x{buffer.height} does not match the camera resolution "
            f"{resolution[0]}x{resolution[1]}"
        )
    _render_sample(buffer.sample_field, buffer.width, buffer.height, sample_index, seed)
    buffer.add_sample()


def render_pixel_sample(
    pixel_x: int,
    pixel_y: int,
    sample_index: int = 0,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Render a single sample of one pixel.

    This is a Python-callable function for testing. Pixel (0, 0) is the
    bottom-left pixel.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If the camera has not been set up.
    """
    _check_camera_ready()
    width, _ = get_camera_resolution()
    color = _render_single_pixel(pixel_x, pixel_y, width, sample_index, seed)
    return (float(color[0]), float(color[1]), float(color[2]))

