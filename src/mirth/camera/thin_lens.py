"""Thin-lens camera model with depth of field.

In camera-local space the camera sits at the origin looking down -z with +y
up. The image plane is at z = -1; its size follows from the vertical field of
view and the aspect ratio of the resolution:

    viewport_height = 2 * tan(vfov / 2)
    viewport_width  = viewport_height * width / height
    bottom-left     = (-viewport_width / 2, -viewport_height / 2, -1)

A ray through pixel (x, y) is generated with the thin-lens model. The point
where an ideal pinhole ray through the pixel crosses the focal plane is
``focal_distance * pixel_on_image_plane`` (valid because the image plane is at
z = -1). The ray starts at a point sampled on the lens disc of radius
``aperture_radius`` and aims at that focal point, so every lens sample of a
pixel converges on the focal plane and spreads out elsewhere. With a zero
aperture every ray of a pixel is identical.

Pixel coordinates are real-valued with (0, 0) at the bottom-left corner of
the image; pixel centers sit at +0.5.

Example:
    >>> camera = ThinLensCamera.look_at(
    ...     resolution=(320, 240),
    ...     look_from=(0.0, 0.0, 5.0),
    ...     look_at=(0.0, 0.0, 0.0),
    ...     up_direction=(0.0, 1.0, 0.0),
    ...     vertical_fov=40.0,
    ... )
    >>> setup_camera(camera)
    >>> # Inside a kernel:
    >>> ray, state = generate_ray(x + 0.5, y + 0.5, state)
"""

import math
from dataclasses import dataclass, field

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray, make_ray, vec3
from src.mirth.core.sampler import sample_unit_disc
from src.mirth.geometry.transform import Transform, transform_ray

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens camera.

    Attributes:
        resolution: Image size in pixels (width, height).
        transform: Camera-to-world transform.
        vertical_fov: Vertical field of view in degrees, in (0, 180).
        focal_distance: Distance to the plane in perfect focus.
        aperture_radius: Lens radius; 0 gives a pinhole camera.
    """

    resolution: tuple[int, int]
    transform: Transform = field(default_factory=Transform.identity)
    vertical_fov: float = 90.0
    focal_distance: float = 1.0
    aperture_radius: float = 0.0

    def __post_init__(self) -> None:
        if len(self.resolution) != 2:
            raise ValueError(f"resolution must be (width, height), got {self.resolution}")
        width, height = self.resolution
        if int(width) != width or int(height) != height or width <= 0 or height <= 0:
            raise ValueError(f"resolution must be two positive integers, got {self.resolution}")
        self.resolution = (int(width), int(height))
        if not 0.0 < self.vertical_fov < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180) degrees, got {self.vertical_fov}")
        if not math.isfinite(self.focal_distance) or self.focal_distance <= 0.0:
            raise ValueError(f"focal_distance must be positive, got {self.focal_distance}")
        if not math.isfinite(self.aperture_radius) or self.aperture_radius < 0.0:
            raise ValueError(f"aperture_radius must be non-negative, got {self.aperture_radius}")

    @classmethod
    def look_at(
        cls,
        resolution: tuple[int, int],
        look_from: tuple[float, float, float],
        look_at: tuple[float, float, float],
        up_direction: tuple[float, float, float] = (0.0, 1.0, 0.0),
        vertical_fov: float = 90.0,
        focal_distance: float = 1.0,
        aperture_radius: float = 0.0,
    ) -> "ThinLensCamera":
        """Build a camera placed with a viewer transform."""
        return cls(
            resolution=resolution,
            transform=Transform.for_viewer(look_from, look_at, up_direction),
            vertical_fov=vertical_fov,
            focal_distance=focal_distance,
            aperture_radius=aperture_radius,
        )

    @property
    def aspect_ratio(self) -> float:
        return self.resolution[0] / self.resolution[1]

    @property
    def viewport_height(self) -> float:
        return 2.0 * math.tan(math.radians(self.vertical_fov) / 2.0)

    @property
    def viewport_width(self) -> float:
        return self.viewport_height * self.aspect_ratio


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_to_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_resolution = ti.Vector.field(2, dtype=ti.f32, shape=())
_viewport_size = ti.Vector.field(2, dtype=ti.f32, shape=())
_bottom_left = ti.Vector.field(3, dtype=ti.f32, shape=())
_focal_distance = ti.field(dtype=ti.f32, shape=())
_aperture_radius = ti.field(dtype=ti.f32, shape=())
_camera_ready = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Upload a camera configuration to the device.

    Must be called before rendering.

    Args:
        camera: Camera configuration.
    """
    width, height = camera.resolution
    vw = camera.viewport_width
    vh = camera.viewport_height

    matrix, _ = camera.transform.to_taichi()
    _camera_to_world[None] = matrix
    _resolution[None] = tm.vec2(float(width), float(height))
    _viewport_size[None] = tm.vec2(vw, vh)
    _bottom_left[None] = vec3(-vw / 2.0, -vh / 2.0, -1.0)
    _focal_distance[None] = camera.focal_distance
    _aperture_radius[None] = camera.aperture_radius
    _camera_ready[None] = 1


def clear_camera() -> None:
    _camera_ready[None] = 0


def is_camera_ready() -> bool:
    return bool(_camera_ready[None])


def get_camera_resolution() -> tuple[int, int]:
    res = _resolution[None]
    return int(res[0]), int(res[1])


def get_camera_info() -> dict[str, tuple[float, ...] | float]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with the camera origin (world space), resolution, viewport
        size, bottom-left corner (camera space), focal distance and aperture.
    """
    m = _camera_to_world[None].to_numpy()
    return {
        "origin": tuple(float(x) for x in m[:3, 3]),
        "resolution": tuple(_resolution[None].to_numpy().tolist()),
        "viewport": tuple(_viewport_size[None].to_numpy().tolist()),
        "bottom_left": tuple(_bottom_left[None].to_numpy().tolist()),
        "focal_distance": float(_focal_distance[None]),
        "aperture_radius": float(_aperture_radius[None]),
    }


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def generate_ray(pixel_x: ti.f32, pixel_y: ti.f32, state: ti.u32):
    """Generate a world-space ray through a (sub-)pixel position.

    Args:
        pixel_x: Horizontal pixel coordinate, 0 at the left edge.
        pixel_y: Vertical pixel coordinate, 0 at the bottom edge.
        state: Generator state, consumed by the lens sample.

    Returns:
        A tuple (Ray, new_state).
    """
    resolution = _resolution[None]
    viewport = _viewport_size[None]
    u = pixel_x / resolution.x
    v = pixel_y / resolution.y
    on_image_plane = _bottom_left[None] + vec3(u * viewport.x, v * viewport.y, 0.0)
    focal_point = _focal_distance[None] * on_image_plane

    disc, rng = sample_unit_disc(state)
    lens_offset = _aperture_radius[None] * disc.point

    local_ray = make_ray(lens_offset, focal_point - lens_offset)
    return transform_ray(_camera_to_world[None], local_ray), rng
