"""Camera models.

Components:
    thin_lens: Thin-lens camera with depth of field; a zero aperture gives a
        pinhole camera.
"""

from .thin_lens import (
    ThinLensCamera,
    clear_camera,
    generate_ray,
    get_camera_info,
    get_camera_resolution,
    is_camera_ready,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "clear_camera",
    "is_camera_ready",
    "generate_ray",
    "get_camera_info",
    "get_camera_resolution",
]
