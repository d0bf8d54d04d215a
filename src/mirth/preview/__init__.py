"""Output processing for averaged renders.

Components:
    display: Tone mapping and gamma encoding
    export: 8-bit conversion and image file export through Pillow

Example:
    >>> from src.mirth.preview import save_image
    >>> save_image("output.png", renderer.get_image_numpy(), gamma=2.2)
"""

from src.mirth.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.mirth.preview.export import compute_rmse, image_to_uint8, save_image

__all__ = [
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "save_image",
    "image_to_uint8",
    "compute_rmse",
]
