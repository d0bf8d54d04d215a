"""Display transforms for averaged renders.

Rendered images are linear RGB and may exceed 1.0 (the path tracer's
background can be brighter than white). Before 8-bit export they go through:

1. an optional tone mapping operator,
2. gamma encoding,
3. a final clamp to [0, 1].

Example:
    >>> display = process_image_for_display(image, tone_map="reinhard", gamma=2.2)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal

import numpy as np
import numpy.typing as npt

ToneMapMethod = Literal["none", "reinhard", "exposure"]

FloatImage = npt.NDArray[np.float32]


def tone_map_reinhard(image: FloatImage) -> FloatImage:
    """Global Reinhard operator c / (1 + c); negatives become 0."""
    positive = np.maximum(image, 0.0)
    return (positive / (1.0 + positive)).astype(np.float32)


def tone_map_exposure(image: FloatImage, exposure: float = 1.0) -> FloatImage:
    """Exponential operator 1 - exp(-c * exposure).

    Args:
        image: Linear image.
        exposure: Brightness multiplier; must be positive.
    """
    if exposure <= 0.0:
        raise ValueError(f"exposure must be positive, got {exposure}")
    positive = np.maximum(image, 0.0)
    return (1.0 - np.exp(-positive * exposure)).astype(np.float32)


_TONE_MAPPERS: dict[str, Callable[[FloatImage, float], FloatImage]] = {
    "none": lambda image, exposure: image.astype(np.float32),
    "reinhard": lambda image, exposure: tone_map_reinhard(image),
    "exposure": tone_map_exposure,
}


def apply_gamma(image: FloatImage, gamma: float = 2.2) -> FloatImage:
    """Encode a linear image with out = in^(1/gamma).

    Values are clamped to [0, 1] first so negatives cannot produce NaN. A
    gamma of 1.0 returns the input untouched.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: FloatImage,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> FloatImage:
    """Run the display pipeline on a linear image.

    Args:
        image: Linear RGB array of shape (H, W, 3).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Gamma used for encoding.
        exposure: Only used by the exposure operator.

    Returns:
        A float32 image in [0, 1].

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    mapper = _TONE_MAPPERS.get(tone_map)
    if mapper is None:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")
    mapped = mapper(np.asarray(image, dtype=np.float32), exposure)
    return np.clip(apply_gamma(mapped, gamma), 0.0, 1.0).astype(np.float32)
