"""Writing averaged renders to image files.

The file format is chosen by Pillow from the extension (PNG, JPEG, BMP, TIFF,
...). Images handed to these functions are in display order: shape
``(height, width, 3)`` with the first row at the top, as returned by
``ImageBuffer.to_display_array`` and ``ProgressiveRenderer.get_image_numpy``.

Example:
    >>> save_image("render.png", renderer.get_image_numpy(), tonemap="reinhard")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.mirth.preview.display import ToneMapMethod, process_image_for_display

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit display values.

    Values are rounded to the nearest level, so 1.0 maps to 255 and 0.5
    (after gamma) to 128.
    """
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.round(processed * 255.0).astype(np.uint8)


def save_image(
    filepath: str | Path,
    image: npt.NDArray[np.float32],
    *,
    gamma: float = 2.2,
    tonemap: ToneMapMethod = "none",
    exposure: float = 1.0,
) -> Path:
    """Save a linear RGB image; the format follows the file extension.

    Args:
        filepath: Destination path. Parent directories must exist.
        image: Linear RGB array of shape (H, W, 3), first row at the top.
        gamma: Gamma used for encoding.
        tonemap: Tone mapping method.
        exposure: Exposure for the exposure operator.

    Returns:
        The path written.

    Raises:
        ValueError: If the image is not (H, W, 3) or the extension is not a
            format Pillow can write.
        OSError: If the file cannot be written.
    """
    path = Path(filepath)
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {arr.shape}")

    pixels = image_to_uint8(arr, tone_map=tonemap, gamma=gamma, exposure=exposure)
    PILImage.fromarray(pixels, mode="RGB").save(path)
    logger.info("Wrote %dx%d image to %s", arr.shape[1], arr.shape[0], path)
    return path


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared difference between two images of equal shape.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
