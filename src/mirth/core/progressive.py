"""Progressive renderer: the sample loop over an image buffer.

Each sample pass renders every pixel once (at the pixel center, with lens
jitter only) and merges the pass into an ``ImageBuffer``. Passes are numbered
from the buffer's current sample count, so continuing a render after a pause
or a cancellation produces exactly the image an uninterrupted render would.

Cancellation is cooperative: ``should_stop`` is polled between passes, never
inside one, so a stopped render holds the average of the passes that
completed.

Example:
    >>> setup_camera(camera)
    >>> group.upload()
    >>> setup_integrator(settings)
    >>> renderer = ProgressiveRenderer(*camera.resolution, seed=7)
    >>> renderer.render(64, batch_size=8, callback=lambda done, total: None)
    >>> image = renderer.get_image_numpy()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.mirth.core.image import ImageBuffer
from src.mirth.core.integrator import render_sample_into

logger = logging.getLogger(__name__)

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]
StopCheck = Callable[[], bool]


class ProgressiveRenderer:
    """A progressive renderer that accumulates sample passes over time.

    Args:
        width: Image width in pixels; must match the camera resolution.
        height: Image height in pixels; must match the camera resolution.
        seed: Render-wide seed for every per-pixel generator.

    Raises:
        ValueError: If a dimension is not positive or the seed does not fit
            in 32 unsigned bits.
    """

    def __init__(self, width: int, height: int, seed: int = 0) -> None:
        if not 0 <= seed < 2**32:
            raise ValueError(f"seed must fit in 32 unsigned bits, got {seed}")
        self._buffer = ImageBuffer(width, height)
        self._seed = seed

    @property
    def width(self) -> int:
        return self._buffer.width

    @property
    def height(self) -> int:
        return self._buffer.height

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def buffer(self) -> ImageBuffer:
        return self._buffer

    @property
    def sample_count(self) -> int:
        """Number of sample passes merged so far."""
        return self._buffer.num_samples

    def reset(self) -> None:
        """Discard all samples, keeping the size and seed."""
        self._buffer.reset()

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        should_stop: StopCheck | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render sample passes, yielding progress after each batch.

        Args:
            num_samples: Number of passes to add.
            batch_size: Passes per yield.
            should_stop: Polled before every pass; returning True ends the
                render early.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        if num_samples <= 0:
            return
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        target_samples = self.sample_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            for _ in range(batch):
                if should_stop is not None and should_stop():
                    logger.info(
                        "Render stopped after %d of %d samples", self.sample_count, target_samples
                    )
                    return
                render_sample_into(self._buffer, self.sample_count, self._seed)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
        should_stop: StopCheck | None = None,
    ) -> int:
        """Render sample passes with an optional progress callback.

        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Number of passes to add.
            batch_size: Passes to render before each callback.
            callback: Called after each batch with
                (current_total_samples, target_total_samples).
            should_stop: Polled before every pass; returning True ends the
                render early.

        Returns:
            The total number of passes merged.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size, should_stop):
            logger.debug("Rendered %d/%d samples", current, target)
            if callback is not None:
                callback(current, target)
        return self.sample_count

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the averaged image in display order.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear, unclamped).

        Returns:
            NumPy array of shape (height, width, 3), first row at the top.
        """
        image = self._buffer.to_display_array()
        if gamma != 1.0:
            image = np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)
        return image

    def save_image(self, filepath: str | Path, gamma: float = 2.2, tonemap: str = "none") -> Path:
        """Save the averaged image; the format follows the file extension."""
        from src.mirth.preview.export import save_image

        return save_image(filepath, self.get_image_numpy(), gamma=gamma, tonemap=tonemap)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}, seed={self._seed})"
        )
