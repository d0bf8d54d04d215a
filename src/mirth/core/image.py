"""Image buffer that accumulates per-pixel samples and averages them.

The buffer stores RGB floats indexed ``[x, y]`` with (0, 0) at the bottom-left
pixel, the same addressing the camera uses. Each rendered sample pass is first
written to a scratch field, then merged into the accumulator pixel by pixel:

    avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n

After N passes this is the arithmetic mean of the N samples, i.e. the sum
divided by N, and averaging N identical images returns that image exactly.
Every pixel is merged independently, so the result does not depend on the
order in which parallel workers finish.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.kernel
def _accumulate(color: ti.template(), sample: ti.template(), n: ti.f32):
    for i, j in color:
        color[i, j] += (sample[i, j] - color[i, j]) / n


class ImageBuffer:
    """Running-mean RGB accumulator.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If a dimension is not positive.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)
        self._color = ti.Vector.field(3, dtype=ti.f32, shape=(self._width, self._height))
        self._sample = ti.Vector.field(3, dtype=ti.f32, shape=(self._width, self._height))
        self._num_samples = 0

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def num_samples(self) -> int:
        return self._num_samples

    @property
    def sample_field(self) -> ti.MatrixField:
        """Scratch field a render kernel writes one sample pass into."""
        return self._sample

    def reset(self) -> None:
        """Discard all accumulated samples."""
        self._color.fill(0.0)
        self._sample.fill(0.0)
        self._num_samples = 0

    def add_sample(self, image: npt.ArrayLike | None = None) -> None:
        """Merge one sample pass into the accumulator.

        Args:
            image: Optional ``(width, height, 3)`` array indexed ``[x, y]``.
                When omitted, the current contents of ``sample_field`` are
                merged.

        Raises:
            ValueError: If the image has the wrong shape.
        """
        if image is not None:
            arr = np.ascontiguousarray(image, dtype=np.float32)
            if arr.shape != (self._width, self._height, 3):
                raise ValueError(
                    f"Sample image must have shape {(self._width, self._height, 3)}, got {arr.shape}"
                )
            self._sample.from_numpy(arr)

        self._num_samples += 1
        _accumulate(self._color, self._sample, float(self._num_samples))

    def average_samples(self) -> np.ndarray:
        """Return the mean of all merged samples.

        Returns:
            A ``(width, height, 3)`` float32 array indexed ``[x, y]`` with
            (0, 0) at the bottom-left pixel.

        Raises:
            RuntimeError: If no sample has been merged yet.
        """
        if self._num_samples == 0:
            raise RuntimeError("No samples have been accumulated")
        return self._color.to_numpy().astype(np.float32)

    def get_pixel(self, x: int, y: int) -> tuple[float, float, float]:
        """Averaged color of pixel (x, y), with y = 0 at the bottom row."""
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self._width}x{self._height} image")
        c = self._color[x, y]
        return (float(c[0]), float(c[1]), float(c[2]))

    def to_display_array(self) -> np.ndarray:
        """Averaged image in row-major display order.

        Returns:
            A ``(height, width, 3)`` float32 array whose first row is the top
            of the image.
        """
        image = np.transpose(self.average_samples(), (1, 0, 2))
        return np.ascontiguousarray(np.flipud(image))

    def __repr__(self) -> str:
        return f"ImageBuffer({self._width}x{self._height}, samples={self._num_samples})"
