"""Unit tests for the keyed generator and the unit-domain samplers.

Tests cover:
- Reproducibility and independence of per-trace generator states
- Uniform draws in [0, 1)
- Disc and hemisphere samples staying in their domains
- Densities matching the sampling distributions
"""

import math

import numpy as np
import taichi as ti


class TestKeyedGenerator:
    """Tests for rng_seed and rng_next_float."""

    def test_same_key_gives_same_sequence(self):
        """Test that identical (seed, pixel, sample) keys reproduce the same draws."""
        from src.mirth.core.rng import rng_next_float, rng_seed

        draws = ti.field(dtype=ti.f32, shape=(2, 8))

        @ti.kernel
        def test_kernel():
            for k in range(2):
                state = rng_seed(ti.u32(7), ti.u32(123), ti.u32(4))
                for i in range(8):
                    u, state = rng_next_float(state)
                    draws[k, i] = u

        test_kernel()
        arr = draws.to_numpy()
        assert np.array_equal(arr[0], arr[1])

    def test_different_keys_give_different_sequences(self):
        """Test that changing any key component changes the stream."""
        from src.mirth.core.rng import rng_next_float, rng_seed

        first = ti.field(dtype=ti.f32, shape=4)

        @ti.kernel
        def test_kernel():
            states = ti.Vector(
                [
                    rng_seed(ti.u32(0), ti.u32(0), ti.u32(0)),
                    rng_seed(ti.u32(1), ti.u32(0), ti.u32(0)),
                    rng_seed(ti.u32(0), ti.u32(1), ti.u32(0)),
                    rng_seed(ti.u32(0), ti.u32(0), ti.u32(1)),
                ],
                dt=ti.u32,
            )
            for k in ti.static(range(4)):
                u, _ = rng_next_float(states[k])
                first[k] = u

        test_kernel()
        values = first.to_numpy()
        assert len(set(values.tolist())) == 4

    def test_state_is_never_zero(self):
        """Test that seeding never produces the absorbing zero state."""
        from src.mirth.core.rng import rng_seed

        zeros = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            for i in range(4096):
                if rng_seed(ti.u32(0), ti.cast(i, ti.u32), ti.u32(0)) == ti.u32(0):
                    zeros[None] += 1

        test_kernel()
        assert zeros[None] == 0

    def test_draws_are_uniform_in_unit_interval(self):
        """Test range and mean of many draws."""
        from src.mirth.core.rng import rng_next_float, rng_seed

        n = 20000
        draws = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                state = rng_seed(ti.u32(3), ti.cast(i, ti.u32), ti.u32(0))
                u, state = rng_next_float(state)
                draws[i] = u

        test_kernel()
        arr = draws.to_numpy()
        assert arr.min() >= 0.0
        assert arr.max() < 1.0
        assert abs(arr.mean() - 0.5) < 0.02


class TestSamplers:
    """Tests for the disc and hemisphere samplers."""

    N = 10000

    def _fill(self, sampler):
        from src.mirth.core.rng import rng_seed

        n = self.N
        points = ti.Vector.field(3, dtype=ti.f32, shape=n)
        pdfs = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                state = rng_seed(ti.u32(11), ti.cast(i, ti.u32), ti.u32(0))
                sample, state = sampler(state)
                points[i] = sample.point
                pdfs[i] = sample.pdf

        test_kernel()
        return points.to_numpy(), pdfs.to_numpy()

    def test_disc_samples_inside_unit_disc(self):
        """Test that disc samples satisfy x^2 + y^2 <= 1 and z = 0."""
        from src.mirth.core.sampler import sample_unit_disc

        points, pdfs = self._fill(sample_unit_disc)
        r2 = points[:, 0] ** 2 + points[:, 1] ** 2
        assert np.all(r2 <= 1.0 + 1e-6)
        assert np.all(points[:, 2] == 0.0)
        assert np.allclose(pdfs, 1.0 / math.pi)
        # Uniform in area: half the samples fall inside radius sqrt(0.5)
        assert abs(np.mean(r2 < 0.5) - 0.5) < 0.03

    def test_uniform_hemisphere_samples(self):
        """Test unit length, z >= 0 and the constant density."""
        from src.mirth.core.sampler import sample_uniform_hemisphere

        points, pdfs = self._fill(sample_uniform_hemisphere)
        lengths = np.linalg.norm(points, axis=1)
        assert np.allclose(lengths, 1.0, atol=1e-5)
        assert np.all(points[:, 2] >= 0.0)
        assert np.allclose(pdfs, 1.0 / (2.0 * math.pi))
        # E[cos theta] = 1/2 for the uniform hemisphere
        assert abs(points[:, 2].mean() - 0.5) < 0.02

    def test_cosine_hemisphere_samples(self):
        """Test unit length, z >= 0 and pdf = cos(theta) / pi."""
        from src.mirth.core.sampler import sample_cosine_hemisphere

        points, pdfs = self._fill(sample_cosine_hemisphere)
        lengths = np.linalg.norm(points, axis=1)
        assert np.allclose(lengths, 1.0, atol=1e-5)
        assert np.all(points[:, 2] >= 0.0)
        assert np.allclose(pdfs, points[:, 2] / math.pi, atol=1e-5)
        # E[cos theta] = 2/3 for the cosine-weighted hemisphere
        assert abs(points[:, 2].mean() - 2.0 / 3.0) < 0.02

    def test_cosine_pdf_integrates_to_one(self):
        """Test that cos(theta)/pi integrates to 1 over the hemisphere."""
        from src.mirth.core.sampler import cosine_hemisphere_pdf

        n_theta = 256
        n_phi = 64
        total = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            d_theta = (0.5 * math.pi) / n_theta
            d_phi = (2.0 * math.pi) / n_phi
            for i, j in ti.ndrange(n_theta, n_phi):
                theta = (i + 0.5) * d_theta
                total[None] += cosine_hemisphere_pdf(ti.cos(theta)) * ti.sin(theta) * d_theta * d_phi

        test_kernel()
        assert abs(total[None] - 1.0) < 1e-3

    def test_uniform_pdf_integrates_to_one(self):
        """Test that the uniform density times the hemisphere area is 1."""
        from src.mirth.core.sampler import uniform_hemisphere_pdf

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = uniform_hemisphere_pdf() * 2.0 * math.pi

        test_kernel()
        assert abs(result[None] - 1.0) < 1e-6
