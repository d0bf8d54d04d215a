"""Unit tests for textures and the Lambertian material.

Tests cover:
- Constant texture validation and registration
- Material registration
- Lambertian BRDF value and density
- Lambertian scattering: origin, hemisphere, pdf and carried light
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestConstantTexture:
    """Tests for constant textures."""

    @pytest.mark.parametrize(
        "rgb",
        [(1.0, -0.1, 0.0), (float("nan"), 0.0, 0.0), (float("inf"), 0.0, 0.0), (1.0, 1.0)],
    )
    def test_invalid_color_rejected(self, rgb):
        from src.mirth.materials.texture import ConstantTexture

        with pytest.raises(ValueError):
            ConstantTexture(rgb)

    def test_values_above_one_allowed(self):
        from src.mirth.materials.texture import ConstantTexture

        assert ConstantTexture((4.0, 2.0, 0.0)).rgb == (4.0, 2.0, 0.0)

    def test_texture_value_ignores_uv(self):
        """Test that a constant texture returns its color for any uv."""
        from src.mirth.core.ray import make_ray, vec3
        from src.mirth.materials.texture import ConstantTexture, add_texture, get_texture_count, texture_value_at

        add_texture(ConstantTexture((0.1, 0.2, 0.3)))
        tex_id = add_texture(ConstantTexture((0.7, 0.5, 0.25)))
        assert tex_id == 1
        assert get_texture_count() == 2

        results = ti.Vector.field(3, dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel(tid: ti.i32):
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            results[0] = texture_value_at(tid, ray, ti.math.vec2(0.0, 0.0))
            results[1] = texture_value_at(tid, ray, ti.math.vec2(0.5, 0.9))
            results[2] = texture_value_at(tid, ray, ti.math.vec2(1.0, 1.0))

        test_kernel(tex_id)
        for i in range(3):
            assert np.allclose(results[i].to_numpy(), (0.7, 0.5, 0.25), atol=1e-6)


class TestMaterialRegistry:
    """Tests for the material arena."""

    def test_add_and_lookup(self):
        from src.mirth.materials.lambertian import Lambertian
        from src.mirth.materials.material import MaterialKind, add_material, get_material_count, get_material_kind

        idx = add_material(Lambertian().kind)
        assert idx == 0
        assert get_material_count() == 1
        assert get_material_kind(0) is MaterialKind.LAMBERTIAN

    def test_lookup_out_of_range(self):
        from src.mirth.materials.material import get_material_kind

        with pytest.raises(IndexError):
            get_material_kind(0)

    def test_unknown_kind_rejected(self):
        from src.mirth.materials.material import add_material

        with pytest.raises(ValueError):
            add_material(42)


class TestLambertian:
    """Tests for the Lambertian BRDF and its sampling."""

    def test_eval_is_albedo_over_pi(self):
        from src.mirth.materials.lambertian import eval_lambertian, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = eval_lambertian(vec3(1.0, 0.5, 0.0))

        test_kernel()
        assert np.allclose(result[None].to_numpy(), (1.0 / math.pi, 0.5 / math.pi, 0.0), atol=1e-6)

    def test_pdf(self):
        """Test cos/pi above the surface and zero below it."""
        from src.mirth.materials.lambertian import pdf_lambertian, vec3

        pdfs = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            n = vec3(0.0, 0.0, 1.0)
            pdfs[0] = pdf_lambertian(n, vec3(0.0, 0.0, 1.0))
            pdfs[1] = pdf_lambertian(n, vec3(1.0, 0.0, 1.0))
            pdfs[2] = pdf_lambertian(n, vec3(0.0, 0.0, -1.0))

        test_kernel()
        assert abs(pdfs[0] - 1.0 / math.pi) < 1e-6
        assert abs(pdfs[1] - math.cos(math.pi / 4.0) / math.pi) < 1e-6
        assert pdfs[2] == 0.0

    def test_scatter(self):
        """Test that scattered rays start at the hit, stay above the surface and carry the light."""
        from src.mirth.core.ray import make_ray
        from src.mirth.core.rng import rng_seed
        from src.mirth.geometry.sphere import IntersectionInfo
        from src.mirth.materials.lambertian import scatter_lambertian, vec3

        n = 2000
        did_scatter = ti.field(dtype=ti.i32, shape=n)
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        pdfs = ti.field(dtype=ti.f32, shape=n)
        lights = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                normal = vec3(0.0, 1.0, 0.0)
                info = IntersectionInfo(
                    hit=1,
                    point=vec3(1.0, 2.0, 3.0),
                    t=1.0,
                    normal=normal,
                    uv=ti.math.vec2(0.5, 0.5),
                    front_face=1,
                )
                ray = make_ray(vec3(1.0, 3.0, 3.0), vec3(0.0, -1.0, 0.0))
                state = rng_seed(ti.u32(1), ti.cast(i, ti.u32), ti.u32(0))
                result, state = scatter_lambertian(ray, info, vec3(0.2, 0.4, 0.6), state)
                did_scatter[i] = result.did_scatter
                origins[i] = result.scattered_ray.origin
                directions[i] = result.scattered_ray.direction
                pdfs[i] = result.pdf
                lights[i] = result.light

        test_kernel()
        assert np.all(did_scatter.to_numpy() == 1)
        assert np.allclose(origins.to_numpy(), (1.0, 2.0, 3.0))
        d = directions.to_numpy()
        assert np.all(d[:, 1] >= -1e-6)
        cos_theta = d[:, 1] / np.linalg.norm(d, axis=1)
        assert np.allclose(pdfs.to_numpy(), cos_theta / math.pi, atol=1e-4)
        assert np.allclose(lights.to_numpy(), (0.2, 0.4, 0.6), atol=1e-6)
        # Cosine-weighted: mean cos(theta) is 2/3
        assert abs(cos_theta.mean() - 2.0 / 3.0) < 0.03
