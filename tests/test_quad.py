"""Unit tests for quad intersection.

Tests cover:
- Hits from either side of the plane
- Rays parallel to the plane
- Hits limited to the width x height rectangle
- Texture coordinates
- Transformed quads
"""

import math

import numpy as np
import pytest
import taichi as ti


def _run_quad_query(origin, direction, width=2.0, height=1.0, transform=None, min_t=1e-5, max_t=math.inf):
    """Intersect one ray with one quad and return the hit record as a dict."""
    from src.mirth.core.ray import Ray
    from src.mirth.geometry.quad import intersect_quad, vec3
    from src.mirth.geometry.transform import Transform

    transform = transform or Transform.identity()
    matrices = ti.Matrix.field(4, 4, dtype=ti.f32, shape=2)
    matrix, inverse = transform.to_taichi()
    matrices[0] = matrix
    matrices[1] = inverse

    hit = ti.field(dtype=ti.i32, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())
    uv = ti.Vector.field(2, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, w: ti.f32, h: ti.f32, lo: ti.f32, hi: ti.f32):
        ray = Ray(origin=o, direction=d, min_t=lo, max_t=hi)
        info = intersect_quad(ray, w, h, matrices[0], matrices[1])
        hit[None] = info.hit
        front_face[None] = info.front_face
        t_val[None] = info.t
        point[None] = info.point
        normal[None] = info.normal
        uv[None] = info.uv

    test_kernel(vec3(*origin), vec3(*direction), width, height, min_t, max_t)
    return {
        "hit": hit[None],
        "front_face": front_face[None],
        "t": t_val[None],
        "point": point[None].to_numpy(),
        "normal": normal[None].to_numpy(),
        "uv": uv[None].to_numpy(),
    }


class TestQuadBasics:
    """Tests for the Quad dataclass."""

    def test_area(self):
        from src.mirth.geometry.quad import Quad

        assert Quad(width=2.0, height=3.0).area == 6.0

    @pytest.mark.parametrize("width, height", [(0.0, 1.0), (1.0, -2.0), (float("nan"), 1.0)])
    def test_invalid_size_rejected(self, width, height):
        from src.mirth.geometry.quad import Quad

        with pytest.raises(ValueError):
            Quad(width=width, height=height)


class TestQuadIntersection:
    """Tests for ray-quad intersection."""

    def test_hit_from_front(self):
        """Test a ray coming down the -z axis onto the +z face."""
        r = _run_quad_query((0.5, 0.5, 3.0), (0.0, 0.0, -1.0))
        assert r["hit"] == 1
        assert abs(r["t"] - 3.0) < 1e-5
        assert np.allclose(r["point"], (0.5, 0.5, 0.0), atol=1e-6)
        assert np.allclose(r["normal"], (0.0, 0.0, 1.0), atol=1e-6)
        assert r["front_face"] == 1

    def test_hit_from_back(self):
        """Test that the quad is two-sided with the normal facing the ray."""
        r = _run_quad_query((0.5, 0.5, -3.0), (0.0, 0.0, 1.0))
        assert r["hit"] == 1
        assert abs(r["t"] - 3.0) < 1e-5
        assert np.allclose(r["normal"], (0.0, 0.0, -1.0), atol=1e-6)
        assert r["front_face"] == 0

    def test_parallel_ray_misses(self):
        """Test that a ray parallel to the plane never hits."""
        r = _run_quad_query((0.5, 0.5, 0.5), (1.0, 0.0, 0.0))
        assert r["hit"] == 0
        assert math.isinf(r["t"])

    def test_ray_in_plane_misses(self):
        r = _run_quad_query((-1.0, 0.5, 0.0), (1.0, 0.0, 0.0))
        assert r["hit"] == 0

    def test_ray_pointing_away_misses(self):
        r = _run_quad_query((0.5, 0.5, 3.0), (0.0, 0.0, 1.0))
        assert r["hit"] == 0

    @pytest.mark.parametrize(
        "x, y",
        [(-0.1, 0.5), (2.1, 0.5), (1.0, -0.1), (1.0, 1.1), (3.0, 3.0)],
    )
    def test_outside_rectangle_misses(self, x, y):
        """Test that plane hits outside [0, width] x [0, height] are rejected."""
        r = _run_quad_query((x, y, 1.0), (0.0, 0.0, -1.0))
        assert r["hit"] == 0

    def test_max_t_excludes_hit(self):
        r = _run_quad_query((0.5, 0.5, 3.0), (0.0, 0.0, -1.0), max_t=2.0)
        assert r["hit"] == 0

    def test_uv_coordinates(self):
        """Test that uv is the position normalized by width and height."""
        r = _run_quad_query((1.5, 0.25, 2.0), (0.0, 0.0, -1.0), width=2.0, height=1.0)
        assert r["hit"] == 1
        assert np.allclose(r["uv"], (0.75, 0.25), atol=1e-6)

    def test_oblique_hit_lies_in_plane(self):
        r = _run_quad_query((0.0, 0.0, 2.0), (0.3, 0.2, -1.0))
        assert r["hit"] == 1
        assert abs(r["point"][2]) < 1e-6
        assert abs(r["t"] - 2.0) < 1e-5


class TestTransformedQuad:
    """Tests for quads placed by a transform."""

    def test_floor_quad(self):
        """Test a quad rotated into the y = -1 plane."""
        from src.mirth.geometry.transform import Rotation, Transform, Translation

        t = Transform.from_sequence([Rotation((1.0, 0.0, 0.0), -90.0), Translation((-2.0, -1.0, 2.0))])
        r = _run_quad_query((0.0, 3.0, 0.0), (0.0, -1.0, 0.0), width=4.0, height=4.0, transform=t)
        assert r["hit"] == 1
        assert abs(r["t"] - 4.0) < 1e-4
        assert np.allclose(r["point"], (0.0, -1.0, 0.0), atol=1e-4)
        assert np.allclose(r["normal"], (0.0, 1.0, 0.0), atol=1e-4)

    def test_scaled_quad_bounds(self):
        """Test that the rectangle bounds scale with the transform."""
        from src.mirth.geometry.transform import Scale, Transform

        t = Transform.from_sequence([Scale((2.0, 2.0, 1.0))])
        inside = _run_quad_query((3.5, 1.5, 1.0), (0.0, 0.0, -1.0), width=2.0, height=1.0, transform=t)
        outside = _run_quad_query((4.5, 1.5, 1.0), (0.0, 0.0, -1.0), width=2.0, height=1.0, transform=t)
        assert inside["hit"] == 1
        assert outside["hit"] == 0
