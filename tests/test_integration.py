"""Integration tests for the end-to-end rendering pipeline.

These tests run complete scenes from their JSON description to an image file
and check basic properties of the output. They are kept fast (low resolution,
few samples) while still exercising the full pipeline.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

from __future__ import annotations

import importlib
import json
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

SCENES_DIR = Path(__file__).parent.parent / "examples" / "scenes"


class TestEndToEnd:
    """Full-pipeline renders through the scene manager."""

    @pytest.mark.parametrize(
        "module",
        [
            "src.mirth.geometry.transform",
            "src.mirth.geometry.sphere",
            "src.mirth.geometry.quad",
            "src.mirth.materials.texture",
            "src.mirth.materials.material",
            "src.mirth.materials.lambertian",
            "src.mirth.camera.thin_lens",
            "src.mirth.scene.objects",
            "src.mirth.core.image",
            "src.mirth.core.integrator",
        ],
    )
    def test_device_modules_import(self, module):
        """Test that modules declaring Taichi functions and structs load."""
        assert importlib.import_module(module) is not None

    def test_sphere_on_floor_ambient_occlusion(self, scene_data):
        """Test a sphere over a floor: open floor is bright, sky is black."""
        from src.mirth.scene.parsing import parse_scene

        scene_data["camera"]["resolution"] = [32, 24]
        scene_data["integrator"]["number of samples"] = 8
        image = parse_scene(scene_data).render().get_image_numpy()

        assert image.shape == (24, 32, 3)
        assert np.all(np.isfinite(image))
        assert image.min() >= 0.0 and image.max() <= 1.0
        # Top row looks at the empty sky
        assert np.all(image[0] == 0.0)
        # Bottom corners see open floor
        assert image[-1, 0].mean() > 0.5
        assert image[-1, -1].mean() > 0.5

    def test_path_traced_scene_is_lit_by_background(self, scene_data):
        from src.mirth.scene.parsing import parse_scene

        scene_data["integrator"] = {"kind": "path tracing", "number of samples": 4, "ray recursion limit": 8}
        scene_data["background color"] = [0.5, 0.7, 1.0]
        image = parse_scene(scene_data).render().get_image_numpy()

        assert np.all(np.isfinite(image))
        # Sky pixels return the background exactly
        assert np.allclose(image[0, 0], (0.5, 0.7, 1.0), atol=1e-6)
        # The red sphere reflects little blue
        center = image[image.shape[0] // 2, image.shape[1] // 2]
        assert center[0] > center[2]

    @pytest.mark.parametrize("scene_file", sorted(SCENES_DIR.glob("*.json")), ids=lambda p: p.stem)
    def test_example_scenes_parse(self, scene_file):
        from src.mirth.scene.parsing import load_scene_file

        scene = load_scene_file(scene_file)
        assert len(scene.objects) > 0


class TestCommandLine:
    """Tests for the command-line entry point."""

    def _write_scene(self, tmp_path, data):
        path = tmp_path / "scene.json"
        path.write_text(json.dumps(data))
        return path

    def test_render_scene_writes_image(self, scene_data, tmp_path):
        from src.mirth.cli import render_scene

        output = render_scene(scene_data, tmp_path / "out.png", seed=5, num_samples=1)
        with Image.open(output) as img:
            assert img.size == (8, 6)

    def test_render_scene_rejects_zero_samples(self, scene_data, tmp_path):
        from src.mirth.cli import render_scene

        with pytest.raises(ValueError, match="num_samples must be positive"):
            render_scene(scene_data, tmp_path / "out.png", num_samples=0)
        assert not (tmp_path / "out.png").exists()

    def test_main_reports_invalid_sample_count(self, scene_data, tmp_path, caplog, monkeypatch):
        from src.mirth import cli

        # Taichi is already initialized for the session
        monkeypatch.setattr(cli, "init_taichi", lambda arch: None)
        path = self._write_scene(tmp_path, scene_data)
        assert cli.main([str(path), "-o", str(tmp_path / "out.png"), "--samples", "0"]) == 1
        assert "num_samples must be positive" in caplog.text
        assert not (tmp_path / "out.png").exists()

    def test_main_reports_missing_file(self, tmp_path, caplog):
        from src.mirth.cli import main

        assert main([str(tmp_path / "missing.json")]) == 1
        assert "Cannot read scene file" in caplog.text

    def test_main_reports_invalid_json(self, tmp_path, caplog):
        from src.mirth.cli import main

        path = tmp_path / "broken.json"
        path.write_text("{ nope")
        assert main([str(path)]) == 1
        assert "not valid JSON" in caplog.text

    def test_parse_args(self):
        from src.mirth.cli import parse_args

        args = parse_args(["scene.json", "-o", "x.bmp", "--samples", "4", "--seed", "9", "--tonemap", "reinhard"])
        assert args.scene == Path("scene.json")
        assert args.output == Path("x.bmp")
        assert args.samples == 4
        assert args.seed == 9
        assert args.tonemap == "reinhard"
        assert args.arch == "cpu"
