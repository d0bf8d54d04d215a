"""Tests for the scene manager."""

import numpy as np
import pytest


class TestSceneManager:
    """Tests for SceneManager upload and rendering."""

    def test_upload_writes_all_state(self, scene_data):
        from src.mirth.camera.thin_lens import get_camera_resolution, is_camera_ready
        from src.mirth.scene.objects import get_object_count
        from src.mirth.scene.parsing import parse_scene

        scene = parse_scene(scene_data)
        scene.upload()
        assert is_camera_ready()
        assert get_camera_resolution() == (8, 6)
        assert get_object_count() == 2

    def test_render_uses_integrator_sample_count(self, scene_data):
        from src.mirth.scene.parsing import parse_scene

        renderer = parse_scene(scene_data).render()
        assert renderer.sample_count == 2
        assert (renderer.width, renderer.height) == (8, 6)

    def test_render_sample_override_and_callback(self, scene_data):
        from src.mirth.scene.parsing import parse_scene

        calls = []
        renderer = parse_scene(scene_data).render(
            num_samples=3, callback=lambda current, target: calls.append(current)
        )
        assert renderer.sample_count == 3
        assert calls == [1, 2, 3]

    def test_render_is_reproducible(self, scene_data):
        from src.mirth.scene.parsing import parse_scene

        scene_data["seed"] = 11
        first = parse_scene(scene_data).render().get_image_numpy()
        second = parse_scene(scene_data).render().get_image_numpy()
        assert np.array_equal(first, second)

    def test_group_follows_config_acceleration(self, scene_data):
        from src.mirth.config import AccelerationConfig, AccelerationStructureKind, RenderConfig
        from src.mirth.scene.manager import SceneManager
        from src.mirth.scene.parsing import parse_scene

        parsed = parse_scene(scene_data)
        bvh = AccelerationConfig(kind=AccelerationStructureKind.BVH)
        scene = SceneManager(
            camera=parsed.camera,
            objects=parsed.objects,
            integrator=parsed.integrator,
            config=RenderConfig(acceleration=bvh),
        )
        assert scene.objects.acceleration == bvh
        assert len(scene.objects) == 2

    @pytest.mark.parametrize("num_samples", [0, -2])
    def test_render_rejects_non_positive_sample_count(self, scene_data, num_samples):
        from src.mirth.scene.parsing import parse_scene

        with pytest.raises(ValueError, match="num_samples must be positive"):
            parse_scene(scene_data).render(num_samples=num_samples)
