"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields already created.
    """
    from src.mirth.config import init_taichi

    init_taichi("cpu")
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear device-side scene data before and after each test."""
    # Import here so the fields are created after Taichi is initialized
    from src.mirth.camera.thin_lens import clear_camera
    from src.mirth.core.integrator import reset_integrator
    from src.mirth.materials.material import clear_materials
    from src.mirth.materials.texture import clear_textures
    from src.mirth.scene.objects import clear_objects

    def _clear_all():
        clear_objects()
        clear_textures()
        clear_materials()
        clear_camera()
        reset_integrator()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def scene_data():
    """A small valid scene description: two spheres in front of the camera."""
    return {
        "camera": {
            "resolution": [8, 6],
            "focal distance": 1.0,
            "vertical fov": 90.0,
            "aperture radius": 0.0,
            "transform": None,
        },
        "integrator": {"kind": "ambient occlusion", "number of samples": 2},
        "materials": [{"name": "diffuse", "kind": "lambertian"}],
        "textures": [
            {"name": "white", "kind": "constant", "rgb color": [1.0, 1.0, 1.0]},
            {"name": "red", "kind": "constant", "rgb color": [0.9, 0.1, 0.1]},
        ],
        "objects": [
            {
                "shape": {"kind": "sphere", "center": [0.0, 0.0, -3.0], "radius": 1.0, "transform": None},
                "texture": "red",
                "material": "diffuse",
            },
            {
                "shape": {
                    "kind": "quad",
                    "width": 8.0,
                    "height": 8.0,
                    "transform": {
                        "simple sequence": {
                            "rotation": {"axis": [1.0, 0.0, 0.0], "angle": -90.0},
                            "translation": [-4.0, -1.0, 2.0],
                        }
                    },
                },
                "texture": "white",
                "material": "diffuse",
            },
        ],
    }
