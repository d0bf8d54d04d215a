"""JSON scene description parsing.

A scene file looks like::

    {
      "camera": {"resolution": [w, h], "focal distance": f, "vertical fov": deg,
                 "aperture radius": r, "transform": <Transform>},
      "integrator": {"kind": "ambient occlusion" | "path tracing",
                     "number of samples": N, "ray recursion limit": D},
      "materials": [{"name": str, "kind": "lambertian"}, ...],
      "textures": [{"name": str, "kind": "constant", "rgb color": [r, g, b]}, ...],
      "objects": [{"shape": <Shape>, "texture": name, "material": name}, ...],
      "background color": [r, g, b],      (optional, default white)
      "seed": int                         (optional, default 0)
    }

``<Shape>`` is ``{"kind": "sphere", "center": [x, y, z], "radius": r,
"transform": <Transform>}`` or ``{"kind": "quad", "width": w, "height": h,
"transform": <Transform>}``. ``<Transform>`` is ``null`` (identity) or an
object with exactly one key, ``"viewer"`` or ``"simple sequence"``; the members
of a simple sequence (``"rotation"``, ``"translation"``, ``"scale"``) are
applied in the order they are written. Rotation angles are in degrees.

Every validation failure raises ``SceneParseError`` carrying a message and the
offending JSON fragment. A transform whose matrix cannot be inverted raises
``SingularTransformError`` instead.

Example:
    >>> scene = load_scene_file("scenes/spheres.json")
    >>> renderer = scene.render()
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from src.mirth.camera.thin_lens import ThinLensCamera
from src.mirth.config import AccelerationConfig, RenderConfig
from src.mirth.core.integrator import (
    DEFAULT_NUM_SAMPLES,
    DEFAULT_RECURSION_LIMIT,
    IntegratorKind,
    IntegratorSettings,
)
from src.mirth.geometry.quad import Quad
from src.mirth.geometry.sphere import Sphere
from src.mirth.geometry.transform import (
    Rotation,
    Scale,
    SingularTransformError,
    Transform,
    TransformStep,
    Translation,
)
from src.mirth.materials.lambertian import Lambertian
from src.mirth.materials.texture import ConstantTexture
from src.mirth.scene.manager import SceneManager
from src.mirth.scene.objects import Material, Object, ObjectGroup, Shape, Texture

logger = logging.getLogger(__name__)

INTEGRATOR_KINDS = {
    "ambient occlusion": IntegratorKind.AMBIENT_OCCLUSION,
    "path tracing": IntegratorKind.PATH_TRACING,
}

_FRAGMENT_PREVIEW = 200


class SceneParseError(ValueError):
    """A scene description is missing a field or holds an invalid value.

    Attributes:
        message: What is wrong.
        fragment: The JSON value the problem was found in.
    """

    def __init__(self, message: str, fragment: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.fragment = fragment

    def __str__(self) -> str:
        if self.fragment is None:
            return self.message
        text = json.dumps(self.fragment, default=str)
        if len(text) > _FRAGMENT_PREVIEW:
            text = text[:_FRAGMENT_PREVIEW] + "..."
        return f"{self.message} in {text}"


# =============================================================================
# Value Helpers
# =============================================================================


def _expect_object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SceneParseError(f"{what} must be a JSON object", value)
    return value


def _expect_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise SceneParseError(f"{what} must be a JSON array", value)
    return value


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise SceneParseError(f"missing field '{key}'", data)
    return data[key]


def _number(value: Any, what: str, fragment: Any) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SceneParseError(f"'{what}' must be a number", fragment)
    if not math.isfinite(value):
        raise SceneParseError(f"'{what}' must be finite", fragment)
    return float(value)


def _integer(value: Any, what: str, fragment: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SceneParseError(f"'{what}' must be an integer", fragment)
    return value


def _vec3(value: Any, what: str, fragment: Any) -> tuple[float, float, float]:
    if not isinstance(value, list) or len(value) != 3:
        raise SceneParseError(f"'{what}' must be an array of 3 numbers", fragment)
    x, y, z = (_number(v, what, fragment) for v in value)
    return (x, y, z)


def _string(value: Any, what: str, fragment: Any) -> str:
    if not isinstance(value, str):
        raise SceneParseError(f"'{what}' must be a string", fragment)
    return value


def _construct(factory, fragment: Any, *args, **kwargs):
    """Call a constructor, turning its validation errors into parse errors."""
    try:
        return factory(*args, **kwargs)
    except SingularTransformError:
        raise
    except ValueError as exc:
        raise SceneParseError(str(exc), fragment) from exc


# =============================================================================
# Transforms
# =============================================================================


def parse_transform(value: Any) -> Transform:
    """Parse a ``<Transform>``; ``None`` means identity."""
    if value is None:
        return Transform.identity()
    data = _expect_object(value, "transform")
    if len(data) != 1:
        raise SceneParseError(
            "transform must have exactly one key, 'viewer' or 'simple sequence'", data
        )

    (kind, body), = data.items()
    if kind == "viewer":
        viewer = _expect_object(body, "viewer transform")
        return _construct(
            Transform.for_viewer,
            viewer,
            _vec3(_require(viewer, "look_from"), "look_from", viewer),
            _vec3(_require(viewer, "look_at"), "look_at", viewer),
            _vec3(_require(viewer, "up_direction"), "up_direction", viewer),
        )
    if kind == "simple sequence":
        sequence = _expect_object(body, "simple sequence")
        return _construct(Transform.from_sequence, sequence, _parse_steps(sequence))
    raise SceneParseError(f"unknown transform kind '{kind}'", data)


def _parse_steps(sequence: dict[str, Any]) -> list[TransformStep]:
    steps: list[TransformStep] = []
    for key, value in sequence.items():
        if key == "rotation":
            rotation = _expect_object(value, "rotation")
            steps.append(
                Rotation(
                    axis=_vec3(_require(rotation, "axis"), "axis", rotation),
                    angle=_number(_require(rotation, "angle"), "angle", rotation),
                )
            )
        elif key == "translation":
            steps.append(Translation(_vec3(value, "translation", sequence)))
        elif key == "scale":
            steps.append(Scale(_vec3(value, "scale", sequence)))
        else:
            raise SceneParseError(f"unknown transform step '{key}'", sequence)
    return steps


# =============================================================================
# Camera and Integrator
# =============================================================================


def parse_camera(value: Any) -> ThinLensCamera:
    data = _expect_object(value, "camera")
    resolution = _require(data, "resolution")
    if not isinstance(resolution, list) or len(resolution) != 2:
        raise SceneParseError("'resolution' must be an array of 2 integers", data)
    width, height = (_integer(v, "resolution", data) for v in resolution)

    return _construct(
        ThinLensCamera,
        data,
        resolution=(width, height),
        transform=parse_transform(data.get("transform")),
        vertical_fov=_number(_require(data, "vertical fov"), "vertical fov", data),
        focal_distance=_number(_require(data, "focal distance"), "focal distance", data),
        aperture_radius=_number(_require(data, "aperture radius"), "aperture radius", data),
    )


def parse_integrator(
    value: Any,
    background: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> IntegratorSettings:
    data = _expect_object(value, "integrator")
    kind_name = _string(_require(data, "kind"), "kind", data)
    kind = INTEGRATOR_KINDS.get(kind_name)
    if kind is None:
        raise SceneParseError(f"unknown integrator kind '{kind_name}'", data)

    num_samples = _integer(data.get("number of samples", DEFAULT_NUM_SAMPLES), "number of samples", data)
    recursion_limit = _integer(
        data.get("ray recursion limit", DEFAULT_RECURSION_LIMIT), "ray recursion limit", data
    )
    return _construct(
        IntegratorSettings,
        data,
        kind=kind,
        num_samples=num_samples,
        recursion_limit=recursion_limit,
        background=background,
    )


# =============================================================================
# Textures, Materials, Shapes and Objects
# =============================================================================


def _named_entries(value: Any, what: str) -> list[tuple[str, dict[str, Any]]]:
    entries = []
    seen: set[str] = set()
    for entry in _expect_list(value, what):
        data = _expect_object(entry, f"{what} entry")
        name = _string(_require(data, "name"), "name", data)
        if name in seen:
            raise SceneParseError(f"duplicate {what} name '{name}'", data)
        seen.add(name)
        entries.append((name, data))
    return entries


def parse_textures(value: Any) -> dict[str, Texture]:
    textures: dict[str, Texture] = {}
    for name, data in _named_entries(value, "textures"):
        kind = _string(_require(data, "kind"), "kind", data)
        if kind != "constant":
            raise SceneParseError(f"unknown texture kind '{kind}'", data)
        rgb = _vec3(_require(data, "rgb color"), "rgb color", data)
        textures[name] = _construct(ConstantTexture, data, rgb)
    return textures


def parse_materials(value: Any) -> dict[str, Material]:
    materials: dict[str, Material] = {}
    for name, data in _named_entries(value, "materials"):
        kind = _string(_require(data, "kind"), "kind", data)
        if kind != "lambertian":
            raise SceneParseError(f"unknown material kind '{kind}'", data)
        materials[name] = Lambertian()
    return materials


def parse_shape(value: Any) -> Shape:
    data = _expect_object(value, "shape")
    kind = _string(_require(data, "kind"), "kind", data)
    transform = parse_transform(data.get("transform"))
    if kind == "sphere":
        return _construct(
            Sphere,
            data,
            center=_vec3(_require(data, "center"), "center", data),
            radius=_number(_require(data, "radius"), "radius", data),
            transform=transform,
        )
    if kind == "quad":
        return _construct(
            Quad,
            data,
            width=_number(_require(data, "width"), "width", data),
            height=_number(_require(data, "height"), "height", data),
            transform=transform,
        )
    raise SceneParseError(f"unknown shape kind '{kind}'", data)


def parse_objects(
    value: Any,
    textures: dict[str, Texture],
    materials: dict[str, Material],
) -> list[Object]:
    objects = []
    for entry in _expect_list(value, "objects"):
        data = _expect_object(entry, "object")
        shape = parse_shape(_require(data, "shape"))
        texture_name = _string(_require(data, "texture"), "texture", data)
        material_name = _string(_require(data, "material"), "material", data)
        if texture_name not in textures:
            raise SceneParseError(f"no texture named '{texture_name}'", data)
        if material_name not in materials:
            raise SceneParseError(f"no material named '{material_name}'", data)
        objects.append(Object(shape, textures[texture_name], materials[material_name]))
    return objects


# =============================================================================
# Scene
# =============================================================================


def parse_scene(
    data: Any,
    acceleration: AccelerationConfig | None = None,
    arch: str = "cpu",
) -> SceneManager:
    """Build a SceneManager from a decoded JSON scene description.

    Args:
        data: The decoded JSON document.
        acceleration: Acceleration selection passed to the object group.
        arch: Backend name recorded in the render configuration.

    Raises:
        SceneParseError: If the description is invalid.
        SingularTransformError: If a transform cannot be inverted.
    """
    root = _expect_object(data, "scene")
    background = (1.0, 1.0, 1.0)
    if "background color" in root:
        background = _vec3(root["background color"], "background color", root)
    seed = _integer(root.get("seed", 0), "seed", root)

    camera = parse_camera(_require(root, "camera"))
    integrator = parse_integrator(_require(root, "integrator"), background)
    textures = parse_textures(_require(root, "textures"))
    materials = parse_materials(_require(root, "materials"))
    objects = parse_objects(_require(root, "objects"), textures, materials)

    config = _construct(
        RenderConfig,
        root,
        arch=arch,
        seed=seed,
        acceleration=acceleration or AccelerationConfig(),
    )
    logger.debug(
        "Parsed scene: %d objects, %d textures, %d materials",
        len(objects),
        len(textures),
        len(materials),
    )
    return SceneManager(
        camera=camera,
        objects=ObjectGroup(objects, acceleration=config.acceleration),
        integrator=integrator,
        config=config,
    )


def load_scene_file(
    path: str | Path,
    acceleration: AccelerationConfig | None = None,
    arch: str = "cpu",
) -> SceneManager:
    """Read and parse a JSON scene file.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
        SceneParseError: If the description is invalid.
        SingularTransformError: If a transform cannot be inverted.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    logger.info("Loaded scene %s", path)
    return parse_scene(data, acceleration=acceleration, arch=arch)
