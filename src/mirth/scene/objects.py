"""Renderable objects and the object group's nearest-hit search.

An ``Object`` couples one shape, one texture and one material. An
``ObjectGroup`` is an ordered, immutable collection of objects. Uploading a
group writes it into an arena of fields indexed by a stable object handle (the
object's position in the group); device code and hit results refer to
objects only through that handle.

Shapes share one arena: every slot records its shape kind, the shape
parameters, the local-to-world matrix and its inverse, and the texture and
material indices.

Example:
    >>> from src.mirth.scene.objects import Object, ObjectGroup
    >>> group = ObjectGroup([Object(Sphere(radius=1.0), ConstantTexture((1, 1, 1)), Lambertian())])
    >>> group.upload()
    >>> group.intersect_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0)).object_index
    0
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.mirth.config import AccelerationConfig, AccelerationStructureKind
from src.mirth.core.ray import INFINITY, RAY_MIN_T, Ray, make_ray
from src.mirth.geometry.quad import Quad, intersect_quad
from src.mirth.geometry.sphere import IntersectionInfo, Sphere, intersect_sphere, no_intersection
from src.mirth.materials.lambertian import Lambertian, eval_lambertian, scatter_lambertian
from src.mirth.materials.material import (
    MaterialKind,
    ScatterResult,
    add_material,
    clear_materials,
    material_kinds,
)
from src.mirth.materials.texture import (
    ConstantTexture,
    add_texture,
    clear_textures,
    texture_value_at,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class ShapeKind(IntEnum):
    SPHERE = 0
    QUAD = 1


Shape = Sphere | Quad
Texture = ConstantTexture
Material = Lambertian


@dataclass(frozen=True, eq=False)
class Object:
    """A shape with its texture and material.

    Textures and materials may be shared between objects; they are uploaded
    once per group.
    """

    shape: Shape
    texture: Texture
    material: Material


# =============================================================================
# Object Arena
# =============================================================================

# Maximum number of objects supported in a group
MAX_OBJECTS = 4096

object_shape_kinds = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_OBJECTS)
quad_sizes = ti.Vector.field(2, dtype=ti.f32, shape=MAX_OBJECTS)
object_to_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_OBJECTS)
world_to_object = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_OBJECTS)
object_texture_ids = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
object_material_ids = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())


def clear_objects() -> None:
    """Remove all objects from the arena.

    The field data is not cleared but will be overwritten when new objects
    are added.
    """
    num_objects[None] = 0


def add_object(shape: Shape, texture_id: int, material_id: int) -> int:
    """Write one object into the arena.

    Args:
        shape: A Sphere or Quad.
        texture_id: Index of a registered texture.
        material_id: Index of a registered material.

    Returns:
        The object handle.

    Raises:
        RuntimeError: If the maximum number of objects is exceeded.
        TypeError: If the shape kind is unknown.
    """
    idx = num_objects[None]
    if idx >= MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")

    if isinstance(shape, Sphere):
        object_shape_kinds[idx] = int(ShapeKind.SPHERE)
        sphere_centers[idx] = vec3(shape.center[0], shape.center[1], shape.center[2])
        sphere_radii[idx] = shape.radius
    elif isinstance(shape, Quad):
        object_shape_kinds[idx] = int(ShapeKind.QUAD)
        quad_sizes[idx] = tm.vec2(shape.width, shape.height)
    else:
        raise TypeError(f"Unsupported shape type: {type(shape).__name__}")

    matrix, inverse = shape.transform.to_taichi()
    object_to_world[idx] = matrix
    world_to_object[idx] = inverse
    object_texture_ids[idx] = texture_id
    object_material_ids[idx] = material_id
    num_objects[None] = idx + 1
    return idx


def get_object_count() -> int:
    return int(num_objects[None])


# =============================================================================
# Device-side Queries
# =============================================================================


@ti.func
def intersect_object(i: ti.i32, ray: Ray) -> IntersectionInfo:
    """Intersect one object of the arena."""
    info = no_intersection()
    kind = object_shape_kinds[i]
    if kind == int(ShapeKind.SPHERE):
        info = intersect_sphere(ray, sphere_centers[i], sphere_radii[i], object_to_world[i], world_to_object[i])
    elif kind == int(ShapeKind.QUAD):
        size = quad_sizes[i]
        info = intersect_quad(ray, size.x, size.y, object_to_world[i], world_to_object[i])
    return info


@ti.func
def intersect_group(ray: Ray):
    """Find the nearest object hit by a ray.

    Objects are scanned in order against a working copy of the ray whose
    ``max_t`` shrinks to each confirmed hit. Because the range is exclusive, a
    later object has to be strictly closer to replace the current hit, so
    ties resolve to the earlier object.

    Args:
        ray: World-space ray.

    Returns:
        A tuple (object_index, info). object_index is -1 and info is the
        "no intersection" record when nothing is hit.
    """
    working_ray = Ray(origin=ray.origin, direction=ray.direction, min_t=ray.min_t, max_t=ray.max_t)
    closest = -1
    result = no_intersection()

    for i in range(num_objects[None]):
        info = intersect_object(i, working_ray)
        if info.hit == 1:
            working_ray.max_t = info.t
            closest = i
            result = info

    return closest, result


@ti.func
def is_occluded(ray: Ray) -> ti.i32:
    """Test if the ray hits any object in its range (shadow ray query).

    Returns:
        1 if any object was hit, 0 otherwise.
    """
    hit_any = 0
    for i in range(num_objects[None]):
        if hit_any == 0:
            info = intersect_object(i, ray)
            if info.hit == 1:
                hit_any = 1
    return hit_any


@ti.func
def scatter_object(i: ti.i32, ray: Ray, info: IntersectionInfo, state: ti.u32):
    """Scatter a ray off object i using its material and texture.

    Args:
        i: Object handle.
        ray: The incoming ray.
        info: The hit record for object i.
        state: Generator state.

    Returns:
        A tuple (ScatterResult, new_state).
    """
    light = texture_value_at(object_texture_ids[i], ray, info.uv)
    result = ScatterResult(
        did_scatter=0,
        scattered_ray=make_ray(info.point, info.normal),
        pdf=0.0,
        light=light,
    )
    rng = state

    kind = material_kinds[object_material_ids[i]]
    if kind == int(MaterialKind.LAMBERTIAN):
        result, rng = scatter_lambertian(ray, info, light, rng)

    return result, rng


@ti.func
def eval_object(i: ti.i32, light: vec3) -> vec3:
    """BRDF value of object i's material for a scatter carrying ``light``."""
    value = vec3(0.0, 0.0, 0.0)
    kind = material_kinds[object_material_ids[i]]
    if kind == int(MaterialKind.LAMBERTIAN):
        value = eval_lambertian(light)
    return value


# =============================================================================
# Host-side Group
# =============================================================================


@dataclass(frozen=True)
class GroupIntersection:
    """Host-side copy of a group query result.

    Attributes:
        object_index: Handle of the hit object, or None on a miss.
        point: World-space hit point.
        t: Parametric distance (+inf on a miss).
        normal: World-space normal facing the ray.
        uv: Texture coordinates.
    """

    object_index: int | None
    point: tuple[float, float, float]
    t: float
    normal: tuple[float, float, float]
    uv: tuple[float, float]

    @property
    def hit(self) -> bool:
        return self.object_index is not None


_query_index = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_uv = ti.Vector.field(2, dtype=ti.f32, shape=())


@ti.kernel
def _intersect_one(origin: vec3, direction: vec3, min_t: ti.f32, max_t: ti.f32):
    ray = Ray(origin=origin, direction=direction, min_t=min_t, max_t=max_t)
    obj, info = intersect_group(ray)
    _query_index[None] = obj
    _query_t[None] = info.t
    _query_point[None] = info.point
    _query_normal[None] = info.normal
    _query_uv[None] = info.uv


class ObjectGroup:
    """An ordered, immutable collection of objects.

    Args:
        objects: The objects, in the order they are tested.
        acceleration: Acceleration structure selection. Only the linear scan
            is implemented; requesting a BVH logs a warning and falls back.
    """

    def __init__(
        self,
        objects: Iterable[Object] = (),
        acceleration: AccelerationConfig | None = None,
    ) -> None:
        self._objects = tuple(objects)
        for obj in self._objects:
            if not isinstance(obj, Object):
                raise TypeError(f"ObjectGroup members must be Object, got {type(obj).__name__}")
        if len(self._objects) > MAX_OBJECTS:
            raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")
        self._acceleration = acceleration or AccelerationConfig()

    @property
    def objects(self) -> tuple[Object, ...]:
        return self._objects

    @property
    def acceleration(self) -> AccelerationConfig:
        return self._acceleration

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[Object]:
        return iter(self._objects)

    def __getitem__(self, index: int) -> Object:
        return self._objects[index]

    def upload(self) -> None:
        """Write the group, its textures and its materials into the arenas.

        Any previously uploaded group is replaced. Object handles equal the
        objects' positions in this group.
        """
        if self._acceleration.kind is AccelerationStructureKind.BVH:
            self._acceleration.validate()
            logger.warning("BVH acceleration is not available; using a linear scan")

        clear_objects()
        clear_textures()
        clear_materials()

        texture_ids: dict[int, int] = {}
        material_ids: dict[int, int] = {}
        for obj in self._objects:
            texture_id = texture_ids.get(id(obj.texture))
            if texture_id is None:
                texture_id = add_texture(obj.texture)
                texture_ids[id(obj.texture)] = texture_id
            material_id = material_ids.get(id(obj.material))
            if material_id is None:
                material_id = add_material(obj.material.kind)
                material_ids[id(obj.material)] = material_id
            add_object(obj.shape, texture_id, material_id)

        logger.debug(
            "Uploaded %d objects (%d textures, %d materials)",
            len(self._objects),
            len(texture_ids),
            len(material_ids),
        )

    def intersect_ray(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        min_t: float = RAY_MIN_T,
        max_t: float = INFINITY,
    ) -> GroupIntersection:
        """Run a single nearest-hit query against the uploaded group.

        Args:
            origin: World-space ray origin.
            direction: World-space ray direction.
            min_t: Exclusive lower bound of accepted distances.
            max_t: Exclusive upper bound of accepted distances.

        Returns:
            A GroupIntersection.
        """
        _intersect_one(vec3(*origin), vec3(*direction), min_t, max_t)
        index = int(_query_index[None])
        return GroupIntersection(
            object_index=index if index >= 0 else None,
            point=tuple(_query_point[None].to_numpy().tolist()),
            t=float(_query_t[None]),
            normal=tuple(_query_normal[None].to_numpy().tolist()),
            uv=tuple(_query_uv[None].to_numpy().tolist()),
        )

    def __repr__(self) -> str:
        return f"ObjectGroup({len(self._objects)} objects, acceleration={self._acceleration.kind.value})"
