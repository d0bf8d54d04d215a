"""Material kinds, the scatter result record and the material registry.

A material turns an incoming ray and a hit record into one scattered ray, the
density the scattered direction was sampled with, and an outgoing light value.
Materials are registered into a field arena by kind; per-object dispatch lives
in ``scene.objects.scatter_object``.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray

vec3 = tm.vec3


class MaterialKind(IntEnum):
    LAMBERTIAN = 0


@ti.dataclass
class ScatterResult:
    """Outcome of scattering a ray off a surface.

    Attributes:
        did_scatter: 1 if a scattered ray was produced, 0 if the light was absorbed.
        scattered_ray: The outgoing ray, starting at the hit point.
        pdf: Density of the scattered direction (solid angle measure).
        light: Light value carried by the scatter (the surface color).
    """

    did_scatter: ti.i32
    scattered_ray: Ray
    pdf: ti.f32
    light: vec3


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 256

material_kinds = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    num_materials[None] = 0


def add_material(kind: MaterialKind) -> int:
    """Register a material of the given kind and return its index.

    Raises:
        ValueError: If the kind is unknown.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    kind = MaterialKind(kind)
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_kinds[idx] = int(kind)
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    return int(num_materials[None])


def get_material_kind(material_id: int) -> MaterialKind:
    if material_id < 0 or material_id >= num_materials[None]:
        raise IndexError(f"material index {material_id} out of range")
    return MaterialKind(material_kinds[material_id])
