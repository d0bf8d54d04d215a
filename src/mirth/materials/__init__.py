"""Textures and material models.

Components:
    texture: Constant textures and the texture registry
    material: Material registry and the ScatterResult record
    lambertian: Ideal diffuse reflection

A material provides:
    - scatter(): Importance sample a continuation ray
    - eval(): Evaluate the BRDF for a given reflectance
    - pdf(): Probability density for a sampled direction
"""

from .lambertian import Lambertian, eval_lambertian, pdf_lambertian, scatter_lambertian
from .material import (
    MAX_MATERIALS,
    MaterialKind,
    ScatterResult,
    add_material,
    clear_materials,
    get_material_count,
    get_material_kind,
)
from .texture import (
    MAX_TEXTURES,
    ConstantTexture,
    TextureKind,
    add_texture,
    clear_textures,
    get_texture_count,
    texture_value_at,
)

__all__ = [
    "ConstantTexture",
    "TextureKind",
    "add_texture",
    "clear_textures",
    "get_texture_count",
    "texture_value_at",
    "MAX_TEXTURES",
    "MaterialKind",
    "ScatterResult",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_material_kind",
    "MAX_MATERIALS",
    "Lambertian",
    "eval_lambertian",
    "pdf_lambertian",
    "scatter_lambertian",
]
