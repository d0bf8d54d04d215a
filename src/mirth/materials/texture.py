"""Textures: map a surface point to a color.

Textures are registered into a small field arena and referenced from objects
by index. Only constant textures exist so far; ``texture_value_at`` dispatches
on ``TextureKind`` so further kinds slot into the same if-chain.
"""

import math
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.mirth.core.ray import Ray

vec3 = tm.vec3
vec2 = tm.vec2


class TextureKind(IntEnum):
    CONSTANT = 0


@dataclass(frozen=True)
class ConstantTexture:
    """A texture returning the same color everywhere.

    Attributes:
        rgb: Linear RGB color. Components must be finite and non-negative.
    """

    rgb: tuple[float, float, float]

    def __post_init__(self) -> None:
        validate_color(self.rgb, "texture color")

    @property
    def kind(self) -> TextureKind:
        return TextureKind.CONSTANT


def validate_color(rgb, name: str = "color") -> None:
    """Check that a color is three finite, non-negative numbers.

    Raises:
        ValueError: If the color is malformed.
    """
    if len(rgb) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(rgb)}")
    for i, component in enumerate(rgb):
        if not math.isfinite(component) or component < 0.0:
            raise ValueError(f"{name} component {i} = {component} must be finite and non-negative")


# =============================================================================
# Texture Field Storage
# =============================================================================

MAX_TEXTURES = 256

texture_kinds = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    num_textures[None] = 0


def add_texture(texture: ConstantTexture) -> int:
    """Register a texture and return its index.

    Raises:
        RuntimeError: If the maximum number of textures is exceeded.
    """
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    texture_kinds[idx] = int(texture.kind)
    texture_colors[idx] = vec3(texture.rgb[0], texture.rgb[1], texture.rgb[2])
    num_textures[None] = idx + 1
    return idx


def get_texture_count() -> int:
    return int(num_textures[None])


@ti.func
def texture_value_at(texture_id: ti.i32, ray: Ray, uv: vec2) -> vec3:
    """Evaluate a registered texture.

    Args:
        texture_id: Index returned by ``add_texture``.
        ray: The incoming ray.
        uv: Texture coordinates of the hit.

    Returns:
        The RGB color. Constant textures ignore ``ray`` and ``uv``.
    """
    color = vec3(0.0, 0.0, 0.0)
    kind = texture_kinds[texture_id]
    if kind == int(TextureKind.CONSTANT):
        color = texture_colors[texture_id]
    return color
