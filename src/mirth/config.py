"""Render configuration and Taichi runtime setup.

Configuration is an explicit value built once at startup and passed to the
components that consult it. ``init_taichi`` must run before any module that
declares fields (camera, scene, materials, integrator) is imported.

Example:
    >>> from src.mirth.config import RenderConfig, init_taichi
    >>> config = RenderConfig(arch="cpu", seed=7)
    >>> init_taichi(config.arch)
    >>> from src.mirth.scene.parsing import load_scene_file  # safe now
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

import taichi as ti

logger = logging.getLogger(__name__)

ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
}


class AccelerationStructureKind(Enum):
    NONE = "none"
    BVH = "bvh"


class AxisSelection(Enum):
    """Split-axis policy for hierarchy construction."""

    RANDOM = "random"
    ALTERNATING = "alternating"
    LARGEST_EXTENT = "largest extent"


@dataclass(frozen=True)
class AccelerationConfig:
    """Acceleration structure selection for object group queries.

    Attributes:
        kind: Which acceleration structure to build.
        axis_selection: Split-axis policy, only meaningful for BVH.
    """

    kind: AccelerationStructureKind = AccelerationStructureKind.NONE
    axis_selection: AxisSelection = AxisSelection.LARGEST_EXTENT

    def validate(self) -> bool:
        """Log known-suboptimal combinations.

        Returns:
            True if the combination is the recommended one.
        """
        if (
            self.kind is AccelerationStructureKind.BVH
            and self.axis_selection is not AxisSelection.LARGEST_EXTENT
        ):
            logger.warning(
                "BVH with %s axis selection builds poorly balanced trees; "
                "largest extent is recommended",
                self.axis_selection.value,
            )
            return False
        return True


@dataclass(frozen=True)
class RenderConfig:
    """Process-wide render settings.

    Attributes:
        arch: Taichi backend name, ``"cpu"`` or ``"gpu"``.
        seed: Seed for every per-trace generator.
        acceleration: Acceleration structure selection.
    """

    arch: str = "cpu"
    seed: int = 0
    acceleration: AccelerationConfig = field(default_factory=AccelerationConfig)

    def __post_init__(self) -> None:
        if self.arch not in ARCHES:
            raise ValueError(f"Unknown arch '{self.arch}', expected one of {sorted(ARCHES)}")
        if not 0 <= self.seed < 2**32:
            raise ValueError(f"seed must fit in 32 unsigned bits, got {self.seed}")


def init_taichi(arch: str = "cpu", debug: bool = False) -> None:
    """Initialize the Taichi runtime for rendering.

    Fast math stays disabled so that comparisons against the +inf ray bound
    behave exactly. Requesting ``"gpu"`` on a machine without a supported GPU
    falls back to the CPU backend.

    Args:
        arch: Backend name, ``"cpu"`` or ``"gpu"``.
        debug: Enable Taichi's bounds checking.
    """
    if arch not in ARCHES:
        raise ValueError(f"Unknown arch '{arch}', expected one of {sorted(ARCHES)}")
    ti.init(arch=ARCHES[arch], default_fp=ti.f32, fast_math=False, debug=debug)
    logger.debug("Taichi initialized (arch=%s, debug=%s)", arch, debug)
