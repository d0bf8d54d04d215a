"""Scene manager tying camera, objects and integrator together.

The SceneManager owns one complete render description:
- the camera,
- the object group (shapes with their textures and materials),
- the integrator settings,
- the render configuration (seed, acceleration selection).

``upload`` writes all of it to the device; ``render`` runs the sample loop and
returns the progressive renderer holding the averaged image.

Example:
    >>> from src.mirth.scene.manager import SceneManager
    >>> scene = SceneManager(camera=camera, objects=group)
    >>> renderer = scene.render(callback=lambda done, total: print(done, total))
    >>> renderer.save_image("render.png")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.mirth.camera.thin_lens import ThinLensCamera, setup_camera
from src.mirth.config import RenderConfig
from src.mirth.core.integrator import IntegratorSettings, setup_integrator
from src.mirth.core.progressive import ProgressCallback, ProgressiveRenderer, StopCheck
from src.mirth.scene.objects import ObjectGroup

logger = logging.getLogger(__name__)


@dataclass
class SceneManager:
    """A complete, renderable scene.

    Attributes:
        camera: The camera; its resolution sets the image size.
        objects: The object group.
        integrator: Integrator selection, sample count and recursion limit.
        config: Seed and acceleration selection.
    """

    camera: ThinLensCamera
    objects: ObjectGroup = field(default_factory=ObjectGroup)
    integrator: IntegratorSettings = field(default_factory=IntegratorSettings)
    config: RenderConfig = field(default_factory=RenderConfig)

    def __post_init__(self) -> None:
        if self.objects.acceleration != self.config.acceleration:
            self.objects = ObjectGroup(self.objects.objects, acceleration=self.config.acceleration)

    def upload(self) -> None:
        """Write camera, objects and integrator settings to the device.

        Replaces whatever scene was uploaded before.
        """
        self.config.acceleration.validate()
        setup_camera(self.camera)
        self.objects.upload()
        setup_integrator(self.integrator)
        logger.debug(
            "Scene uploaded: %dx%d, %d objects, %s with %d samples",
            self.camera.resolution[0],
            self.camera.resolution[1],
            len(self.objects),
            self.integrator.kind.name.lower(),
            self.integrator.num_samples,
        )

    def create_renderer(self) -> ProgressiveRenderer:
        """Upload the scene and return an empty renderer sized for it."""
        self.upload()
        width, height = self.camera.resolution
        return ProgressiveRenderer(width, height, seed=self.config.seed)

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
        should_stop: StopCheck | None = None,
    ) -> ProgressiveRenderer:
        """Render the scene.

        Args:
            num_samples: Sample passes to render; defaults to the
                integrator's configured count.
            batch_size: Passes between progress callbacks.
            callback: Progress callback (current, target).
            should_stop: Cooperative cancellation check, polled between passes.

        Returns:
            The renderer holding the averaged image.

        Raises:
            ValueError: If num_samples is given and not positive.
        """
        if num_samples is not None and num_samples <= 0:
            raise ValueError(f"num_samples must be positive, got {num_samples}")
        renderer = self.create_renderer()
        target = self.integrator.num_samples if num_samples is None else num_samples
        logger.info(
            "Rendering %dx%d with %d samples (%s)",
            renderer.width,
            renderer.height,
            target,
            self.integrator.kind.name.lower().replace("_", " "),
        )
        renderer.render(target, batch_size=batch_size, callback=callback, should_stop=should_stop)
        return renderer
