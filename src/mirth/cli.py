"""Command-line entry point: render a JSON scene file to an image.

Usage:
    mirth SCENE [options]
    python -m src.mirth SCENE [options]

Options:
    -o, --output OUTPUT   Output image path; format from the extension (default: render.png)
    --arch {cpu,gpu}      Taichi backend (default: cpu)
    --seed SEED           Override the scene's seed
    --samples SAMPLES     Override the integrator's sample count
    --batch-size SIZE     Samples per progress update (default: 8)
    --gamma GAMMA         Output gamma (default: 2.2)
    --tonemap {none,reinhard}
                          Tone mapping applied before export (default: none)
    -v, --verbose         Debug logging

Example:
    mirth examples/scenes/three_spheres.json -o spheres.png --samples 16
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

from src.mirth.config import ARCHES, init_taichi

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mirth",
        description="Render a JSON scene description to an image.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", type=Path, help="Path to the JSON scene file")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("render.png"),
        help="Output image path (default: render.png)",
    )
    parser.add_argument(
        "--arch",
        choices=sorted(ARCHES),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Override the scene's seed")
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Override the integrator's sample count",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=8,
        help="Samples per progress update (default: 8)",
    )
    parser.add_argument("--gamma", type=float, default=2.2, help="Output gamma (default: 2.2)")
    parser.add_argument(
        "--tonemap",
        choices=["none", "reinhard"],
        default="none",
        help="Tone mapping applied before export (default: none)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def read_scene_document(path: str | Path) -> Any:
    """Read and decode a scene file without interpreting it.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def render_scene(
    document: Any,
    output_path: str | Path,
    *,
    arch: str = "cpu",
    seed: int | None = None,
    num_samples: int | None = None,
    batch_size: int = 8,
    gamma: float = 2.2,
    tonemap: str = "none",
) -> Path:
    """Parse a decoded scene document, render it and save the image.

    Taichi must already be initialized.

    Args:
        document: Decoded JSON scene description.
        output_path: Destination image path.
        arch: Backend name recorded in the render configuration.
        seed: Overrides the scene's seed when given.
        num_samples: Overrides the integrator's sample count when given.
        batch_size: Samples per progress update.
        gamma: Output gamma.
        tonemap: Tone mapping method.

    Returns:
        The path written.
    """
    # Field-declaring modules load only after Taichi is initialized
    from src.mirth.scene.parsing import parse_scene

    scene = parse_scene(document, arch=arch)
    if seed is not None:
        scene.config = dataclasses.replace(scene.config, seed=seed)
    if num_samples is not None:
        scene.integrator = dataclasses.replace(scene.integrator, num_samples=num_samples)

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.time() - start_time
        rate = current / elapsed if elapsed > 0 else 0.0
        logger.info("Progress: %d/%d samples (%.1f spp/s)", current, target, rate)

    renderer = scene.render(
        batch_size=batch_size,
        callback=progress_callback,
    )

    path = renderer.save_image(output_path, gamma=gamma, tonemap=tonemap)
    logger.info("Finished in %.2fs", time.time() - start_time)
    return path


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        document = read_scene_document(args.scene)
    except OSError as e:
        logger.error("Cannot read scene file %s: %s", args.scene, e)
        return 1
    except json.JSONDecodeError as e:
        logger.error("Scene file %s is not valid JSON: %s", args.scene, e)
        return 1

    init_taichi(args.arch)

    from src.mirth.geometry.transform import SingularTransformError
    from src.mirth.scene.parsing import SceneParseError

    try:
        render_scene(
            document,
            args.output,
            arch=args.arch,
            seed=args.seed,
            num_samples=args.samples,
            batch_size=args.batch_size,
            gamma=args.gamma,
            tonemap=args.tonemap,
        )
    except SceneParseError as e:
        logger.error("Invalid scene %s: %s", args.scene, e)
        return 1
    except SingularTransformError as e:
        logger.error("Invalid transform in %s: %s", args.scene, e)
        return 1
    except (OSError, ValueError) as e:
        logger.error("Render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
