#!/usr/bin/env python3
"""Render a scene of spheres.

Renders one of the built-in scenes (or a scene loaded from JSON) and saves it
as PNG or ASCII PPM depending on the output extension.

Usage:
    python -m examples.render_spheres [options]

Options:
    --scene {demo,random}   Built-in scene (default: random)
    --scene-file PATH       JSON scene file with "materials", "spheres" and "camera"
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: 250)
    --samples SAMPLES       Samples per pixel (default: 100)
    --max-depth DEPTH       Maximum bounces per path (default: 50)
    --seed SEED             Seed for sampling and the random scene layout (default: 0)
    --rows-per-batch ROWS   Rows per progress update (default: 16)
    --serial                Render on a single thread
    --arch {cpu,gpu}        Taichi backend (default: cpu)
    --output OUTPUT         Output file path (default: spheres.png)
    --quiet                 Suppress progress output
    --verbose               Enable debug logging

Example:
    python -m examples.render_spheres --scene demo --width 200 --height 100 --samples 20
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene of spheres.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=["demo", "random"],
        default="random",
        help="Built-in scene (default: random)",
    )
    parser.add_argument(
        "--scene-file",
        type=Path,
        default=None,
        help="JSON scene file; overrides --scene",
    )
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels (default: 400)")
    parser.add_argument("--height", type=int, default=250, help="Image height in pixels (default: 250)")
    parser.add_argument("--samples", type=int, default=100, help="Samples per pixel (default: 100)")
    parser.add_argument(
        "--max-depth", type=int, default=50, help="Maximum bounces per path (default: 50)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for sampling and the random scene layout (default: 0)",
    )
    parser.add_argument(
        "--rows-per-batch", type=int, default=16, help="Rows per progress update (default: 16)"
    )
    parser.add_argument("--serial", action="store_true", help="Render on a single thread")
    parser.add_argument(
        "--arch", choices=["cpu", "gpu"], default="cpu", help="Taichi backend (default: cpu)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path, .png or .ppm (default: spheres.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def load_scene(args: argparse.Namespace, aspect_ratio: float):
    """Build the requested scene and return (scene, camera)."""
    # Lazy imports to allow Taichi initialization first
    from weekend_tracer.camera.thin_lens import ThinLensCamera
    from weekend_tracer.scene.manager import SceneManager
    from weekend_tracer.scene.presets import create_demo_scene, create_random_scene

    if args.scene_file is not None:
        data = json.loads(args.scene_file.read_text())
        scene = SceneManager.from_dict(data)
        camera_data = dict(data["camera"])
        camera_data.setdefault("aspect_ratio", aspect_ratio)
        return scene, ThinLensCamera.from_dict(camera_data)

    if args.scene == "demo":
        return create_demo_scene(aspect_ratio=aspect_ratio)
    return create_random_scene(seed=args.seed, aspect_ratio=aspect_ratio)


def render_spheres(args: argparse.Namespace) -> Path:
    """Render the scene described by args and save it.

    Returns:
        Path to the saved image file.
    """
    from weekend_tracer.config import RenderSettings
    from weekend_tracer.core.renderer import Renderer

    settings = RenderSettings(
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
        rows_per_batch=args.rows_per_batch,
        parallel=not args.serial,
    )

    scene, camera = load_scene(args, settings.aspect_ratio)
    if not args.quiet:
        print(f"Scene: {scene.get_sphere_count()} spheres, {scene.get_material_count()} materials")

    renderer = Renderer(camera, settings)
    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not args.quiet:
            print(
                f"\r  Progress: {done}/{total} rows ({100.0 * done / total:.1f}%)",
                end="",
                flush=True,
            )

    renderer.render(callback=progress_callback)
    if not args.quiet:
        print()

    output_file = Path(renderer.save_image(args.output))

    if not args.quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # fast_math lets the parallel and serial kernels round differently
    ti.init(arch=ti.gpu if args.arch == "gpu" else ti.cpu, fast_math=False)

    try:
        render_spheres(args)
        return 0
    except (KeyError, ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
