"""Ready-made scenes.

Two scenes are provided:

- Demo scene: a large green ground sphere with a diffuse, a fuzzy metal and a
  glass sphere side by side, seen through a 90 degree pinhole camera.
- Random scene: a field of small random spheres around three large ones
  (glass, diffuse and mirror), seen from far away through a thin lens focused
  10 units ahead.

Each factory clears the scene registries, builds the scene and returns the
SceneManager together with a matching camera.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.scene.presets import create_random_scene
    >>> scene, camera = create_random_scene(seed=7)
"""

import logging

import numpy as np

from weekend_tracer.camera.thin_lens import ThinLensCamera
from weekend_tracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = 16.0 / 10.0

# Small spheres are kept clear of the large sphere at this point
_FEATURE_CENTER = np.array([4.0, 0.2, 0.0])
_FEATURE_CLEARANCE = 0.9

# Grid of small spheres, a and b in [-GRID_EXTENT, GRID_EXTENT)
GRID_EXTENT = 11
SMALL_SPHERE_RADIUS = 0.2


def create_demo_scene(
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three-sphere demo scene.

    Args:
        aspect_ratio: Image width / height for the camera.

    Returns:
        Tuple of (scene, camera).
    """
    scene = SceneManager()

    scene.add_lambertian_sphere(center=(0.0, -100.5, -1.0), radius=100.0, albedo=(0.0, 1.0, 0.0))
    scene.add_lambertian_sphere(center=(0.0, 0.0, -1.0), radius=0.5, albedo=(0.5, 0.0, 0.0))
    scene.add_metal_sphere(center=(-1.0, 0.0, -1.0), radius=0.5, albedo=(0.2, 0.2, 0.2), fuzz=1.0)
    scene.add_dielectric_sphere(center=(1.0, 0.0, -1.0), radius=0.5, ior=1.5)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_distance=1.0,
    )

    logger.debug("Created demo scene with %d spheres", scene.get_sphere_count())
    return scene, camera


def create_random_scene(
    seed: int | None = None,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field.

    For every grid cell (a, b) a small sphere is placed at a random offset
    inside the cell unless it would touch the large diffuse-side sphere. Its
    material is diffuse with probability 0.8, metal with 0.1 and glass
    otherwise.

    Args:
        seed: Seed for the scene layout. The same seed always gives the same
            scene; None draws a fresh layout.
        aspect_ratio: Image width / height for the camera.

    Returns:
        Tuple of (scene, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere(center=(0.0, -1000.0, 0.0), radius=1000.0, albedo=(0.5, 0.5, 0.5))

    for a in range(-GRID_EXTENT, GRID_EXTENT):
        for b in range(-GRID_EXTENT, GRID_EXTENT):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), SMALL_SPHERE_RADIUS, b + 0.9 * rng.random()]
            )
            if np.linalg.norm(center - _FEATURE_CENTER) <= _FEATURE_CLEARANCE:
                continue

            position = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(position, SMALL_SPHERE_RADIUS, tuple(albedo.tolist()))
            elif choose_mat < 0.9:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = 0.5 * rng.random()
                scene.add_metal_sphere(
                    position, SMALL_SPHERE_RADIUS, tuple(albedo.tolist()), float(fuzz)
                )
            else:
                scene.add_dielectric_sphere(position, SMALL_SPHERE_RADIUS, ior=1.5)

    scene.add_dielectric_sphere(center=(0.0, 1.0, 0.0), radius=1.0, ior=1.5)
    scene.add_lambertian_sphere(center=(-4.0, 1.0, 0.0), radius=1.0, albedo=(0.4, 0.2, 0.1))
    scene.add_metal_sphere(center=(4.0, 1.0, 0.0), radius=1.0, albedo=(0.7, 0.6, 0.5), fuzz=0.0)

    camera = ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=30.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_distance=10.0,
    )

    logger.debug(
        "Created random scene with %d spheres and %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene, camera


PRESETS = {
    "demo": create_demo_scene,
    "random": create_random_scene,
}
