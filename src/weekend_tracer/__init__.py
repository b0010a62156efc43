"""Monte Carlo path tracer for scenes of spheres, built on Taichi.

This package renders spheres with diffuse, metal and glass materials through a
thin-lens camera, averaging many jittered samples per pixel into a
gamma-corrected framebuffer.

Subpackages:
    core: Vector and ray utilities, random streams, the estimator and the renderer
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Sphere storage, scene manager and ready-made scenes
    camera: Thin-lens camera with depth of field
    preview: Image export (PNG via Pillow, ASCII PPM)

Modules:
    config: Render settings

Taichi must be initialized (``ti.init``) before any of the subpackages is
imported, since they allocate their fields at import time.
"""

__version__ = "0.1.0"
