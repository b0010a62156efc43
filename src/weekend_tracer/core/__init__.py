"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    rng: Per-task PCG random streams
    integrator: Color estimator, material dispatch and the row-batch sampler
    renderer: Renderer class with progress reporting and image output

All per-ray work runs in Taichi functions and kernels.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .rng import (
    pcg_hash,
    random_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    seed_rng,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from weekend_tracer.core.integrator or weekend_tracer.core.renderer.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "pcg_hash",
    "seed_rng",
    "random_float",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
