"""Metal (fuzzy mirror) material.

The incoming direction is mirrored about the normal and then perturbed by a
random point in a sphere of radius ``fuzz``. A perturbed direction that ends
up pointing into the surface is absorbed; this cuts off glancing fuzzy
reflections.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, rng = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal, rng
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import normalize, reflect
from weekend_tracer.core.rng import random_in_unit_sphere
from weekend_tracer.materials.lambertian import validate_albedo

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Compute the scattered direction for a metal surface.

    Args:
        albedo: The reflective color (RGB).
        fuzz: The roughness in [0, 1].
        incident_direction: The incoming ray direction (any non-zero length).
        normal: The unit surface normal, facing the incoming ray.
        rng: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where
        did_scatter is 0 when the ray is absorbed.
    """
    reflected = reflect(normalize(incident_direction), normal)
    perturbation, state = random_in_unit_sphere(rng)
    scattered_direction = reflected + fuzz * perturbation

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0

    return scattered_direction, albedo, did_scatter, state


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_METAL_MATERIALS = 512

metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def validate_fuzz(fuzz: float) -> None:
    """Check that a fuzz value lies in [0, 1].

    Raises:
        ValueError: If the fuzz is out of range. It is never clamped.
    """
    if not 0.0 <= fuzz <= 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B), each in [0, 1].
        fuzz: The roughness in [0, 1]. Default is 0 (perfect mirror).
            Out-of-range values are rejected, never clamped.

    Returns:
        The type-local index of the added material.

    Raises:
        ValueError: If any albedo component or the fuzz is outside [0, 1].
        RuntimeError: If the maximum number of materials is exceeded.
    """
    validate_albedo(albedo)
    validate_fuzz(fuzz)

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo of a metal material by type-local index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Get the fuzz of a metal material by type-local index."""
    return metal_fuzzes[material_idx]
