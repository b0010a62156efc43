"""Dielectric (glass/water) material.

A dielectric either reflects or refracts the incoming ray:

    - Snell's law gives the refracted direction: n1 * sin(theta1) = n2 * sin(theta2)
    - When refraction_ratio * sin(theta) > 1 no refracted ray exists (total
      internal reflection) and the ray always reflects
    - Otherwise the ray reflects with probability given by Schlick's
      approximation of the Fresnel reflectance and refracts otherwise

Clear glass never tints and never absorbs: attenuation is always (1, 1, 1).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, rng = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face, rng
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from weekend_tracer.core.ray import normalize, reflect, refract, schlick_reflectance
from weekend_tracer.core.rng import random_float

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def refraction_ratio_for(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio eta_incident / eta_transmitted for a ray entering or leaving."""
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def incidence_cosine(unit_direction: vec3, normal: vec3) -> ti.f32:
    """Cosine of the angle between the reversed ray and the normal, at most 1."""
    return tm.min(-tm.dot(unit_direction, normal), 1.0)


@ti.func
def cannot_refract(cos_theta: ti.f32, ratio: ti.f32) -> ti.i32:
    """Check for total internal reflection.

    Args:
        cos_theta: Cosine of the incidence angle.
        ratio: eta_incident / eta_transmitted.

    Returns:
        1 if Snell's law has no solution, 0 otherwise.
    """
    sin_theta = ti.sqrt(ti.max(1.0 - cos_theta * cos_theta, 0.0))
    return ti.select(ratio * sin_theta > 1.0, 1, 0)


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Compute the scattered direction for a dielectric surface.

    The random draw is taken only when refraction is possible, so a totally
    internally reflected ray never touches refract().

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any non-zero length).
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it leaves it.
        rng: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, rng). Dielectrics always
        scatter.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    state = rng

    ratio = refraction_ratio_for(ior, front_face)
    unit_direction = normalize(incident_direction)
    cos_theta = incidence_cosine(unit_direction, normal)

    scattered_direction = reflect(unit_direction, normal)
    if cannot_refract(cos_theta, ratio) == 0:
        u, state = random_float(state)
        if u >= schlick_reflectance(cos_theta, ratio):
            scattered_direction = refract(unit_direction, normal, ratio)

    return scattered_direction, attenuation, state


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 512

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def validate_ior(ior: float) -> None:
    """Check that an index of refraction is positive.

    Raises:
        ValueError: If the index of refraction is not positive.
    """
    if not ior > 0.0:
        raise ValueError(
            f"Index of refraction = {ior} is not positive. "
            "A refractive index must be greater than 0."
        )


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass). Values
            below 1 are allowed (e.g. an air bubble relative to water).

    Returns:
        The type-local index of the added material.

    Raises:
        ValueError: If the index of refraction is not positive.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    validate_ior(ior)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the index of refraction of a dielectric material by type-local index."""
    return dielectric_iors[material_idx]
