"""Scene manager coordinating spheres and materials.

Materials live in type-specific registries (one per variant). The manager
hands out a single material_id space across all of them and records, for each
id, which variant it belongs to and where it sits in that variant's registry.
The integrator reads these two lookup fields to dispatch scattering.

The manager also keeps a host-side description of everything it has added so a
scene can be exported to, and rebuilt from, a plain JSON-compatible dict.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from weekend_tracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    >>> scene.add_sphere(center=(0, -100.5, -1), radius=100, material_id=ground)
    >>> scene.add_dielectric_sphere(center=(1, 0, -1), radius=0.5, ior=1.5)
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from weekend_tracer.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
    validate_ior,
)
from weekend_tracer.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
    validate_albedo,
)
from weekend_tracer.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
    validate_fuzz,
)
from weekend_tracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
    validate_radius,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Closed set of material variants.

    The integer values are stored in the ``material_types`` field and matched
    in the integrator's scatter dispatch.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all variants
MAX_MATERIALS = 1536  # 512 per type * 3 types

# material_types[i] stores the MaterialType of material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the index of material_id i inside its
# variant's registry (e.g. the 2nd metal material has type index 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a material id inside a kernel.

    Returns:
        The MaterialType value, or -1 for an invalid id.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index of a material inside its variant's registry.

    Returns:
        The type-local index, or -1 for an invalid id.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: The unified material id.
        material_type: The material variant.
        type_index: The index within the variant's registry.
        params: The material parameters as given at creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Host-side record of a sphere in the scene."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Serializable scene description.

    Attributes:
        materials: Material dicts, in material_id order.
        spheres: Sphere dicts referencing materials by id.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    """Convert a 3-element sequence from a config dict to a float tuple."""
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _parse_scene_config(
    config: SceneConfig,
) -> tuple[list[tuple[MaterialType, dict[str, Any]]], list[tuple[tuple[float, float, float], float, int]]]:
    """Check a whole SceneConfig without touching the registries.

    Returns:
        Tuple of (materials, spheres). Each material is (type, params) with
        params ready for the matching add_*_material method; each sphere is
        (center, radius, material_id).

    Raises:
        ValueError: If any entry is unknown, malformed or out of range.
        RuntimeError: If the scene does not fit the preallocated storage.
    """
    materials: list[tuple[MaterialType, dict[str, Any]]] = []
    for mat_config in config.materials:
        mat_type = str(mat_config.get("type", "")).lower()
        if mat_type == "lambertian":
            albedo = _as_triple(mat_config.get("albedo", [0.5, 0.5, 0.5]), "Albedo")
            validate_albedo(albedo)
            materials.append((MaterialType.LAMBERTIAN, {"albedo": albedo}))
        elif mat_type == "metal":
            albedo = _as_triple(mat_config.get("albedo", [0.8, 0.8, 0.8]), "Albedo")
            fuzz = float(mat_config.get("fuzz", 0.0))
            validate_albedo(albedo)
            validate_fuzz(fuzz)
            materials.append((MaterialType.METAL, {"albedo": albedo, "fuzz": fuzz}))
        elif mat_type == "dielectric":
            ior = float(mat_config.get("ior", 1.5))
            validate_ior(ior)
            materials.append((MaterialType.DIELECTRIC, {"ior": ior}))
        else:
            raise ValueError(f"Unknown material type: {mat_type!r}")

    limits = {
        MaterialType.LAMBERTIAN: MAX_LAMBERTIAN_MATERIALS,
        MaterialType.METAL: MAX_METAL_MATERIALS,
        MaterialType.DIELECTRIC: MAX_DIELECTRIC_MATERIALS,
    }
    for material_type, limit in limits.items():
        count = sum(1 for kind, _ in materials if kind == material_type)
        if count > limit:
            raise RuntimeError(
                f"Maximum number of {material_type.name.lower()} materials ({limit}) exceeded"
            )

    spheres: list[tuple[tuple[float, float, float], float, int]] = []
    for sphere_config in config.spheres:
        center = _as_triple(sphere_config.get("center", [0.0, 0.0, 0.0]), "Sphere center")
        radius = float(sphere_config.get("radius", 1.0))
        material_id = int(sphere_config.get("material_id", 0))
        validate_radius(radius)
        if not 0 <= material_id < len(materials):
            raise ValueError(f"Invalid material_id: {material_id}")
        spheres.append((center, radius, material_id))

    if len(spheres) > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    return materials, spheres


class SceneManager:
    """High-level API for building a scene of spheres with materials.

    Creating a SceneManager clears the global sphere and material registries;
    only one scene is live at a time.

    Attributes:
        materials: MaterialInfo for every registered material, in id order.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.7, 0.3, 0.3))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Remove every sphere and material."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material id to a material already in its registry."""
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: The diffuse reflectance as (R, G, B), each in [0, 1].

        Returns:
            The unified material id.

        Raises:
            ValueError: If any albedo component is outside [0, 1].
            RuntimeError: If a material registry is full.
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (fuzzy mirror) material.

        Args:
            albedo: The reflective tint as (R, G, B), each in [0, 1].
            fuzz: Roughness in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material id.

        Raises:
            ValueError: If any albedo component or the fuzz is outside [0, 1].
            RuntimeError: If a material registry is full.
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            ior: Index of refraction, must be positive. Default is 1.5 (glass).

        Returns:
            The unified material id.

        Raises:
            ValueError: If the index of refraction is not positive.
            RuntimeError: If a material registry is full.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get the record of a material, or None for an unknown id."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type of an id on the host side.

        For lookups inside kernels use the get_material_type() Taichi function.
        """
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere using an existing material.

        Args:
            center: The center of the sphere as (x, y, z).
            radius: The radius of the sphere, must be positive.
            material_id: A unified material id from one of the add_*_material methods.

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If the radius is not positive or the material id is unknown.
            RuntimeError: If the sphere storage is full.
        """
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _as_triple(center, "Sphere center")
        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a SceneConfig."""
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the one described by config.

        The whole config is checked before the current scene is cleared, so a
        bad entry leaves the live scene untouched. Materials are added first,
        in order, so the material ids referenced by the spheres keep their
        meaning.

        Raises:
            ValueError: If the configuration contains an unknown material type
                or any invalid parameter.
            RuntimeError: If the scene does not fit the preallocated storage.
        """
        materials, spheres = _parse_scene_config(config)

        self.clear()

        for material_type, params in materials:
            if material_type == MaterialType.LAMBERTIAN:
                self.add_lambertian_material(**params)
            elif material_type == MaterialType.METAL:
                self.add_metal_material(**params)
            else:
                self.add_dielectric_material(**params)

        for center, radius, material_id in spheres:
            self.add_sphere(center, radius, material_id)

        logger.debug(
            "Loaded scene with %d materials and %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a JSON-compatible dict."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneManager":
        """Build a new scene from a dict produced by to_dict().

        The dict is checked before the registries are cleared, so invalid data
        leaves the current scene in place.
        """
        config = SceneConfig(
            materials=list(data.get("materials", [])),
            spheres=list(data.get("spheres", [])),
        )
        _parse_scene_config(config)
        scene = cls()
        scene.from_config(config)
        return scene

    def __repr__(self) -> str:
        return (
            f"SceneManager(materials={len(self.materials)}, "
            f"spheres={len(self.spheres)})"
        )
