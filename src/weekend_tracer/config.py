"""Render settings.

RenderSettings collects everything the sampler needs besides the scene and the
camera. All values are checked when the object is created so an invalid
configuration fails before any kernel is compiled or launched.

Example:
    >>> from weekend_tracer.config import RenderSettings
    >>> settings = RenderSettings(width=400, height=250, samples_per_pixel=50)
    >>> settings.aspect_ratio
    1.6
"""

import math
from dataclasses import asdict, dataclass, fields
from typing import Any

# Framebuffer capacity (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Seeds are used as 32-bit unsigned integers inside kernels
MAX_SEED = 2**32 - 1

DEFAULT_BACKGROUND_BOTTOM = (1.0, 1.0, 1.0)
DEFAULT_BACKGROUND_TOP = (0.5, 0.7, 1.0)


def _check_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for component in color:
        if not math.isfinite(component) or component < 0.0:
            raise ValueError(f"{name} components must be finite and non-negative, got {color}")


@dataclass
class RenderSettings:
    """Image and sampling parameters for a render.

    Attributes:
        width: Image width in pixels, in [1, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [1, MAX_IMAGE_HEIGHT].
        samples_per_pixel: Rays averaged per pixel, at least 1.
        max_depth: Maximum number of bounces per path, at least 1.
        seed: Global seed for the per-pixel random streams, in [0, 2^32 - 1].
        jitter: If True, each sample is placed uniformly at random inside the
            pixel footprint; otherwise every sample goes through the pixel
            center.
        background_bottom: Background color for rays pointing straight down.
        background_top: Background color for rays pointing straight up.
        rows_per_batch: Rows rendered per kernel launch. Progress is reported
            after each batch.
        parallel: If False, pixels are rendered one after another on a single
            thread. The image is identical either way when Taichi is
            initialized with fast_math=False.
    """

    width: int = 400
    height: int = 225
    samples_per_pixel: int = 100
    max_depth: int = 50
    seed: int = 0
    jitter: bool = True
    background_bottom: tuple[float, float, float] = DEFAULT_BACKGROUND_BOTTOM
    background_top: tuple[float, float, float] = DEFAULT_BACKGROUND_TOP
    rows_per_batch: int = 16
    parallel: bool = True

    def __post_init__(self) -> None:
        self.background_bottom = tuple(float(c) for c in self.background_bottom)
        self.background_top = tuple(float(c) for c in self.background_top)
        self.validate()

    def validate(self) -> None:
        """Check all settings.

        Raises:
            ValueError: If any setting is out of range.
        """
        if self.width < 1 or self.height < 1:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if not 0 <= self.seed <= MAX_SEED:
            raise ValueError(f"seed must be in [0, {MAX_SEED}], got {self.seed}")
        if self.rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be at least 1, got {self.rows_per_batch}")
        _check_color("background_bottom", self.background_bottom)
        _check_color("background_top", self.background_top)

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["background_bottom"] = list(self.background_bottom)
        data["background_top"] = list(self.background_top)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        """Create settings from a dict, ignoring unknown keys.

        Raises:
            ValueError: If any value is out of range.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
