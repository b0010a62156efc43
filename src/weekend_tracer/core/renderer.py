"""Renderer tying together a scene, a camera and render settings.

This module provides a convenient wrapper around the core integrator that supports:
- One-call rendering with a progress callback
- Generator-based rendering that yields after each row batch
- NumPy, uint8 and file output of the finished framebuffer

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> from weekend_tracer.config import RenderSettings
    >>> from weekend_tracer.core.renderer import Renderer
    >>> from weekend_tracer.scene.presets import create_demo_scene
    >>>
    >>> scene, camera = create_demo_scene()
    >>> renderer = Renderer(camera, RenderSettings(width=200, height=100))
    >>> renderer.render(callback=lambda done, total: print(f"{done}/{total}"))
    >>> renderer.save_image("demo.png")
"""

import logging
import os
import time
from collections.abc import Generator

import numpy as np
import numpy.typing as npt

from weekend_tracer.camera.thin_lens import ThinLensCamera, setup_camera
from weekend_tracer.config import RenderSettings
from weekend_tracer.core.integrator import (
    ProgressCallback,
    get_framebuffer_numpy,
    iter_row_batches,
    prepare_render,
    render_rows,
)
from weekend_tracer.preview.export import framebuffer_to_uint8, save_image

logger = logging.getLogger(__name__)


class Renderer:
    """Renders the current scene through a thin-lens camera.

    The scene itself lives in the global sphere and material registries, so
    build it (e.g. with a SceneManager) before rendering. The camera is
    validated when the renderer is created.

    Attributes:
        camera: The camera configuration.
        settings: Image and sampling parameters.
    """

    def __init__(self, camera: ThinLensCamera, settings: RenderSettings | None = None) -> None:
        """Initialize the renderer.

        Raises:
            ValueError: If the camera parameters are invalid.
        """
        self.camera = camera
        self.settings = settings if settings is not None else RenderSettings()
        self._rows_completed = 0
        setup_camera(camera)

    @property
    def width(self) -> int:
        return self.settings.width

    @property
    def height(self) -> int:
        return self.settings.height

    @property
    def rows_completed(self) -> int:
        """Rows of the framebuffer written by the current or last render."""
        return self._rows_completed

    @property
    def is_complete(self) -> bool:
        return self._rows_completed == self.settings.height

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render the image, yielding progress after each row batch.

        Yields:
            Tuple of (rows_completed, total_rows). The count increases
            monotonically and ends at total_rows.

        Example:
            >>> for done, total in renderer.render_progressive():
            ...     print(f"{done}/{total} rows")
        """
        settings = self.settings
        setup_camera(self.camera)
        prepare_render(settings)
        self._rows_completed = 0

        logger.info(
            "Rendering %dx%d, %d spp, max depth %d, seed %d",
            settings.width,
            settings.height,
            settings.samples_per_pixel,
            settings.max_depth,
            settings.seed,
        )
        start = time.perf_counter()

        for row_start, row_end in iter_row_batches(settings):
            render_rows(settings, row_start, row_end)
            self._rows_completed = row_end
            logger.debug("Rendered rows %d-%d of %d", row_start, row_end, settings.height)
            yield (row_end, settings.height)

        logger.info("Render finished in %.2fs", time.perf_counter() - start)

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.float32]:
        """Render the full image.

        Args:
            callback: Optional function called after each row batch with
                (rows_completed, total_rows).

        Returns:
            The framebuffer as a float32 array of shape (height, width, 3).
        """
        for done, total in self.render_progressive():
            if callback is not None:
                callback(done, total)
        return self.get_image_numpy()

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the framebuffer as a float32 array of shape (height, width, 3)."""
        return get_framebuffer_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the framebuffer quantized to 8 bits per channel."""
        return framebuffer_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str | os.PathLike) -> str:
        """Save the framebuffer. The format follows the file extension.

        Returns:
            The path actually written.
        """
        return save_image(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"spp={self.settings.samples_per_pixel}, rows_completed={self.rows_completed})"
        )
