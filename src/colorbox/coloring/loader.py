from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
import pygame

from colorbox.coloring.errors import ImageLoadError


logger = logging.getLogger(__name__)

Source = Union[str, Path, BinaryIO]


def _describe(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", repr(source))


def surface_to_pixels(surface: pygame.Surface) -> np.ndarray:
    width, height = surface.get_size()
    data = pygame.image.tobytes(surface, "RGBA")
    return np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy()


def pixels_to_surface(pixels: np.ndarray) -> pygame.Surface:
    height, width = pixels.shape[:2]
    return pygame.image.frombytes(np.ascontiguousarray(pixels).tobytes(), (width, height), "RGBA")


def load_line_art(source: Source) -> np.ndarray:
    """Decode a line-art image into an RGBA array of shape (height, width, 4)."""
    name = _describe(source)
    try:
        if isinstance(source, (str, Path)):
            surface = pygame.image.load(str(source))
        else:
            surface = pygame.image.load(source, name)
    except (pygame.error, OSError) as exc:
        raise ImageLoadError(name, str(exc)) from exc
    width, height = surface.get_size()
    if width <= 0 or height <= 0:
        raise ImageLoadError(name, "image has no pixels")
    logger.info("Loaded line art %s (%dx%d)", name, width, height)
    return surface_to_pixels(surface)


def save_png(pixels: np.ndarray, path: Path) -> None:
    # Keep a .png suffix so pygame writes a PNG-encoded file.
    tmp_path = path.with_name(f".{path.stem}.tmp{path.suffix}")
    pygame.image.save(pixels_to_surface(pixels), str(tmp_path))
    os.replace(tmp_path, path)
    logger.info("Exported artwork to %s", path)
