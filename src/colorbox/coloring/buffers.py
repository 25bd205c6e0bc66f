from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np

from colorbox.coloring.errors import DimensionError


logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]
Size = Tuple[int, int]

CHANNELS = 4


def alpha_from_opacity(opacity: float) -> int:
    # Half-up rounding so 0.3 -> 77, matching what a browser canvas produces.
    value = int(math.floor(max(0.0, min(1.0, opacity)) * 255 + 0.5))
    return max(0, min(255, value))


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise DimensionError(width, height)


def _round_channel(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def alpha_over(dst: np.ndarray, src: np.ndarray) -> np.ndarray:
    """Porter-Duff source-over of ``src`` onto ``dst``; returns a new array."""
    src_a = src[..., 3:4].astype(np.float64) / 255.0
    dst_a = dst[..., 3:4].astype(np.float64) / 255.0
    out_a = src_a + dst_a * (1.0 - src_a)
    weighted = src[..., :3] * src_a + dst[..., :3] * (dst_a * (1.0 - src_a))
    rgb = np.divide(weighted, out_a, out=np.zeros_like(weighted), where=out_a > 0)
    out = np.empty_like(dst)
    out[..., :3] = _round_channel(rgb)
    out[..., 3:4] = _round_channel(out_a * 255.0)
    return out


def erase_with_mask(dst: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Destination-out: reduce ``dst`` alpha by the alpha of ``mask``."""
    keep = 1.0 - mask[..., 3].astype(np.float64) / 255.0
    out = dst.copy()
    out[..., 3] = _round_channel(dst[..., 3] * keep)
    out[out[..., 3] == 0] = 0
    return out


class PixelBuffer:
    def __init__(self, width: int, height: int) -> None:
        _check_dimensions(width, height)
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width, CHANNELS), dtype=np.uint8)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise ValueError(f"expected an RGBA array, got shape {array.shape}")
        height, width = array.shape[:2]
        buffer = cls(width, height)
        np.copyto(buffer.pixels, array.astype(np.uint8, copy=False))
        return buffer

    @property
    def size(self) -> Size:
        return (self.width, self.height)

    def clear(self) -> None:
        self.pixels.fill(0)

    def is_empty(self) -> bool:
        return not self.pixels[..., 3].any()

    def snapshot(self) -> np.ndarray:
        frozen = self.pixels.copy()
        frozen.flags.writeable = False
        return frozen

    def restore(self, snapshot: np.ndarray) -> None:
        if snapshot.shape != self.pixels.shape:
            raise DimensionError(snapshot.shape[1], snapshot.shape[0])
        np.copyto(self.pixels, snapshot)

    def freeze(self) -> None:
        self.pixels.flags.writeable = False


class BufferStore:
    """Owns the Base, Draw and Temp surfaces and the rule for layering them.

    Base holds the line art and is never written after loading. Draw holds
    every committed edit. Temp holds the stroke that is still in progress and
    is cleared after each commit.
    """

    def __init__(self, width: int, height: int) -> None:
        self.resize(width, height)

    @classmethod
    def from_line_art(cls, pixels: np.ndarray) -> "BufferStore":
        base = PixelBuffer.from_array(pixels)
        store = cls(base.width, base.height)
        store.base = base
        store.base.freeze()
        return store

    @property
    def size(self) -> Size:
        return self.base.size

    def resize(self, width: int, height: int) -> None:
        _check_dimensions(width, height)
        self.base = PixelBuffer(width, height)
        self.draw = PixelBuffer(width, height)
        self.temp = PixelBuffer(width, height)
        logger.debug("Allocated %dx%d coloring buffers", width, height)

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.base.width and 0 <= y < self.base.height

    def merged_snapshot(self) -> np.ndarray:
        merged = alpha_over(self.base.pixels, self.draw.pixels)
        merged.flags.writeable = False
        return merged

    def frame(self, *, eraser_active: bool = False) -> np.ndarray:
        if eraser_active:
            visible_draw = erase_with_mask(self.draw.pixels, self.temp.pixels)
            return alpha_over(self.base.pixels, visible_draw)
        merged = alpha_over(self.base.pixels, self.draw.pixels)
        return alpha_over(merged, self.temp.pixels)

    def clear(self) -> None:
        self.draw.clear()
        self.temp.clear()
