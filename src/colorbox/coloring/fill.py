from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np

from colorbox.coloring.buffers import RGBA, BufferStore, alpha_from_opacity
from colorbox.coloring.history import History


logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# --- Tuning constants ---
FILL_TOLERANCE = 15
EDGE_EXPANSION_RADIUS = 1
OUTLINE_BRIGHTNESS = 30
OUTLINE_ALPHA = 200
SMOOTHING_LIMIT = 300_000

_KERNEL = (
    (-1, -1, 1), (0, -1, 2), (1, -1, 1),
    (-1, 0, 2), (0, 0, 4), (1, 0, 2),
    (-1, 1, 1), (0, 1, 2), (1, 1, 1),
)
_KERNEL_TOTAL = 16


def matching_pixels(merged: np.ndarray, target: Tuple[int, int, int], tolerance: int = FILL_TOLERANCE) -> np.ndarray:
    diff = np.abs(merged[..., :3].astype(np.int16) - np.array(target, dtype=np.int16))
    return np.all(diff < tolerance, axis=2)


def outline_pixels(base: np.ndarray) -> np.ndarray:
    # Mean RGB below the threshold, compared on the channel sum to stay in integers.
    brightness_sum = base[..., :3].astype(np.uint16).sum(axis=2)
    return (brightness_sum < OUTLINE_BRIGHTNESS * 3) & (base[..., 3] > OUTLINE_ALPHA)


def grow_region(matches: np.ndarray, seed: Tuple[int, int]) -> np.ndarray:
    """4-connected breadth-first growth over ``matches`` starting at ``seed``.

    The queue is a plain list read through a moving cursor, so every pixel is
    enqueued at most once and dequeuing never shifts the list.
    """
    height, width = matches.shape
    total = width * height
    allowed = matches.ravel().tolist()
    visited = bytearray(total)
    start = seed[1] * width + seed[0]
    if not allowed[start]:
        return np.zeros(matches.shape, dtype=bool)

    visited[start] = 1
    queue = [start]
    cursor = 0
    while cursor < len(queue):
        idx = queue[cursor]
        cursor += 1
        x = idx % width
        if x > 0:
            neighbor = idx - 1
            if not visited[neighbor] and allowed[neighbor]:
                visited[neighbor] = 1
                queue.append(neighbor)
        if x < width - 1:
            neighbor = idx + 1
            if not visited[neighbor] and allowed[neighbor]:
                visited[neighbor] = 1
                queue.append(neighbor)
        if idx >= width:
            neighbor = idx - width
            if not visited[neighbor] and allowed[neighbor]:
                visited[neighbor] = 1
                queue.append(neighbor)
        if idx < total - width:
            neighbor = idx + width
            if not visited[neighbor] and allowed[neighbor]:
                visited[neighbor] = 1
                queue.append(neighbor)

    return np.frombuffer(bytes(visited), dtype=np.uint8).reshape(height, width).astype(bool)


def _shifted(mask: np.ndarray, dx: int, dy: int) -> np.ndarray:
    # Value of the neighbour at (x + dx, y + dy); off-canvas reads as False.
    height, width = mask.shape
    padded = np.pad(mask, 1, constant_values=False)
    return padded[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]


def _any_neighbor(mask: np.ndarray) -> np.ndarray:
    result = np.zeros_like(mask)
    for dx, dy, _ in _KERNEL:
        if dx == 0 and dy == 0:
            continue
        result |= _shifted(mask, dx, dy)
    return result


def expand_edges(inside: np.ndarray, outline: np.ndarray, radius: int = EDGE_EXPANSION_RADIUS) -> np.ndarray:
    """Grow ``inside`` outward by ``radius`` pixels without touching the outline."""
    grown = inside.copy()
    frontier = inside
    for _ in range(radius):
        ring = _any_neighbor(frontier) & ~grown & ~outline
        if not ring.any():
            break
        grown |= ring
        frontier = ring
    return grown


def smoothed_alpha(inside: np.ndarray, outline: np.ndarray, alpha: int) -> Tuple[np.ndarray, np.ndarray]:
    """Feathered alpha for fill pixels that touch unfilled, non-outline pixels.

    Returns the mask of pixels to rewrite and their new alpha values. Pixels on
    the outermost canvas row or column are left solid.
    """
    solid = inside & ~outline
    outside = ~inside & ~outline
    border = solid & _any_neighbor(outside)
    border[0, :] = False
    border[-1, :] = False
    border[:, 0] = False
    border[:, -1] = False

    weights = np.zeros(inside.shape, dtype=np.float64)
    for dx, dy, weight in _KERNEL:
        weights += weight * _shifted(solid, dx, dy)
    values = np.floor(alpha * weights / _KERNEL_TOTAL + 0.5).astype(np.uint8)
    return border, values


def flood_fill(store: BufferStore, history: History, seed: Point, color: RGBA, opacity: float) -> bool:
    """Fill the region under ``seed`` with ``color`` into Draw.

    Returns True when Draw changed and a history entry was pushed. Seeds off
    the canvas and regions already holding the fill color are ignored.
    """
    ix = int(math.floor(seed[0]))
    iy = int(math.floor(seed[1]))
    if not store.contains(ix, iy):
        logger.debug("Fill seed (%s, %s) is outside the canvas", seed[0], seed[1])
        return False

    # Only opacity sets the fill alpha; the color's own alpha channel is ignored.
    fill = np.array(
        [color[0], color[1], color[2], alpha_from_opacity(opacity)],
        dtype=np.uint8,
    )
    draw = store.draw
    if np.array_equal(draw.pixels[iy, ix], fill):
        logger.debug("Fill at (%d, %d) already holds the target color", ix, iy)
        return False

    merged = store.merged_snapshot()
    target = tuple(int(channel) for channel in merged[iy, ix, :3])
    inside = grow_region(matching_pixels(merged, target), (ix, iy))
    filled_count = int(inside.sum())

    working = draw.pixels.copy()
    if filled_count > SMOOTHING_LIMIT:
        logger.debug("Fill of %d pixels skips edge expansion and smoothing", filled_count)
        working[inside] = fill
    else:
        outline = outline_pixels(store.base.pixels)
        inside = expand_edges(inside, outline)
        working[inside] = fill
        border, values = smoothed_alpha(inside, outline, int(fill[3]))
        working[border, 3] = values[border]

    np.copyto(draw.pixels, working)
    history.push(draw.snapshot())
    logger.debug("Filled %d pixels from seed (%d, %d)", filled_count, ix, iy)
    return True
