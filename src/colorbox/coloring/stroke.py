from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from colorbox.coloring.buffers import RGBA, BufferStore, PixelBuffer, alpha_from_opacity, alpha_over, erase_with_mask
from colorbox.coloring.history import History


logger = logging.getLogger(__name__)

Point = Tuple[float, float]

BRUSH = "brush"
ERASER = "eraser"
STROKE_TOOLS = (BRUSH, ERASER)

# --- Tuning constants ---
SPLINE_STEP = 0.15
MIN_SPLINE_POINTS = 4


@dataclass
class Stroke:
    tool: str
    size: float
    color: RGBA
    opacity: float = 1.0
    points: List[Point] = field(default_factory=list)

    @property
    def radius(self) -> float:
        return self.size / 2


def catmull_rom(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    t2 = t * t
    t3 = t2 * t
    x = 0.5 * (
        2 * p1[0]
        + (-p0[0] + p2[0]) * t
        + (2 * p0[0] - 5 * p1[0] + 4 * p2[0] - p3[0]) * t2
        + (-p0[0] + 3 * p1[0] - 3 * p2[0] + p3[0]) * t3
    )
    y = 0.5 * (
        2 * p1[1]
        + (-p0[1] + p2[1]) * t
        + (2 * p0[1] - 5 * p1[1] + 4 * p2[1] - p3[1]) * t2
        + (-p0[1] + 3 * p1[1] - 3 * p2[1] + p3[1]) * t3
    )
    return (x, y)


def spline_path(points: Sequence[Point]) -> List[Point]:
    """Sample a Catmull-Rom curve through ``points`` as one continuous polyline.

    Each 4-point window contributes the curve between its two middle points,
    evaluated at t = 0, 0.15, ... 0.9. The window's end point itself is
    never sampled; the next window starts there.
    """
    if len(points) < MIN_SPLINE_POINTS:
        return []
    samples = int(1 / SPLINE_STEP) + 1
    path: List[Point] = []
    for idx in range(len(points) - 3):
        p0, p1, p2, p3 = points[idx : idx + 4]
        for step in range(samples):
            path.append(catmull_rom(p0, p1, p2, p3, step * SPLINE_STEP))
    return path


def _segment_coverage(coverage: np.ndarray, start: Point, end: Point, radius: float) -> None:
    height, width = coverage.shape
    reach = radius + 1
    x0 = max(0, int(math.floor(min(start[0], end[0]) - reach)))
    y0 = max(0, int(math.floor(min(start[1], end[1]) - reach)))
    x1 = min(width, int(math.ceil(max(start[0], end[0]) + reach)) + 1)
    y1 = min(height, int(math.ceil(max(start[1], end[1]) + reach)) + 1)
    if x0 >= x1 or y0 >= y1:
        return

    ys, xs = np.mgrid[y0:y1, x0:x1]
    # Sample at pixel centres.
    px = xs + 0.5 - start[0]
    py = ys + 0.5 - start[1]
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length_sq = dx * dx + dy * dy
    if length_sq < 1e-12:
        distance = np.hypot(px, py)
    else:
        t = np.clip((px * dx + py * dy) / length_sq, 0.0, 1.0)
        distance = np.hypot(px - t * dx, py - t * dy)

    local = np.clip(radius + 0.5 - distance, 0.0, 1.0)
    window = coverage[y0:y1, x0:x1]
    np.maximum(window, local, out=window)


def stroke_coverage(shape: Tuple[int, int], path: Sequence[Point], radius: float) -> np.ndarray:
    """Antialiased 0..1 coverage of a round-capped, round-joined polyline."""
    coverage = np.zeros(shape, dtype=np.float64)
    if not path:
        return coverage
    if len(path) == 1:
        _segment_coverage(coverage, path[0], path[0], radius)
        return coverage
    for start, end in zip(path, path[1:]):
        _segment_coverage(coverage, start, end, radius)
    return coverage


def render_stroke(temp: PixelBuffer, stroke: Stroke) -> None:
    temp.clear()
    if not stroke.points:
        return

    if len(stroke.points) < MIN_SPLINE_POINTS:
        path: List[Point] = [stroke.points[0]]
    else:
        path = spline_path(stroke.points)
    coverage = stroke_coverage((temp.height, temp.width), path, stroke.radius)
    touched = coverage > 0

    if stroke.tool == ERASER:
        # Opaque mask; the subtraction happens when the stroke is committed.
        temp.pixels[..., 3] = np.floor(coverage * 255 + 0.5).astype(np.uint8)
        return

    alpha = alpha_from_opacity(stroke.opacity)
    temp.pixels[touched, 0] = stroke.color[0]
    temp.pixels[touched, 1] = stroke.color[1]
    temp.pixels[touched, 2] = stroke.color[2]
    temp.pixels[..., 3] = np.floor(coverage * alpha + 0.5).astype(np.uint8)


class StrokeCommitter:
    """Tracks the live stroke and merges it into Draw when the gesture ends."""

    def __init__(self, store: BufferStore, history: History) -> None:
        self.store = store
        self.history = history
        self.stroke: Optional[Stroke] = None

    @property
    def active(self) -> bool:
        return self.stroke is not None

    @property
    def erasing(self) -> bool:
        return self.stroke is not None and self.stroke.tool == ERASER

    def begin(self, stroke: Stroke) -> None:
        if stroke.tool not in STROKE_TOOLS:
            raise ValueError(f"unknown stroke tool: {stroke.tool}")
        self.stroke = stroke
        render_stroke(self.store.temp, stroke)

    def extend(self, point: Point) -> None:
        if self.stroke is None:
            return
        self.stroke.points.append(point)
        render_stroke(self.store.temp, self.stroke)

    def commit(self) -> bool:
        if self.stroke is None:
            return False
        draw = self.store.draw
        temp = self.store.temp
        if self.stroke.tool == ERASER:
            merged = erase_with_mask(draw.pixels, temp.pixels)
        else:
            merged = alpha_over(draw.pixels, temp.pixels)
        np.copyto(draw.pixels, merged)
        temp.clear()
        logger.debug("Committed %s stroke with %d points", self.stroke.tool, len(self.stroke.points))
        self.stroke = None
        self.history.push(draw.snapshot())
        return True

    def cancel(self) -> None:
        if self.stroke is not None:
            logger.debug("Discarded %s stroke", self.stroke.tool)
        self.stroke = None
        self.store.temp.clear()
