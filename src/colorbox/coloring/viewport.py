from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Size = Tuple[int, int]

# --- Tuning constants ---
MIN_ZOOM = 0.1
MAX_ZOOM = 4.0
ZOOM_DURATION_MS = 200.0


def clamp_zoom(scale: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, scale))


def ease_in_out(progress: float) -> float:
    if progress < 0.5:
        return 2 * progress * progress
    return -1 + (4 - 2 * progress) * progress


@dataclass
class ZoomTween:
    start_scale: float
    target_scale: float
    started_ms: float
    duration_ms: float = ZOOM_DURATION_MS

    def progress(self, now_ms: float) -> float:
        if self.duration_ms <= 0:
            return 1.0
        elapsed = now_ms - self.started_ms
        return max(0.0, min(1.0, elapsed / self.duration_ms))

    def value(self, now_ms: float) -> float:
        eased = ease_in_out(self.progress(now_ms))
        return self.start_scale + (self.target_scale - self.start_scale) * eased

    def finished(self, now_ms: float) -> bool:
        return self.progress(now_ms) >= 1.0


class Viewport:
    """Zoom and pan state mapping raster coordinates onto the screen.

    ``screen = translate + raster * zoom_scale``. When a view size is known the
    translation is clamped so the picture cannot be dragged out of sight.
    """

    def __init__(self, content_size: Size, view_size: Optional[Size] = None) -> None:
        self.content_size = content_size
        self.view_size = view_size
        self.zoom_scale = 1.0
        self.translate_x = 0.0
        self.translate_y = 0.0
        self.tween: Optional[ZoomTween] = None

    @property
    def zoomed_in(self) -> bool:
        return self.zoom_scale > 1.0

    @property
    def target_zoom(self) -> float:
        if self.tween is not None:
            return self.tween.target_scale
        return self.zoom_scale

    def to_raster(self, point: Point) -> Point:
        return (
            (point[0] - self.translate_x) / self.zoom_scale,
            (point[1] - self.translate_y) / self.zoom_scale,
        )

    def to_screen(self, point: Point) -> Point:
        return (
            self.translate_x + point[0] * self.zoom_scale,
            self.translate_y + point[1] * self.zoom_scale,
        )

    def set_view_size(self, view_size: Optional[Size]) -> None:
        self.view_size = view_size
        self.clamp_pan()

    def set_zoom(self, scale: float) -> None:
        self.zoom_scale = clamp_zoom(scale)
        self.clamp_pan()

    def zoom_about(self, scale: float, anchor: Point) -> None:
        raster = self.to_raster(anchor)
        self.zoom_scale = clamp_zoom(scale)
        self.translate_x = anchor[0] - raster[0] * self.zoom_scale
        self.translate_y = anchor[1] - raster[1] * self.zoom_scale
        self.clamp_pan()

    def pan_by(self, dx: float, dy: float) -> None:
        self.translate_x += dx
        self.translate_y += dy
        self.clamp_pan()

    def clamp_pan(self) -> None:
        if self.view_size is None:
            return
        view_w, view_h = self.view_size
        scaled_w = self.content_size[0] * self.zoom_scale
        scaled_h = self.content_size[1] * self.zoom_scale
        # A picture smaller than the view stays anchored to the top-left.
        min_x = 0.0 if scaled_w <= view_w else view_w - scaled_w
        min_y = 0.0 if scaled_h <= view_h else view_h - scaled_h
        self.translate_x = max(min_x, min(0.0, self.translate_x))
        self.translate_y = max(min_y, min(0.0, self.translate_y))

    def animate_zoom(self, target: float, now_ms: float) -> None:
        target = clamp_zoom(target)
        self.tween = ZoomTween(self.zoom_scale, target, now_ms)
        logger.debug("Zoom %.2f -> %.2f", self.zoom_scale, target)

    def cancel_animation(self) -> None:
        self.tween = None

    def tick(self, now_ms: float) -> bool:
        """Advance the zoom animation; returns True while frames remain."""
        if self.tween is None:
            return False
        self.zoom_scale = clamp_zoom(self.tween.value(now_ms))
        # Programmatic zoom scales from the top-left corner.
        self.translate_x = 0.0
        self.translate_y = 0.0
        self.clamp_pan()
        if self.tween.finished(now_ms):
            self.tween = None
            return False
        return True
