from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from colorbox.coloring.buffers import RGBA, BufferStore
from colorbox.coloring.errors import ColoringError
from colorbox.coloring.fill import flood_fill
from colorbox.coloring.gestures import (
    GestureAction,
    GestureClassifier,
    GestureContext,
    Pan,
    Pinch,
    PointerCancel,
    PointerDown,
    PointerEvent,
    PointerMove,
    PointerUp,
    StrokeAbort,
    StrokeBegin,
    StrokeEnd,
    StrokeExtend,
    Tap,
)
from colorbox.coloring.history import MAX_UNDO, History
from colorbox.coloring.loader import Source, load_line_art, save_png
from colorbox.coloring.stroke import BRUSH, ERASER, STROKE_TOOLS, Point, Stroke, StrokeCommitter
from colorbox.coloring.viewport import Viewport


logger = logging.getLogger(__name__)

FILL = "fill"
TOOLS = (BRUSH, ERASER, FILL)

# --- Tuning constants ---
DEFAULT_COLOR: RGBA = (255, 23, 68, 255)
DEFAULT_BRUSH_SIZE = 40.0
MIN_BRUSH_SIZE = 1.0
MAX_BRUSH_SIZE = 120.0
ZOOM_STEP = 1.1

ColorValue = Union[str, Sequence[int]]


def parse_color(value: ColorValue) -> RGBA:
    """Accept ``#RRGGBB``, ``#RRGGBBAA`` or an RGB/RGBA sequence."""
    if isinstance(value, str):
        text = value.strip().lstrip("#")
        if len(text) not in (6, 8):
            raise ValueError(f"invalid color: {value!r}")
        try:
            channels = [int(text[idx : idx + 2], 16) for idx in range(0, len(text), 2)]
        except ValueError as exc:
            raise ValueError(f"invalid color: {value!r}") from exc
    else:
        channels = [int(channel) for channel in value]
    if len(channels) == 3:
        channels.append(255)
    if len(channels) != 4 or any(channel < 0 or channel > 255 for channel in channels):
        raise ValueError(f"invalid color: {value!r}")
    return (channels[0], channels[1], channels[2], channels[3])


def _coerce_float(value: object, default: float, low: float, high: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class EngineConfig:
    tool: str = BRUSH
    color: RGBA = DEFAULT_COLOR
    opacity: float = 1.0
    brush_size: float = DEFAULT_BRUSH_SIZE

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "EngineConfig":
        config = cls()
        tool = settings.get("tool", config.tool)
        if tool in TOOLS:
            config.tool = tool
        if "color" in settings:
            try:
                config.color = parse_color(settings["color"])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid color setting %r", settings["color"])
        config.opacity = _coerce_float(settings.get("opacity"), config.opacity, 0.0, 1.0)
        config.brush_size = _coerce_float(
            settings.get("brush_size"),
            config.brush_size,
            MIN_BRUSH_SIZE,
            MAX_BRUSH_SIZE,
        )
        return config


class ColoringEngine:
    """Entry point for the UI: tools, pointer input, undo, zoom and export.

    Buffers exist only after :meth:`load` (or :meth:`from_file`). Until then
    every interactive call is a silent no-op.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        view_size: Optional[Tuple[int, int]] = None,
        max_undo: int = MAX_UNDO,
        zoom_step: float = ZOOM_STEP,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.view_size = view_size
        self.max_undo = max_undo
        self.zoom_step = zoom_step
        self._clock = clock or _monotonic_ms
        self.gestures = GestureClassifier()
        self.store: Optional[BufferStore] = None
        self.history: Optional[History] = None
        self.committer: Optional[StrokeCommitter] = None
        self.viewport: Optional[Viewport] = None

    @classmethod
    def from_file(cls, source: Source, config: Optional[EngineConfig] = None, **kwargs: Any) -> "ColoringEngine":
        pixels = load_line_art(source)
        engine = cls(config, **kwargs)
        engine.load(pixels)
        return engine

    @property
    def loaded(self) -> bool:
        return self.store is not None

    # --- Session lifecycle ---

    def load(self, pixels: np.ndarray) -> None:
        store = BufferStore.from_line_art(pixels)
        history = History(store.draw.snapshot(), self.max_undo)
        self.store = store
        self.history = history
        self.committer = StrokeCommitter(store, history)
        self.viewport = Viewport(store.size, self.view_size)
        self.gestures.reset()
        logger.info("Coloring session started (%dx%d)", *store.size)

    def close(self) -> None:
        self.gestures.reset()
        self.store = None
        self.history = None
        self.committer = None
        self.viewport = None

    # --- Tool state ---

    def set_tool(self, tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"unknown tool: {tool}")
        self.config.tool = tool

    def set_color(self, color: ColorValue) -> None:
        self.config.color = parse_color(color)
        # Picking a color while erasing means the user wants to paint again.
        if self.config.tool == ERASER:
            self.config.tool = BRUSH

    def set_opacity(self, opacity: float) -> None:
        self.config.opacity = max(0.0, min(1.0, float(opacity)))

    def set_brush_size(self, size: float) -> None:
        self.config.brush_size = max(MIN_BRUSH_SIZE, min(MAX_BRUSH_SIZE, float(size)))

    # --- Viewport ---

    def set_view_size(self, view_size: Optional[Tuple[int, int]]) -> None:
        self.view_size = view_size
        if self.viewport is not None:
            self.viewport.set_view_size(view_size)

    def zoom_in(self) -> None:
        if self.viewport is not None:
            self.set_zoom(self.viewport.target_zoom * self.zoom_step)

    def zoom_out(self) -> None:
        if self.viewport is not None:
            self.set_zoom(self.viewport.target_zoom / self.zoom_step)

    def set_zoom(self, scale: float) -> None:
        if self.viewport is None:
            return
        now = self._clock()
        self.viewport.animate_zoom(scale, now)
        self.viewport.tick(now)

    def tick(self, now_ms: Optional[float] = None) -> bool:
        if self.viewport is None:
            return False
        return self.viewport.tick(self._clock() if now_ms is None else now_ms)

    # --- Editing ---

    def undo(self) -> bool:
        if self.store is None or self.history is None or self.committer is None:
            return False
        self._abort_session()
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.store.draw.restore(snapshot)
        return True

    def clear(self) -> None:
        if self.store is None or self.history is None:
            return
        self._abort_session()
        self.store.clear()
        self.history.reset(self.store.draw.snapshot())
        logger.info("Cleared drawing")

    def fill_at(self, point: Point) -> bool:
        if self.store is None or self.history is None:
            return False
        return flood_fill(self.store, self.history, point, self.config.color, self.config.opacity)

    def export_merged(self) -> Optional[np.ndarray]:
        if self.store is None:
            return None
        return self.store.merged_snapshot().copy()

    def export_png(self, path: Path) -> bool:
        merged = self.export_merged()
        if merged is None:
            return False
        save_png(merged, path)
        return True

    def frame(self) -> Optional[np.ndarray]:
        if self.store is None or self.committer is None:
            return None
        return self.store.frame(eraser_active=self.committer.erasing)

    # --- Pointer input (screen coordinates) ---

    def pointer_down(self, pointer_id: int, x: float, y: float, *, time_ms: Optional[float] = None) -> None:
        self._dispatch(PointerDown(pointer_id, x, y, self._now(time_ms)))

    def pointer_move(self, pointer_id: int, x: float, y: float, *, time_ms: Optional[float] = None) -> None:
        self._dispatch(PointerMove(pointer_id, x, y, self._now(time_ms)))

    def pointer_up(self, pointer_id: int, x: float, y: float, *, time_ms: Optional[float] = None) -> None:
        self._dispatch(PointerUp(pointer_id, x, y, self._now(time_ms)))

    def pointer_cancel(self, pointer_id: int, *, time_ms: Optional[float] = None) -> None:
        self._dispatch(PointerCancel(pointer_id, self._now(time_ms)))

    def _now(self, time_ms: Optional[float]) -> float:
        return self._clock() if time_ms is None else time_ms

    def _context(self) -> GestureContext:
        zoomed = self.viewport is not None and self.viewport.zoomed_in
        return GestureContext(
            drawing_tool=self.config.tool in STROKE_TOOLS,
            pan_only=zoomed,
        )

    def _dispatch(self, event: PointerEvent) -> None:
        if self.store is None:
            logger.debug("Ignoring %s before line art is loaded", type(event).__name__)
            return
        actions = self.gestures.handle(event, self._context())
        for action in actions:
            try:
                self._apply(action)
            except ColoringError as exc:
                logger.warning("Dropped %s: %s", type(action).__name__, exc)
                self._abort_session()

    def _apply(self, action: GestureAction) -> None:
        assert self.viewport is not None and self.committer is not None
        if isinstance(action, Tap):
            raster = self.viewport.to_raster(action.point)
            if self.config.tool == FILL:
                self.fill_at(raster)
            elif self._begin_stroke(raster):
                self.committer.commit()
        elif isinstance(action, StrokeBegin):
            self._begin_stroke(self.viewport.to_raster(action.point))
        elif isinstance(action, StrokeExtend):
            self.committer.extend(self.viewport.to_raster(action.point))
        elif isinstance(action, StrokeEnd):
            self.committer.commit()
        elif isinstance(action, StrokeAbort):
            self.committer.cancel()
        elif isinstance(action, Pan):
            self.viewport.cancel_animation()
            self.viewport.pan_by(action.dx, action.dy)
        elif isinstance(action, Pinch):
            self.viewport.cancel_animation()
            self.viewport.zoom_about(self.viewport.zoom_scale * action.scale, action.center)
            self.viewport.pan_by(action.dx, action.dy)

    def _begin_stroke(self, raster: Point) -> bool:
        assert self.committer is not None
        if self.config.tool not in STROKE_TOOLS:
            return False
        stroke = Stroke(
            tool=self.config.tool,
            size=self.config.brush_size,
            color=self.config.color,
            opacity=self.config.opacity,
            points=[raster],
        )
        self.committer.begin(stroke)
        return True

    def _abort_session(self) -> None:
        self.gestures.reset()
        if self.committer is not None:
            self.committer.cancel()
