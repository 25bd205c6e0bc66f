from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pygame

from colorbox.coloring.buffers import RGBA
from colorbox.coloring.engine import FILL, ColoringEngine, EngineConfig, parse_color
from colorbox.coloring.errors import ImageLoadError
from colorbox.coloring.history import MAX_UNDO
from colorbox.coloring.loader import pixels_to_surface
from colorbox.coloring.stroke import BRUSH, ERASER
from colorbox.config import load_config
from colorbox.paths import ensure_directories, get_data_root
from colorbox.ui.common import (
    FINGERDOWN,
    FINGERMOTION,
    FINGERUP,
    create_window,
    is_emulated_touch,
    is_pan_button_event,
    is_primary_pointer_event,
    pointer_event_pos,
)


logger = logging.getLogger(__name__)

MOUSE_POINTER_ID = -1
BRUSH_SIZE_STEP = 5
OPACITY_STEP = 0.05
BACKGROUND = (252, 248, 240)

TOOL_KEYS: Dict[int, str] = {
    pygame.K_b: BRUSH,
    pygame.K_e: ERASER,
    pygame.K_f: FILL,
}


def _load_palette(values: Sequence[object]) -> List[RGBA]:
    palette: List[RGBA] = []
    for value in values:
        try:
            palette.append(parse_color(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.warning("Skipping invalid palette entry %r", value)
    return palette


def _coerce_int(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(1, number)


def _export_path(exports_dir: Path, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H%M%S")
    path = exports_dir / f"coloring_{stamp}.png"
    counter = 1
    while path.exists():
        path = exports_dir / f"coloring_{stamp}_{counter}.png"
        counter += 1
    return path


class ColoringApp:
    def __init__(
        self,
        source: Path,
        *,
        screen: Optional[pygame.Surface] = None,
        screen_rect: Optional[pygame.Rect] = None,
        clock: Optional[pygame.time.Clock] = None,
        window_size: Optional[Tuple[int, int]] = None,
    ) -> None:
        self.config = load_config()
        settings = self.config.get("coloring", {})
        dirs = ensure_directories(get_data_root(self.config))
        self.exports_dir = dirs["exports"]

        if screen is None:
            self.screen, self.screen_rect = create_window(window_size)
        else:
            self.screen = screen
            self.screen_rect = screen_rect or screen.get_rect()
        self.clock = clock or pygame.time.Clock()
        self.font = pygame.font.SysFont("sans", 18)

        try:
            zoom_step = float(settings.get("zoom_step", 1.1))
        except (TypeError, ValueError):
            zoom_step = 1.1
        self.engine = ColoringEngine.from_file(
            source,
            EngineConfig.from_settings(settings),
            view_size=self.screen_rect.size,
            max_undo=_coerce_int(settings.get("max_undo"), MAX_UNDO),
            zoom_step=max(1.01, zoom_step),
        )
        self.palette = _load_palette(settings.get("palette", []))
        self.pan_anchor: Optional[Tuple[int, int]] = None
        self.pointer_down = False
        self._frame_cache: Optional[pygame.Surface] = None

    def _invalidate(self) -> None:
        self._frame_cache = None

    def _export(self) -> None:
        path = _export_path(self.exports_dir)
        try:
            self.engine.export_png(path)
        except (pygame.error, OSError) as exc:
            logger.error("Export to %s failed: %s", path, exc)

    def _handle_key(self, event: pygame.event.Event) -> None:
        key = event.key
        config = self.engine.config
        if key in TOOL_KEYS:
            self.engine.set_tool(TOOL_KEYS[key])
        elif pygame.K_1 <= key <= pygame.K_9:
            idx = key - pygame.K_1
            if idx < len(self.palette):
                self.engine.set_color(self.palette[idx])
        elif (key == pygame.K_z and event.mod & pygame.KMOD_CTRL) or key == pygame.K_u:
            self.engine.undo()
        elif key == pygame.K_c:
            self.engine.clear()
        elif key == pygame.K_s:
            self._export()
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            self.engine.zoom_in()
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            self.engine.zoom_out()
        elif key == pygame.K_0:
            self.engine.set_zoom(1.0)
        elif key == pygame.K_LEFTBRACKET:
            self.engine.set_brush_size(config.brush_size - BRUSH_SIZE_STEP)
        elif key == pygame.K_RIGHTBRACKET:
            self.engine.set_brush_size(config.brush_size + BRUSH_SIZE_STEP)
        elif key == pygame.K_COMMA:
            self.engine.set_opacity(config.opacity - OPACITY_STEP)
        elif key == pygame.K_PERIOD:
            self.engine.set_opacity(config.opacity + OPACITY_STEP)

    def _handle_event(self, event: pygame.event.Event) -> bool:
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                return False
            self._handle_key(event)
        elif event.type == pygame.VIDEORESIZE:
            self.screen_rect = self.screen.get_rect()
            self.engine.set_view_size(self.screen_rect.size)
        elif event.type == pygame.MOUSEWHEEL:
            if event.y > 0:
                self.engine.zoom_in()
            elif event.y < 0:
                self.engine.zoom_out()
        elif is_pan_button_event(event, is_down=True):
            self.pan_anchor = event.pos
        elif is_pan_button_event(event, is_down=False):
            self.pan_anchor = None
        elif is_primary_pointer_event(event, is_down=True):
            self.pointer_down = True
            self.engine.pointer_down(MOUSE_POINTER_ID, *event.pos)
        elif is_primary_pointer_event(event, is_down=False):
            self.pointer_down = False
            self.engine.pointer_up(MOUSE_POINTER_ID, *event.pos)
        elif event.type == pygame.MOUSEMOTION and not is_emulated_touch(event):
            self._handle_mouse_motion(event)
        elif event.type in (FINGERDOWN, FINGERMOTION, FINGERUP):
            self._handle_finger(event)
        elif event.type == getattr(pygame, "WINDOWLEAVE", None) and self.pointer_down:
            self.pointer_down = False
            self.engine.pointer_cancel(MOUSE_POINTER_ID)
        return True

    def _handle_mouse_motion(self, event: pygame.event.Event) -> None:
        if self.pan_anchor is not None and self.engine.viewport is not None:
            dx = event.pos[0] - self.pan_anchor[0]
            dy = event.pos[1] - self.pan_anchor[1]
            self.pan_anchor = event.pos
            self.engine.viewport.pan_by(dx, dy)
        elif self.pointer_down:
            self.engine.pointer_move(MOUSE_POINTER_ID, *event.pos)

    def _handle_finger(self, event: pygame.event.Event) -> None:
        pos = pointer_event_pos(event, self.screen_rect)
        if pos is None:
            return
        finger = int(event.finger_id)
        if event.type == FINGERDOWN:
            self.engine.pointer_down(finger, *pos)
        elif event.type == FINGERMOTION:
            self.engine.pointer_move(finger, *pos)
        else:
            self.engine.pointer_up(finger, *pos)

    def _canvas_surface(self) -> Optional[pygame.Surface]:
        if self._frame_cache is None:
            frame = self.engine.frame()
            if frame is None:
                return None
            self._frame_cache = pixels_to_surface(frame)
        return self._frame_cache

    def _draw_status(self) -> None:
        config = self.engine.config
        zoom = self.engine.viewport.zoom_scale if self.engine.viewport is not None else 1.0
        label = f"{config.tool}  size {int(config.brush_size)}  opacity {config.opacity:.2f}  {int(round(zoom * 100))}%"
        text = self.font.render(label, True, (20, 20, 20))
        self.screen.blit(text, (12, self.screen_rect.height - text.get_height() - 8))
        pygame.draw.circle(self.screen, config.color[:3], (self.screen_rect.width - 24, self.screen_rect.height - 24), 14)

    def _draw(self) -> None:
        self.screen.fill(BACKGROUND)
        surface = self._canvas_surface()
        viewport = self.engine.viewport
        if surface is not None and viewport is not None:
            width, height = surface.get_size()
            scaled_size = (
                max(1, int(round(width * viewport.zoom_scale))),
                max(1, int(round(height * viewport.zoom_scale))),
            )
            if scaled_size != (width, height):
                surface = pygame.transform.smoothscale(surface, scaled_size)
            origin = (int(round(viewport.translate_x)), int(round(viewport.translate_y)))
            pygame.draw.rect(self.screen, (255, 255, 255), pygame.Rect(origin, scaled_size))
            self.screen.blit(surface, origin)
        self._draw_status()

    def run(self, *, quit_on_exit: bool = True) -> None:
        running = True
        while running:
            for event in pygame.event.get():
                if not self._handle_event(event):
                    running = False
                    break
                self._invalidate()

            if self.engine.tick():
                self._invalidate()

            self._draw()
            pygame.display.flip()
            self.clock.tick(60)

        self.engine.close()
        if quit_on_exit:
            pygame.quit()


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: python -m colorbox.coloring LINE_ART.png [WIDTHxHEIGHT]", file=sys.stderr)
        return 2
    window_size: Optional[Tuple[int, int]] = None
    if len(args) > 1:
        try:
            width, height = (int(part) for part in args[1].lower().split("x", 1))
            window_size = (width, height)
        except ValueError:
            logger.warning("Ignoring invalid window size %r", args[1])
    try:
        app = ColoringApp(Path(args[0]), window_size=window_size)
    except ImageLoadError as exc:
        logger.error("%s", exc)
        pygame.quit()
        return 1
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
