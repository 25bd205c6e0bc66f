from __future__ import annotations

import os
from typing import Optional, Tuple

import pygame


Point = Tuple[int, int]

FINGERDOWN = getattr(pygame, "FINGERDOWN", None)
FINGERMOTION = getattr(pygame, "FINGERMOTION", None)
FINGERUP = getattr(pygame, "FINGERUP", None)
FINGER_EVENTS = {event for event in (FINGERDOWN, FINGERMOTION, FINGERUP) if event is not None}


def create_window(size: Optional[Tuple[int, int]] = None) -> Tuple[pygame.Surface, pygame.Rect]:
    os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
    pygame.init()
    if size is None:
        screen = pygame.display.set_mode((0, 0), pygame.FULLSCREEN)
    else:
        screen = pygame.display.set_mode(size, pygame.RESIZABLE)
    pygame.mouse.set_visible(True)
    return screen, screen.get_rect()


def is_emulated_touch(event: pygame.event.Event) -> bool:
    # SDL mirrors finger input as mouse events; those are handled as fingers.
    return bool(getattr(event, "touch", False))


def is_primary_pointer_event(event: pygame.event.Event, *, is_down: bool) -> bool:
    expected_type = pygame.MOUSEBUTTONDOWN if is_down else pygame.MOUSEBUTTONUP
    if event.type == expected_type:
        if is_emulated_touch(event):
            return False
        return getattr(event, "button", 1) == 1
    return False


def is_pan_button_event(event: pygame.event.Event, *, is_down: bool) -> bool:
    expected_type = pygame.MOUSEBUTTONDOWN if is_down else pygame.MOUSEBUTTONUP
    return event.type == expected_type and getattr(event, "button", 0) == 2


def pointer_event_pos(event: pygame.event.Event, screen_rect: pygame.Rect) -> Optional[Point]:
    if event.type in FINGER_EVENTS:
        return (
            int(event.x * screen_rect.width),
            int(event.y * screen_rect.height),
        )
    if hasattr(event, "pos"):
        return event.pos
    return None
