from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# --- Tuning constants ---
TAP_MAX_DISTANCE = 10.0
TAP_MAX_DURATION_MS = 300.0


# Input events, in screen coordinates.


@dataclass(frozen=True)
class PointerDown:
    pointer_id: int
    x: float
    y: float
    time_ms: float


@dataclass(frozen=True)
class PointerMove:
    pointer_id: int
    x: float
    y: float
    time_ms: float


@dataclass(frozen=True)
class PointerUp:
    pointer_id: int
    x: float
    y: float
    time_ms: float


@dataclass(frozen=True)
class PointerCancel:
    pointer_id: int
    time_ms: float = 0.0


PointerEvent = Union[PointerDown, PointerMove, PointerUp, PointerCancel]


# Actions handed back to the engine.


@dataclass(frozen=True)
class Tap:
    point: Point


@dataclass(frozen=True)
class StrokeBegin:
    point: Point


@dataclass(frozen=True)
class StrokeExtend:
    point: Point


@dataclass(frozen=True)
class StrokeEnd:
    pass


@dataclass(frozen=True)
class StrokeAbort:
    pass


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


@dataclass(frozen=True)
class Pinch:
    scale: float
    center: Point
    dx: float
    dy: float


GestureAction = Union[Tap, StrokeBegin, StrokeExtend, StrokeEnd, StrokeAbort, Pan, Pinch]


# Session states.


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingTap:
    pointer_id: int
    origin: Point
    started_ms: float
    samples: Tuple[Point, ...]


@dataclass(frozen=True)
class Drawing:
    pointer_id: int
    last: Point


@dataclass(frozen=True)
class Panning:
    pointer_id: int
    last: Point


@dataclass(frozen=True)
class Pinching:
    contacts: Tuple[Tuple[int, Point], ...]


GestureState = Union[Idle, PendingTap, Drawing, Panning, Pinching]


@dataclass(frozen=True)
class GestureContext:
    drawing_tool: bool
    pan_only: bool = False


Transition = Tuple[GestureState, List[GestureAction]]


def _distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def _midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


def _event_point(event: Union[PointerDown, PointerMove, PointerUp]) -> Point:
    return (event.x, event.y)


def _with_contact(contacts: Tuple[Tuple[int, Point], ...], pointer_id: int, point: Point) -> Tuple[Tuple[int, Point], ...]:
    if any(cid == pointer_id for cid, _ in contacts):
        return tuple((cid, point if cid == pointer_id else pos) for cid, pos in contacts)
    return contacts + ((pointer_id, point),)


def _without_contact(contacts: Tuple[Tuple[int, Point], ...], pointer_id: int) -> Tuple[Tuple[int, Point], ...]:
    return tuple((cid, pos) for cid, pos in contacts if cid != pointer_id)


def _is_tap(state: PendingTap, time_ms: float) -> bool:
    moved = max(_distance(state.origin, sample) for sample in state.samples)
    return moved < TAP_MAX_DISTANCE and time_ms - state.started_ms < TAP_MAX_DURATION_MS


def _replay_stroke(state: PendingTap) -> List[GestureAction]:
    actions: List[GestureAction] = [StrokeBegin(state.origin)]
    actions.extend(StrokeExtend(sample) for sample in state.samples[1:])
    return actions


def _start_pinch(contacts: Tuple[Tuple[int, Point], ...], event: PointerDown) -> Pinching:
    return Pinching(_with_contact(contacts, event.pointer_id, _event_point(event)))


def _from_idle(state: Idle, event: PointerEvent, context: GestureContext) -> Transition:
    if isinstance(event, PointerDown):
        point = _event_point(event)
        return PendingTap(event.pointer_id, point, event.time_ms, (point,)), []
    return state, []


def _from_pending(state: PendingTap, event: PointerEvent, context: GestureContext) -> Transition:
    if isinstance(event, PointerDown):
        if event.pointer_id == state.pointer_id:
            return state, []
        return _start_pinch(((state.pointer_id, state.samples[-1]),), event), []

    if event.pointer_id != state.pointer_id:
        return state, []

    if isinstance(event, PointerCancel):
        return Idle(), []

    point = _event_point(event)
    pending = replace(state, samples=state.samples + (point,))

    if isinstance(event, PointerMove):
        if _distance(state.origin, point) < TAP_MAX_DISTANCE:
            return pending, []
        if context.drawing_tool and not context.pan_only:
            return Drawing(state.pointer_id, point), _replay_stroke(pending)
        dx = point[0] - state.origin[0]
        dy = point[1] - state.origin[1]
        return Panning(state.pointer_id, point), [Pan(dx, dy)]

    if _is_tap(pending, event.time_ms):
        return Idle(), [Tap(state.origin)]
    if context.drawing_tool and not context.pan_only:
        # A slow press that never travelled still leaves a mark.
        return Idle(), _replay_stroke(pending) + [StrokeEnd()]
    return Idle(), []


def _from_drawing(state: Drawing, event: PointerEvent, context: GestureContext) -> Transition:
    if isinstance(event, PointerDown):
        if event.pointer_id == state.pointer_id:
            return state, []
        # The stroke so far belonged to a pinch, not a drawing.
        return _start_pinch(((state.pointer_id, state.last),), event), [StrokeAbort()]
    if event.pointer_id != state.pointer_id:
        return state, []
    if isinstance(event, PointerMove):
        point = _event_point(event)
        return Drawing(state.pointer_id, point), [StrokeExtend(point)]
    if isinstance(event, PointerUp) and _event_point(event) != state.last:
        return Idle(), [StrokeExtend(_event_point(event)), StrokeEnd()]
    return Idle(), [StrokeEnd()]


def _from_panning(state: Panning, event: PointerEvent, context: GestureContext) -> Transition:
    if isinstance(event, PointerDown):
        if event.pointer_id == state.pointer_id:
            return state, []
        return _start_pinch(((state.pointer_id, state.last),), event), []
    if event.pointer_id != state.pointer_id:
        return state, []
    if isinstance(event, PointerMove):
        point = _event_point(event)
        delta = Pan(point[0] - state.last[0], point[1] - state.last[1])
        return Panning(state.pointer_id, point), [delta]
    return Idle(), []


def _from_pinching(state: Pinching, event: PointerEvent, context: GestureContext) -> Transition:
    if isinstance(event, PointerDown):
        return Pinching(_with_contact(state.contacts, event.pointer_id, _event_point(event))), []

    known = {cid for cid, _ in state.contacts}
    if event.pointer_id not in known:
        return state, []

    if isinstance(event, (PointerUp, PointerCancel)):
        remaining = _without_contact(state.contacts, event.pointer_id)
        if not remaining:
            return Idle(), []
        return Pinching(remaining), []

    contacts = _with_contact(state.contacts, event.pointer_id, _event_point(event))
    if len(contacts) < 2:
        return Pinching(contacts), []

    before_a, before_b = state.contacts[0][1], state.contacts[1][1]
    after_a, after_b = contacts[0][1], contacts[1][1]
    before_distance = _distance(before_a, before_b)
    after_distance = _distance(after_a, after_b)
    scale = after_distance / before_distance if before_distance > 0 else 1.0
    before_mid = _midpoint(before_a, before_b)
    after_mid = _midpoint(after_a, after_b)
    # Zoom pivots on the old midpoint, then the picture follows the fingers.
    action = Pinch(scale, before_mid, after_mid[0] - before_mid[0], after_mid[1] - before_mid[1])
    return Pinching(contacts), [action]


def transition(state: GestureState, event: PointerEvent, context: GestureContext) -> Transition:
    """Advance one gesture session by one pointer event.

    Idle -> PendingTap on the first contact. PendingTap becomes a Tap on a
    quick, short release, or Drawing/Panning once it travels 10 px. A second
    contact always forces Pinching, which lasts until every contact lifts.
    """
    if isinstance(state, Idle):
        return _from_idle(state, event, context)
    if isinstance(state, PendingTap):
        return _from_pending(state, event, context)
    if isinstance(state, Drawing):
        return _from_drawing(state, event, context)
    if isinstance(state, Panning):
        return _from_panning(state, event, context)
    if isinstance(state, Pinching):
        return _from_pinching(state, event, context)
    raise TypeError(f"unknown gesture state: {state!r}")


class GestureClassifier:
    def __init__(self) -> None:
        self.state: GestureState = Idle()

    @property
    def idle(self) -> bool:
        return isinstance(self.state, Idle)

    def handle(self, event: PointerEvent, context: GestureContext) -> List[GestureAction]:
        previous = self.state
        self.state, actions = transition(previous, event, context)
        if type(previous) is not type(self.state):
            logger.debug("Gesture %s -> %s", type(previous).__name__, type(self.state).__name__)
        return actions

    def reset(self) -> Optional[GestureAction]:
        """Drop the current session; returns StrokeAbort if a stroke was live."""
        was_drawing = isinstance(self.state, Drawing)
        self.state = Idle()
        return StrokeAbort() if was_drawing else None
