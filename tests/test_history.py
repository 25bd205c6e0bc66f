import numpy as np
import pytest

from colorbox.coloring.history import MAX_UNDO, History


def _snapshot(value):
    return np.full((1, 1, 4), value, dtype=np.uint8)


def test_undo_is_noop_at_floor():
    history = History(_snapshot(0))
    assert history.undo() is None
    assert len(history) == 1
    assert history.top[0, 0, 0] == 0


def test_undo_returns_previous_entry():
    history = History(_snapshot(0))
    history.push(_snapshot(1))
    history.push(_snapshot(2))
    assert history.undo()[0, 0, 0] == 1
    assert history.undo()[0, 0, 0] == 0
    assert history.undo() is None


def test_history_keeps_most_recent_entries():
    history = History(_snapshot(0))
    for value in range(1, 46):
        history.push(_snapshot(value))

    assert len(history) == MAX_UNDO
    assert history.top[0, 0, 0] == 45
    for _ in range(MAX_UNDO - 1):
        history.undo()
    assert history.top[0, 0, 0] == 6
    assert history.undo() is None


def test_reset_collapses_to_single_entry():
    history = History(_snapshot(0))
    history.push(_snapshot(1))
    history.push(_snapshot(2))
    history.reset(_snapshot(7))
    assert len(history) == 1
    assert history.top[0, 0, 0] == 7
    assert not history.can_undo


def test_history_needs_room():
    with pytest.raises(ValueError):
        History(_snapshot(0), max_entries=0)
