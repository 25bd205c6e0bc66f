import numpy as np
import pytest

from colorbox.coloring.buffers import BufferStore, PixelBuffer
from colorbox.coloring.history import History
from colorbox.coloring.stroke import (
    BRUSH,
    ERASER,
    Stroke,
    StrokeCommitter,
    catmull_rom,
    render_stroke,
    spline_path,
)

LINE = [(5.0, 20.0), (10.0, 20.0), (15.0, 20.0), (20.0, 20.0), (25.0, 20.0), (30.0, 20.0)]


def _session(width=40, height=40):
    store = BufferStore(width, height)
    history = History(store.draw.snapshot())
    return store, history, StrokeCommitter(store, history)


def test_catmull_rom_passes_through_middle_points():
    p0, p1, p2, p3 = (0.0, 0.0), (10.0, 5.0), (20.0, -5.0), (30.0, 0.0)
    assert catmull_rom(p0, p1, p2, p3, 0.0) == pytest.approx(p1)
    assert catmull_rom(p0, p1, p2, p3, 1.0) == pytest.approx(p2)


def test_spline_path_needs_four_points():
    assert spline_path(LINE[:3]) == []
    assert len(spline_path(LINE[:4])) == 7
    assert len(spline_path(LINE[:5])) == 14


def test_spline_path_spans_inner_points():
    path = spline_path(LINE)
    assert path[0] == pytest.approx((10.0, 20.0))
    assert path[-1][0] == pytest.approx(24.5)
    assert all(y == pytest.approx(20.0) for _, y in path)


def test_render_short_stroke_draws_dot_at_first_point():
    temp = PixelBuffer(50, 50)
    stroke = Stroke(tool=BRUSH, size=10, color=(0, 0, 255, 255), points=[(25.0, 25.0), (40.0, 40.0)])
    render_stroke(temp, stroke)
    assert temp.pixels[25, 25].tolist() == [0, 0, 255, 255]
    assert temp.pixels[40, 40, 3] == 0


def test_render_empty_stroke_leaves_temp_clear():
    temp = PixelBuffer(10, 10)
    temp.pixels[:] = 50
    render_stroke(temp, Stroke(tool=BRUSH, size=4, color=(1, 2, 3, 255)))
    assert not temp.pixels.any()


def test_render_recomputes_from_scratch():
    temp = PixelBuffer(50, 50)
    render_stroke(temp, Stroke(tool=BRUSH, size=6, color=(9, 9, 9, 255), points=[(10.0, 10.0)]))
    render_stroke(temp, Stroke(tool=BRUSH, size=6, color=(9, 9, 9, 255), points=[(40.0, 40.0)]))
    assert temp.pixels[10, 10, 3] == 0
    assert temp.pixels[40, 40, 3] == 255


def test_render_edges_are_antialiased():
    temp = PixelBuffer(30, 30)
    render_stroke(temp, Stroke(tool=BRUSH, size=9, color=(9, 9, 9, 255), points=[(15.0, 15.0)]))
    alphas = set(temp.pixels[..., 3].ravel().tolist())
    assert 255 in alphas
    assert any(0 < alpha < 255 for alpha in alphas)


def test_brush_commit_uses_color_and_opacity():
    store, history, committer = _session()
    stroke = Stroke(tool=BRUSH, size=8, color=(10, 200, 30, 255), opacity=0.5, points=[LINE[0]])
    committer.begin(stroke)
    for point in LINE[1:]:
        committer.extend(point)

    assert committer.commit()
    assert store.draw.pixels[20, 17].tolist() == [10, 200, 30, 128]
    assert store.draw.pixels[2, 2].tolist() == [0, 0, 0, 0]
    assert not store.temp.pixels.any()
    assert len(history) == 2


def test_brush_alpha_ignores_color_alpha():
    temp = PixelBuffer(30, 30)
    stroke = Stroke(tool=BRUSH, size=10, color=(200, 10, 10, 64), opacity=0.3, points=[(15.0, 15.0)])
    render_stroke(temp, stroke)
    assert temp.pixels[15, 15].tolist() == [200, 10, 10, 77]


def test_commit_without_stroke_is_noop():
    store, history, committer = _session()
    assert not committer.commit()
    assert len(history) == 1


def test_one_history_entry_per_stroke():
    store, history, committer = _session()
    committer.begin(Stroke(tool=BRUSH, size=4, color=(1, 1, 1, 255), points=[(2.0, 2.0)]))
    for step in range(3, 35):
        committer.extend((float(step), float(step)))
    committer.commit()
    assert len(history) == 2


def test_eraser_clears_stroked_pixels_only():
    store, history, committer = _session()
    store.draw.pixels[:] = (0, 0, 255, 255)
    committer.begin(Stroke(tool=ERASER, size=8, color=(0, 0, 0, 255), points=list(LINE)))
    # Erasing is only previewed until commit.
    assert store.draw.pixels[20, 17, 3] == 255
    assert store.frame(eraser_active=True)[20, 17, 3] == 0

    committer.commit()
    assert store.draw.pixels[20, 17, 3] == 0
    assert store.draw.pixels[2, 2].tolist() == [0, 0, 255, 255]
    assert store.draw.pixels[35, 35].tolist() == [0, 0, 255, 255]


def test_eraser_over_empty_draw_still_records_history():
    store, history, committer = _session()
    committer.begin(Stroke(tool=ERASER, size=8, color=(0, 0, 0, 255), points=[(5.0, 5.0)]))
    committer.commit()
    assert store.draw.is_empty()
    assert len(history) == 2


def test_cancel_discards_stroke():
    store, history, committer = _session()
    committer.begin(Stroke(tool=BRUSH, size=8, color=(1, 2, 3, 255), points=[(5.0, 5.0)]))
    committer.cancel()
    assert not committer.active
    assert not store.temp.pixels.any()
    assert not committer.commit()
    assert len(history) == 1


def test_begin_rejects_fill_tool():
    _, _, committer = _session()
    with pytest.raises(ValueError):
        committer.begin(Stroke(tool="fill", size=8, color=(1, 2, 3, 255)))
