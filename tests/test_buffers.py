import numpy as np
import pytest

from colorbox.coloring.buffers import BufferStore, PixelBuffer, alpha_from_opacity, alpha_over, erase_with_mask
from colorbox.coloring.errors import DimensionError


def _white(width, height):
    return np.full((height, width, 4), 255, dtype=np.uint8)


@pytest.mark.parametrize("size", [(0, 5), (5, 0), (-3, 4)])
def test_pixel_buffer_rejects_empty_sizes(size):
    with pytest.raises(DimensionError):
        PixelBuffer(*size)


def test_store_resize_rejects_empty_sizes():
    store = BufferStore(4, 4)
    with pytest.raises(DimensionError):
        store.resize(0, 8)
    assert store.size == (4, 4)


def test_store_from_line_art_matches_dimensions():
    store = BufferStore.from_line_art(_white(7, 3))
    assert store.size == (7, 3)
    assert store.draw.pixels.shape == (3, 7, 4)
    assert store.temp.pixels.shape == (3, 7, 4)
    assert store.draw.is_empty()
    assert not store.base.pixels.flags.writeable


def test_alpha_from_opacity_rounds_half_up():
    assert alpha_from_opacity(1.0) == 255
    assert alpha_from_opacity(0.5) == 128
    assert alpha_from_opacity(0.25) == 64
    assert alpha_from_opacity(0.0) == 0
    assert alpha_from_opacity(2.0) == 255


def test_alpha_over_onto_transparent_keeps_source():
    dst = np.zeros((1, 1, 4), dtype=np.uint8)
    src = np.array([[[10, 20, 30, 128]]], dtype=np.uint8)
    assert alpha_over(dst, src).tolist() == [[[10, 20, 30, 128]]]


def test_alpha_over_opaque_source_replaces_destination():
    dst = np.array([[[200, 200, 200, 255]]], dtype=np.uint8)
    src = np.array([[[1, 2, 3, 255]]], dtype=np.uint8)
    assert alpha_over(dst, src).tolist() == [[[1, 2, 3, 255]]]


def test_erase_with_mask_reduces_alpha_only_under_mask():
    dst = np.full((1, 3, 4), 255, dtype=np.uint8)
    mask = np.zeros((1, 3, 4), dtype=np.uint8)
    mask[0, 0, 3] = 255
    mask[0, 1, 3] = 128
    result = erase_with_mask(dst, mask)
    assert result[0, 0].tolist() == [0, 0, 0, 0]
    assert result[0, 1, 3] == 127
    assert result[0, 2].tolist() == [255, 255, 255, 255]


def test_merged_snapshot_is_read_only_and_layers_draw_over_base():
    store = BufferStore.from_line_art(_white(2, 2))
    store.draw.pixels[0, 0] = (255, 0, 0, 255)
    merged = store.merged_snapshot()
    assert not merged.flags.writeable
    assert merged[0, 0].tolist() == [255, 0, 0, 255]
    assert merged[1, 1].tolist() == [255, 255, 255, 255]


def test_frame_treats_temp_as_mask_while_erasing():
    store = BufferStore.from_line_art(_white(2, 1))
    store.draw.pixels[0, :] = (0, 0, 255, 255)
    store.temp.pixels[0, 0] = (0, 0, 0, 255)

    erasing = store.frame(eraser_active=True)
    assert erasing[0, 0].tolist() == [255, 255, 255, 255]
    assert erasing[0, 1].tolist() == [0, 0, 255, 255]

    painting = store.frame()
    assert painting[0, 0].tolist() == [0, 0, 0, 255]


def test_clear_zeroes_draw_and_temp():
    store = BufferStore.from_line_art(_white(3, 3))
    store.draw.pixels[:] = 9
    store.temp.pixels[:] = 9
    store.clear()
    assert store.draw.is_empty()
    assert not store.temp.pixels.any()
    assert store.base.pixels.min() == 255


def test_restore_rejects_snapshot_of_other_size():
    buffer = PixelBuffer(2, 2)
    with pytest.raises(DimensionError):
        buffer.restore(np.zeros((3, 3, 4), dtype=np.uint8))
