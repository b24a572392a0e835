"""
Tests for the edge refinement filters.

Covers light-edge removal, erosion, speckle cleanup, liquid-glass outline
removal and the interior protection shared by the edge filters.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from iconmatte.engine.boundary import outer_edge_mask
from iconmatte.engine.buffer import PixelBuffer
from iconmatte.engine.processing import (
    aggressive_edge_cleanup,
    erode_edges,
    remove_light_edges,
    remove_liquid_glass_outline,
    smooth_edges,
)


def square_icon(canvas, start, stop, rgba=(0, 0, 255, 255)):
    buf = PixelBuffer.blank(canvas, canvas)
    buf.pixels[start:stop, start:stop] = rgba
    return buf


def test_outer_edge_ignores_frame_border():
    alpha = np.full((5, 5), 255, dtype=np.uint8)
    alpha[0, 0] = 0
    edges = outer_edge_mask(alpha)
    assert edges[1, 1]
    assert not edges[0, 1]
    assert edges.sum() == 1


def test_light_border_is_removed_and_interior_kept():
    buf = square_icon(9, 1, 8)
    buf.pixels[1:8, 1:8] = (250, 250, 250, 100)
    buf.pixels[2:7, 2:7] = (0, 0, 255, 255)

    out = remove_light_edges(buf)

    ring = np.zeros((9, 9), dtype=bool)
    ring[1:8, 1:8] = True
    ring[2:7, 2:7] = False
    assert np.all(out.alpha[ring] < 100)
    assert np.all(out.alpha[2:7, 2:7] == 255)


def test_light_edges_leave_dark_pixels_alone():
    buf = square_icon(7, 1, 6, (20, 20, 20, 100))
    assert remove_light_edges(buf) == buf


def test_erosion_peels_one_ring_per_pass():
    buf = square_icon(9, 2, 7)

    out = erode_edges(buf, 2)

    assert out.alpha[4, 4] == 255
    assert int((out.alpha > 0).sum()) == 1
    assert int((erode_edges(buf, 1).alpha > 0).sum()) == 9


def test_zero_erosion_is_a_noop():
    buf = square_icon(9, 2, 7)
    out = erode_edges(buf, 0)
    assert out == buf
    assert out is not buf


def test_negative_erosion_is_rejected():
    with pytest.raises(ValueError):
        erode_edges(square_icon(5, 1, 4), -1)


def test_smoothing_averages_semi_transparent_pixels():
    buf = PixelBuffer.blank(5, 5, (255, 255, 255, 0))
    buf.pixels[2, 2, 3] = 90
    buf.pixels[1, 2, 3] = 255
    buf.pixels[0, 0, 3] = 90

    out = smooth_edges(buf)

    # (90 + 255) / 9
    assert out.alpha[2, 2] == 38
    assert out.alpha[1, 2] == 255
    assert out.alpha[0, 0] == 90


def test_cleanup_drops_isolated_light_speckles():
    buf = PixelBuffer.blank(7, 7)
    buf.pixels[3, 3] = (255, 255, 255, 100)
    buf.pixels[1, 1] = (10, 10, 10, 100)

    out = aggressive_edge_cleanup(buf)

    assert out.alpha[3, 3] == 0
    assert out.alpha[1, 1] == 100


def test_cleanup_keeps_pixels_next_to_opaque_body():
    buf = PixelBuffer.blank(7, 7)
    buf.pixels[3, 3] = (255, 255, 255, 100)
    buf.pixels[2, 2:5] = (0, 0, 0, 255)

    out = aggressive_edge_cleanup(buf)

    assert out.alpha[3, 3] == 100


def test_liquid_glass_attenuates_bright_outline():
    buf = square_icon(9, 2, 7, (250, 250, 250, 255))

    out = remove_liquid_glass_outline(buf, outline_width=1, bright_threshold=200)

    # 255 - 255 * 50 / 55
    assert out.alpha[2, 4] == 23
    assert out.alpha[4, 4] == 255


def test_liquid_glass_fades_faint_outline():
    buf = square_icon(9, 2, 7, (190, 190, 190, 255))
    buf.pixels[2, 2:7, 3] = 150

    out = remove_liquid_glass_outline(buf, outline_width=1, bright_threshold=200)

    assert np.all(out.alpha[2, 2:7] == 45)
    assert out.alpha[4, 4] == 255


@pytest.mark.parametrize("kwargs", [
    {"outline_width": 0},
    {"outline_width": 6},
    {"bright_threshold": 256},
])
def test_liquid_glass_rejects_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        remove_liquid_glass_outline(square_icon(5, 1, 4), **kwargs)


@pytest.mark.parametrize("name, apply, radius", [
    ("light", remove_light_edges, 1),
    ("erode", lambda b: erode_edges(b, 3), 3),
    ("glass", lambda b: remove_liquid_glass_outline(b, 5, 100), 6),
])
def test_edge_filters_never_touch_protected_interior(name, apply, radius):
    rng = np.random.default_rng(3)
    buf = PixelBuffer.blank(30, 30)
    block = rng.integers(200, 256, (22, 22, 4), dtype=np.uint8)
    block[..., 3] = rng.integers(1, 256, (22, 22), dtype=np.uint8)
    buf.pixels[4:26, 4:26] = block

    out = apply(buf)

    size = 2 * radius + 1
    near = cv2.dilate((buf.alpha == 0).astype(np.uint8), np.ones((size, size), np.uint8))
    protected = near == 0
    assert protected.any()
    assert np.array_equal(out.alpha[protected], buf.alpha[protected]), name
    assert np.array_equal(out.rgb, buf.rgb)


def test_filters_never_raise_transparent_pixels():
    rng = np.random.default_rng(11)
    pixels = rng.integers(0, 256, (20, 20, 4), dtype=np.uint8)
    pixels[..., 3][rng.random((20, 20)) < 0.4] = 0
    buf = PixelBuffer.from_array(pixels)
    transparent = buf.alpha == 0

    for apply in (
        smooth_edges,
        remove_light_edges,
        lambda b: erode_edges(b, 2),
        aggressive_edge_cleanup,
        remove_liquid_glass_outline,
    ):
        assert np.all(apply(buf).alpha[transparent] == 0)
