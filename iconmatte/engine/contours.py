"""Contour grouping, smoothing and anti-aliased path filling."""

import math
from collections import deque
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np


Point = Tuple[float, float]

# Offsets within Manhattan distance 2 of a pixel.
_LINK_OFFSETS = tuple(
    (dx, dy)
    for dy in range(-2, 3)
    for dx in range(-2, 3)
    if 0 < abs(dx) + abs(dy) <= 2
)

# Fixed-point bits used when handing polygons to OpenCV.
_SHIFT = 4
_BEZIER_SAMPLES = 8


def group_contours(
    pixels: Sequence[Tuple[int, int]],
    min_length: int = 4
) -> List[List[Tuple[int, int]]]:
    """
    Group boundary pixels into connected contours.

    Two pixels are linked when their Manhattan distance is at most 2.
    Pixels are bucketed by coordinate so each lookup is constant time.
    Contours are returned in discovery order, each in breadth-first order.

    Args:
        pixels: (x, y) coordinates, typically in raster-scan order.
        min_length: Contours shorter than this are dropped.

    Returns:
        List of contours.
    """
    index: Dict[Tuple[int, int], int] = {}
    for i, p in enumerate(pixels):
        index.setdefault((int(p[0]), int(p[1])), i)

    visited = set()
    contours = []
    for start in index:
        if start in visited:
            continue

        contour = []
        queue = deque([start])
        visited.add(start)
        while queue:
            x, y = queue.popleft()
            contour.append((x, y))
            linked = []
            for dx, dy in _LINK_OFFSETS:
                n = (x + dx, y + dy)
                if n in index and n not in visited:
                    linked.append(n)
            linked.sort(key=index.__getitem__)
            for n in linked:
                visited.add(n)
                queue.append(n)

        if len(contour) >= min_length:
            contours.append(contour)

    return contours


def sort_by_angle(points: Sequence[Point]) -> List[Point]:
    """Order points by polar angle around their centroid (stable)."""
    if not points:
        return []
    cx = sum(p[0] for p in points) / len(points)
    cy = sum(p[1] for p in points) / len(points)
    return sorted(points, key=lambda p: math.atan2(p[1] - cy, p[0] - cx))


def smooth_points(
    points: Sequence[Point],
    window: int,
    weighted: bool = False
) -> List[Point]:
    """
    Moving-average smoothing of a closed point sequence.

    Args:
        points: Closed contour.
        window: Window size; sequences shorter than it are returned as-is.
        weighted: Use a triangular weight ``1 - |j| / (half + 1)`` instead of
                  a flat mean.

    Returns:
        Smoothed points as floats.
    """
    n = len(points)
    if n < window:
        return [(float(p[0]), float(p[1])) for p in points]

    half = window // 2
    pts = np.asarray(points, dtype=np.float64)
    offsets = np.arange(-half, half + 1)
    if weighted:
        weights = 1.0 - np.abs(offsets) / (half + 1)
        norm = weights.sum()
    else:
        weights = np.ones(len(offsets))
        norm = float(len(offsets))

    out = np.zeros_like(pts)
    for off, wgt in zip(offsets, weights):
        out += np.roll(pts, -off, axis=0) * wgt
    out /= norm
    return [(float(x), float(y)) for x, y in out]


def _cubic(p0, c1, c2, p1, samples: int) -> np.ndarray:
    t = np.linspace(0.0, 1.0, samples + 1)[1:, None]
    mt = 1.0 - t
    return (
        mt ** 3 * p0 + 3 * mt ** 2 * t * c1 + 3 * mt * t ** 2 * c2 + t ** 3 * p1
    )


def _quadratic(p0, c, p1, samples: int) -> np.ndarray:
    t = np.linspace(0.0, 1.0, samples + 1)[1:, None]
    mt = 1.0 - t
    return mt ** 2 * p0 + 2 * mt * t * c + t ** 2 * p1


def catmull_rom_path(
    points: Sequence[Point],
    tension: float = 1.0,
    samples: int = _BEZIER_SAMPLES
) -> np.ndarray:
    """
    Sample a closed Catmull-Rom spline through points as cubic Beziers.

    Control points are ``p1 + (p2 - p0) / 6 * tension`` and
    ``p2 - (p3 - p1) / 6 * tension``.

    Returns:
        (N, 2) polygon vertices.
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    segments = [pts[:1]]
    for i in range(n):
        p0 = pts[(i - 1) % n]
        p1 = pts[i]
        p2 = pts[(i + 1) % n]
        p3 = pts[(i + 2) % n]
        c1 = p1 + (p2 - p0) / 6.0 * tension
        c2 = p2 - (p3 - p1) / 6.0 * tension
        segments.append(_cubic(p1, c1, c2, p2, samples))
    return np.concatenate(segments)


def quadratic_path(
    points: Sequence[Point],
    samples: int = _BEZIER_SAMPLES
) -> np.ndarray:
    """
    Sample a closed path of quadratic curves through segment midpoints.

    Starting at the first point, each following point is used as the control
    point of a curve ending halfway to its successor.
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    segments = [pts[:1]]
    current = pts[0]
    for i in range(1, n):
        ctrl = pts[i]
        end = (pts[i] + pts[(i + 1) % n]) / 2.0
        segments.append(_quadratic(current, ctrl, end, samples))
        current = end
    return np.concatenate(segments)


def fill_coverage(shape: Tuple[int, int], polygon: np.ndarray) -> np.ndarray:
    """
    Rasterize a closed polygon with anti-aliasing.

    Polygon coordinates use pixel-corner space (pixel (x, y) spans
    [x, x+1)), matching how contour points address pixels.

    Args:
        shape: (H, W) of the target.
        polygon: (N, 2) vertices.

    Returns:
        (H, W) float64 coverage in [0, 1].
    """
    mask = np.zeros(shape, dtype=np.uint8)
    if len(polygon) < 3:
        return mask.astype(np.float64)
    pts = np.round((np.asarray(polygon) - 0.5) * (1 << _SHIFT)).astype(np.int32)
    cv2.fillPoly(mask, [pts.reshape(-1, 1, 2)], 255, lineType=cv2.LINE_AA, shift=_SHIFT)
    return mask.astype(np.float64) / 255.0


def composite_over(
    pixels: np.ndarray,
    color: Sequence[float],
    coverage: np.ndarray,
    opacity: float
) -> np.ndarray:
    """
    Source-over composite a flat color onto straight-alpha float RGBA.

    Args:
        pixels: (H, W, 4) float64 RGBA in 0-255, updated in place.
        color: Fill RGB.
        coverage: (H, W) coverage from ``fill_coverage``.
        opacity: Fill opacity in 0-1.

    Returns:
        The updated ``pixels`` array.
    """
    src_a = np.clip(coverage * opacity, 0.0, 1.0)
    touched = src_a > 0
    if not touched.any():
        return pixels

    dst_a = pixels[..., 3][touched] / 255.0
    sa = src_a[touched]
    out_a = sa + dst_a * (1.0 - sa)
    safe = np.where(out_a > 0, out_a, 1.0)

    src_rgb = np.asarray(color, dtype=np.float64)[None, :]
    dst_rgb = pixels[..., :3][touched]
    out_rgb = (src_rgb * sa[:, None] + dst_rgb * (dst_a * (1.0 - sa))[:, None]) / safe[:, None]

    pixels[..., :3][touched] = out_rgb
    pixels[..., 3][touched] = out_a * 255.0
    return pixels
