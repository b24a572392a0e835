"""
Edge refinement filters for cut-out icons.

Each filter takes a PixelBuffer and returns a new one; only the alpha
channel changes. The pipeline applies them in a fixed order:
smoothing -> light-edge removal -> erosion -> cleanup -> liquid-glass removal.
"""

import cv2
import numpy as np

from .boundary import frame_interior, neighbor_stack, outer_edge_mask
from .buffer import PixelBuffer, to_alpha


def smooth_edges(buffer: PixelBuffer) -> PixelBuffer:
    """
    Soften semi-transparent pixels with a 3x3 mean filter.

    Only pixels with 0 < alpha < 255 inside the image frame change; fully
    transparent and fully opaque pixels are left alone.

    Args:
        buffer: Input buffer.

    Returns:
        Buffer with smoothed alpha.
    """
    alpha = buffer.alpha
    if buffer.is_empty():
        return buffer.copy()

    box = cv2.blur(alpha.astype(np.float64), (3, 3))
    target = (alpha > 0) & (alpha < 255) & frame_interior(alpha.shape)

    result = alpha.astype(np.float64)
    result[target] = box[target]
    return buffer.with_alpha(result)


def remove_light_edges(buffer: PixelBuffer) -> PixelBuffer:
    """
    Fade bright, semi-transparent pixels on the icon's outer edge.

    Outer-edge pixels with 0 < alpha < 200 and brightness above 180 lose
    ``brightness - 128`` alpha. Interior pixels are never touched.

    Args:
        buffer: Input buffer.

    Returns:
        Buffer with light edge artifacts reduced.
    """
    alpha = buffer.alpha
    if buffer.is_empty():
        return buffer.copy()

    brightness = buffer.brightness()
    target = outer_edge_mask(alpha) & (alpha < 200) & (brightness > 180)

    result = alpha.astype(np.float64)
    result[target] = np.maximum(0.0, result[target] - (brightness[target] - 128))
    return buffer.with_alpha(result)


def erode_edges(buffer: PixelBuffer, pixels: int) -> PixelBuffer:
    """
    Peel rings off the opaque region.

    Each pass clears every pixel that currently has a fully transparent
    8-neighbor, so ``pixels`` passes remove that many rings.

    Args:
        buffer: Input buffer.
        pixels: Number of passes, 0-3. Zero returns an unchanged copy.

    Returns:
        Eroded buffer.
    """
    if pixels < 0:
        raise ValueError(f"Invalid erosion passes: {pixels}")

    alpha = buffer.alpha
    if buffer.is_empty() or pixels == 0:
        return buffer.copy()

    for _ in range(pixels):
        alpha[outer_edge_mask(alpha)] = 0

    return buffer.with_alpha(alpha)


def aggressive_edge_cleanup(buffer: PixelBuffer) -> PixelBuffer:
    """
    Drop isolated light speckles.

    A pixel with 0 < alpha < 128 and brightness above 150 is cleared when
    fewer than 3 of its 8 neighbors are opaque (alpha > 200).

    Args:
        buffer: Input buffer.

    Returns:
        Cleaned buffer.
    """
    alpha = buffer.alpha
    if buffer.is_empty():
        return buffer.copy()

    opaque_neighbors = (neighbor_stack(alpha, fill=0) > 200).sum(axis=0)
    target = (
        (alpha > 0) & (alpha < 128)
        & (buffer.brightness() > 150)
        & (opaque_neighbors < 3)
    )

    alpha[target] = 0
    return buffer.with_alpha(alpha)


def remove_liquid_glass_outline(
    buffer: PixelBuffer,
    outline_width: int = 2,
    bright_threshold: int = 200
) -> PixelBuffer:
    """
    Remove a bright translucent outline around the icon.

    The outer edge is widened by ``outline_width`` pixels to form a process
    zone. Inside the zone, pixels brighter than ``bright_threshold`` lose
    alpha in proportion to how far they exceed it, and semi-transparent
    (alpha < 180) pixels brighter than ``bright_threshold - 20`` keep only
    30% of their alpha.

    Args:
        buffer: Input buffer.
        outline_width: Zone width in pixels, 1-5.
        bright_threshold: Brightness threshold, 0-255.

    Returns:
        Buffer with the outline attenuated.
    """
    if not 1 <= outline_width <= 5:
        raise ValueError(f"Invalid outline width: {outline_width}. Expected 1-5")
    if not 0 <= bright_threshold <= 255:
        raise ValueError(f"Invalid brightness: {bright_threshold}. Expected 0-255")

    alpha = buffer.alpha
    if buffer.is_empty():
        return buffer.copy()

    edges = outer_edge_mask(alpha).astype(np.uint8)
    size = 2 * outline_width + 1
    kernel = np.ones((size, size), np.uint8)
    zone = cv2.dilate(edges, kernel, borderType=cv2.BORDER_CONSTANT, borderValue=0) > 0
    zone &= alpha > 0

    brightness = buffer.brightness()
    a = alpha.astype(np.float64)
    result = a.copy()

    bright = zone & (brightness > bright_threshold)
    if bright.any():
        factor = (brightness[bright] - bright_threshold) / (255 - bright_threshold)
        result[bright] = np.maximum(0.0, a[bright] - factor * a[bright])
    result = to_alpha(result).astype(np.float64)

    faint = zone & (a < 180) & (brightness > bright_threshold - 20)
    result[faint] = np.floor(a[faint] * 0.3)

    return buffer.with_alpha(result)
