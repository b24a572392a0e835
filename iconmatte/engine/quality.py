"""
Higher-cost edge quality methods.

Each method works on a whole PixelBuffer and returns a new one. A run uses
at most one of them, selected by name through QUALITY_METHODS.
"""

import math
from typing import Any, Dict

import cv2
import numpy as np

from .boundary import frame_interior, neighbor_stack, outer_edge_mask
from .buffer import PixelBuffer, to_alpha
from .contours import (
    catmull_rom_path,
    composite_over,
    fill_coverage,
    group_contours,
    quadratic_path,
    smooth_points,
    sort_by_angle,
)


def _check_range(name: str, value, low, high) -> None:
    integral = isinstance(low, int) and isinstance(high, int)
    kinds = (int, np.integer) if integral else (int, float, np.integer, np.floating)
    if isinstance(value, bool) or not isinstance(value, kinds):
        expected = "an integer" if integral else "a number"
        raise ValueError(f"Invalid {name}: {value!r}. Expected {expected}")
    if not low <= value <= high:
        raise ValueError(f"Invalid {name}: {value}. Expected {low}-{high}")


def gaussian_kernel(radius: int) -> np.ndarray:
    """
    Build a normalized 2-D Gaussian kernel.

    Args:
        radius: Kernel radius; the kernel is (2r+1) x (2r+1), sigma = r / 2.

    Returns:
        float64 kernel summing to 1.
    """
    if radius < 1:
        raise ValueError(f"Invalid kernel radius: {radius}")
    sigma = radius / 2.0
    axis = np.arange(-radius, radius + 1, dtype=np.float64)
    xx, yy = np.meshgrid(axis, axis)
    kernel = np.exp(-(xx * xx + yy * yy) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def _premultiply(pixels: np.ndarray) -> np.ndarray:
    out = pixels.astype(np.float64)
    out[..., :3] *= out[..., 3:4] / 255.0
    return out


def _unpremultiply(pixels: np.ndarray) -> np.ndarray:
    out = pixels.copy()
    a = np.clip(out[..., 3:4], 0.0, 255.0)
    safe = np.where(a > 0, a, 1.0)
    out[..., :3] = np.where(a > 0, out[..., :3] * 255.0 / safe, 0.0)
    out[..., 3:4] = a
    return out


def supersample(buffer: PixelBuffer, scale: int = 4) -> PixelBuffer:
    """
    Supersampled edge cleanup.

    The image is upscaled with bicubic interpolation, semi-transparent alpha
    is pushed halfway toward 0 or 255 around the midpoint, and the result is
    downscaled with area averaging. Resampling happens on premultiplied
    color so transparent pixels do not bleed into edges.

    Args:
        buffer: Input buffer.
        scale: Upscale factor, 2-8.

    Returns:
        Buffer of the original size.
    """
    _check_range("scale", scale, 2, 8)
    if buffer.is_empty():
        return buffer.copy()

    w, h = buffer.size
    large = cv2.resize(
        _premultiply(buffer.pixels), (w * scale, h * scale), interpolation=cv2.INTER_CUBIC
    )
    large = _unpremultiply(large)
    alpha = to_alpha(large[..., 3]).astype(np.float64)

    soft = (alpha > 0) & (alpha < 255)
    low = soft & (alpha < 128)
    high = soft & (alpha >= 128)
    alpha[low] = np.floor(alpha[low] * 0.5)
    alpha[high] = np.floor(alpha[high] + (255 - alpha[high]) * 0.5)
    large[..., 3] = alpha

    small = cv2.resize(_premultiply(large), (w, h), interpolation=cv2.INTER_AREA)
    return PixelBuffer.from_array(to_alpha(_unpremultiply(small)))


def gaussian_blur_alpha(buffer: PixelBuffer, radius: int = 2, passes: int = 2) -> PixelBuffer:
    """
    Blur the alpha channel of edge pixels.

    Only pixels with 10 < alpha < 245 are recomputed; solid regions and
    hard 0/255 steps stay untouched. Near the frame the kernel is
    renormalized over the in-bounds taps.

    Args:
        buffer: Input buffer.
        radius: Kernel radius, 1-5.
        passes: Number of passes, 1-5.

    Returns:
        Buffer with blurred alpha.
    """
    _check_range("radius", radius, 1, 5)
    _check_range("passes", passes, 1, 5)
    if buffer.is_empty():
        return buffer.copy()

    kernel = gaussian_kernel(radius)
    alpha = buffer.alpha.astype(np.float64)
    weight = cv2.filter2D(
        np.ones_like(alpha), -1, kernel, borderType=cv2.BORDER_CONSTANT
    )

    for _ in range(passes):
        gate = (alpha > 10) & (alpha < 245)
        blurred = cv2.filter2D(alpha, -1, kernel, borderType=cv2.BORDER_CONSTANT) / weight
        alpha = alpha.copy()
        alpha[gate] = np.floor(blurred[gate] + 0.5)

    return buffer.with_alpha(alpha)


def morphological(buffer: PixelBuffer, dilate_radius: int = 1, erode_radius: int = 1) -> PixelBuffer:
    """
    Dilate then erode the alpha channel with square windows.

    Args:
        buffer: Input buffer.
        dilate_radius: Radius of the max filter, 0-3 (0 skips it).
        erode_radius: Radius of the min filter, 0-3 (0 skips it).

    Returns:
        Buffer with closed alpha.
    """
    _check_range("dilate radius", dilate_radius, 0, 3)
    _check_range("erode radius", erode_radius, 0, 3)
    if buffer.is_empty():
        return buffer.copy()

    alpha = buffer.alpha
    if dilate_radius > 0:
        size = 2 * dilate_radius + 1
        alpha = cv2.dilate(alpha, np.ones((size, size), np.uint8))
    if erode_radius > 0:
        size = 2 * erode_radius + 1
        alpha = cv2.erode(alpha, np.ones((size, size), np.uint8))
    return buffer.with_alpha(alpha)


def subpixel(
    buffer: PixelBuffer,
    threshold: int = 128,
    smooth: float = 0.5,
    sharpness: int = 100
) -> PixelBuffer:
    """
    Subpixel smoothing with optional unsharp masking of alpha.

    Semi-transparent pixels (10 < alpha < 245) are blended toward the mean
    of their 4 neighbors by ``smooth``. When ``sharpness`` differs from 100
    the result is sharpened against its 8-neighbor mean with factor
    ``(sharpness - 100) / 100``.

    Args:
        buffer: Input buffer.
        threshold: Accepted alongside the other method parameters; the
                   semi-transparent band is fixed.
        smooth: Blend factor, 0-1.
        sharpness: Sharpness percentage, 0-200.

    Returns:
        Refined buffer.
    """
    _check_range("threshold", threshold, 1, 254)
    _check_range("smooth", smooth, 0.0, 1.0)
    _check_range("sharpness", sharpness, 0, 200)
    if buffer.is_empty():
        return buffer.copy()

    a = buffer.alpha.astype(np.float64)
    inner = frame_interior(a.shape)

    gate = inner & (a > 10) & (a < 245)
    neighbors = neighbor_stack(a, fill=0)
    # up, left, right, down
    avg4 = neighbors[[1, 3, 4, 6]].sum(axis=0) / 4.0
    a[gate] = np.floor(a[gate] * (1 - smooth) + avg4[gate] * smooth + 0.5)

    if sharpness != 100:
        factor = (sharpness - 100) / 100.0
        gate = inner & (a > 10) & (a < 245)
        mean8 = neighbor_stack(a, fill=0).sum(axis=0) / 8.0
        sharpened = a + (a - mean8) * factor
        a[gate] = sharpened[gate]

    return buffer.with_alpha(a)


def blur_sharpen(
    buffer: PixelBuffer,
    blur_radius: int = 2,
    sharpen_strength: int = 150,
    threshold: int = 10
) -> PixelBuffer:
    """
    Blur the outer edge, then sharpen the alpha transition band.

    Outer-edge pixels whose full kernel fits inside the frame get a Gaussian
    blur. Transition pixels (semi-transparent with a neighbor more than 20
    below and another more than 20 above) are then unsharp-masked against
    their 8-neighbor mean, but only where that difference exceeds
    ``threshold``.

    Args:
        buffer: Input buffer.
        blur_radius: Gaussian radius, 1-5.
        sharpen_strength: Sharpen percentage, 0-300.
        threshold: Minimum difference to sharpen, 0-50.

    Returns:
        Refined buffer.
    """
    _check_range("blur radius", blur_radius, 1, 5)
    _check_range("sharpen strength", sharpen_strength, 0, 300)
    _check_range("threshold", threshold, 0, 50)
    if buffer.is_empty():
        return buffer.copy()

    alpha = buffer.alpha
    a = alpha.astype(np.float64)
    h, w = a.shape
    r = blur_radius

    fits = np.zeros((h, w), dtype=bool)
    if h > 2 * r and w > 2 * r:
        fits[r:h - r, r:w - r] = True
    edges = outer_edge_mask(alpha) & fits
    blurred = cv2.filter2D(a, -1, gaussian_kernel(r), borderType=cv2.BORDER_CONSTANT)
    a[edges] = np.floor(blurred[edges] + 0.5)

    neighbors = neighbor_stack(a, fill=0)
    transition = (
        frame_interior(a.shape)
        & (a > 0) & (a < 255)
        & (neighbors < a - 20).any(axis=0)
        & (neighbors > a + 20).any(axis=0)
    )
    diff = a - neighbors.sum(axis=0) / 8.0
    target = transition & (np.abs(diff) > threshold)
    a[target] = a[target] + diff[target] * (sharpen_strength / 100.0)

    return buffer.with_alpha(a)


def edge_bezier(buffer: PixelBuffer, radius: int = 2, strength: float = 0.7) -> PixelBuffer:
    """
    Re-render the outline as smoothed Bezier curves.

    Boundary pixels are grouped into contours, each contour is ordered by
    angle around its centroid and smoothed, the semi-transparent pixels
    around it are cleared, and a Catmull-Rom spline through the smoothed
    points is filled three times at low opacity in the contour's mean color.

    Args:
        buffer: Input buffer.
        radius: Smoothing and clearing radius, 1-5.
        strength: Curve tension and fill strength, 0-1.

    Returns:
        Buffer with a re-rendered outline.
    """
    _check_range("radius", radius, 1, 5)
    _check_range("strength", strength, 0.0, 1.0)
    if buffer.is_empty():
        return buffer.copy()

    original = buffer.pixels
    alpha = buffer.alpha
    neighbors = neighbor_stack(alpha, fill=255)
    edge = (
        frame_interior(alpha.shape)
        & (alpha > 0)
        & (neighbors < 50).any(axis=0)
        & ((alpha < 250) | (neighbors > 200).any(axis=0))
    )
    ys, xs = np.nonzero(edge)
    if len(xs) < 3:
        return buffer.copy()

    contours = group_contours(list(zip(xs.tolist(), ys.tolist())))
    result = original.astype(np.float64)
    window = int(math.ceil(radius * 2 + 1))
    size = 2 * radius + 1
    clearable = (alpha > 0) & (alpha < 250)

    for contour in contours:
        ordered = sort_by_angle(contour)
        smoothed = smooth_points(ordered, window, weighted=True)
        if len(smoothed) < 4:
            continue

        seeds = np.zeros(alpha.shape, dtype=np.uint8)
        cx, cy = np.array(contour).T
        seeds[cy, cx] = 1
        near = cv2.dilate(seeds, np.ones((size, size), np.uint8)) > 0
        result[near & clearable] = 0

        solid = alpha[cy, cx] > 100
        if solid.any():
            color = np.floor(original[cy[solid], cx[solid], :3].mean(axis=0) + 0.5)
        else:
            color = np.array([128.0, 128.0, 128.0])

        coverage = fill_coverage(alpha.shape, catmull_rom_path(smoothed, tension=strength))
        for i in range(3):
            opacity = (i + 1) / 3.0 * strength * 0.3
            composite_over(result, color, coverage, opacity)

    return PixelBuffer.from_array(to_alpha(result))


def vectorize(buffer: PixelBuffer, num_colors: int = 16, blur: int = 0) -> PixelBuffer:
    """
    Trace flat color regions and re-rasterize them with soft outlines.

    Colors are quantized into ``num_colors`` buckets, 4-connected regions of
    one quantized color are traced, and each region's outline is refilled
    on a transparent canvas with quadratic curves in its mean color.

    Args:
        buffer: Input buffer.
        num_colors: Palette size, 4-64.
        blur: Gaussian pre-blur sigma in pixels, 0-3.

    Returns:
        Re-rendered buffer.
    """
    _check_range("color count", num_colors, 4, 64)
    _check_range("blur", blur, 0, 3)
    if buffer.is_empty():
        return buffer.copy()

    pixels = buffer.pixels
    if blur > 0:
        pixels = cv2.GaussianBlur(pixels, (0, 0), sigmaX=blur)

    step = max(1, int(256 // (num_colors ** (1.0 / 3.0))))
    quant = (pixels[..., :3].astype(np.int32) // step) * step
    keys = (quant[..., 0] << 16) | (quant[..., 1] << 8) | quant[..., 2]
    alpha = pixels[..., 3]
    fillable = alpha >= 128
    h, w = alpha.shape
    flat_index = np.arange(h * w).reshape(h, w)

    regions = []
    for key in np.unique(keys[fillable]):
        mask = (fillable & (keys == key)).astype(np.uint8)
        count, labels = cv2.connectedComponents(mask, connectivity=4)
        for label in range(1, count):
            region = labels == label
            seeds = region & (alpha > 128)
            if not seeds.any():
                continue
            regions.append((int(flat_index[seeds].min()), region))

    canvas = np.zeros((h, w, 4), dtype=np.float64)
    for _, region in sorted(regions, key=lambda item: item[0]):
        if region.sum() <= 4:
            continue

        inside = np.pad(region, 1, mode="constant", constant_values=False)
        interior = (
            inside[:-2, 1:-1] & inside[2:, 1:-1] & inside[1:-1, :-2] & inside[1:-1, 2:]
        )
        ys, xs = np.nonzero(region & ~interior)
        if len(xs) <= 2:
            continue

        outline = smooth_points(sort_by_angle(list(zip(xs.tolist(), ys.tolist()))), 3)
        mean = np.floor(pixels[region].astype(np.float64).mean(axis=0) + 0.5)
        coverage = fill_coverage((h, w), quadratic_path(outline))
        composite_over(canvas, mean[:3], coverage, mean[3] / 255.0)

    return PixelBuffer.from_array(to_alpha(canvas))


QUALITY_METHODS: Dict[str, Dict[str, Any]] = {
    "supersampling": {
        "function": supersample,
        "defaults": {"scale": 4},
        "description": "Upscale, tighten alpha, downscale",
    },
    "gaussian": {
        "function": gaussian_blur_alpha,
        "defaults": {"radius": 2, "passes": 2},
        "description": "Gaussian blur of semi-transparent alpha",
    },
    "morphological": {
        "function": morphological,
        "defaults": {"dilate_radius": 1, "erode_radius": 1},
        "description": "Dilate then erode alpha",
    },
    "subpixel": {
        "function": subpixel,
        "defaults": {"threshold": 128, "smooth": 0.5, "sharpness": 100},
        "description": "Neighbor blending with optional unsharp mask",
    },
    "blur_sharpen": {
        "function": blur_sharpen,
        "defaults": {"blur_radius": 2, "sharpen_strength": 150, "threshold": 10},
        "description": "Blur the edge, sharpen the transition",
    },
    "edge_bezier": {
        "function": edge_bezier,
        "defaults": {"radius": 2, "strength": 0.7},
        "description": "Re-render the outline with Bezier curves",
    },
    "vector": {
        "function": vectorize,
        "defaults": {"num_colors": 16, "blur": 0},
        "description": "Quantize, trace and refill color regions",
    },
}


def validate_quality_params(method: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a method name and its parameter overrides.

    Returns:
        The method's defaults merged with ``params``.

    Raises:
        ValueError: If the method or a parameter name is unknown, or a
            value has the wrong type or is out of range.
    """
    if method not in QUALITY_METHODS:
        raise ValueError(f"Invalid method: {method}. Options: {list(QUALITY_METHODS.keys())}")

    entry = QUALITY_METHODS[method]
    unknown = set(params) - set(entry["defaults"])
    if unknown:
        raise ValueError(f"Unknown parameters for {method}: {sorted(unknown)}")

    kwargs = dict(entry["defaults"])
    kwargs.update(params)
    # Methods check their parameters before touching pixels.
    entry["function"](PixelBuffer(0, 0), **kwargs)
    return kwargs


def apply_quality_method(buffer: PixelBuffer, method: str, **params) -> PixelBuffer:
    """
    Run a quality method by name.

    Args:
        buffer: Input buffer.
        method: Key of QUALITY_METHODS.
        **params: Overrides for the method's default parameters.

    Returns:
        Processed buffer.

    Raises:
        ValueError: If the method or a parameter is invalid.
    """
    kwargs = validate_quality_params(method, params)
    return QUALITY_METHODS[method]["function"](buffer, **kwargs)
