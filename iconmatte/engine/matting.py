"""Background subtraction and color keying for icon images."""

import logging
from typing import Optional, Sequence, Union

import numpy as np

from .buffer import PixelBuffer, RGB, to_alpha


logger = logging.getLogger(__name__)

# Reference mode works on a 0-255 difference scale, color-key mode does not.
REFERENCE_THRESHOLD_SCALE = 2.55
# Width of the linear fade band above the reference threshold.
FADE_BAND = 0.5


def parse_color(color: Union[str, Sequence[int]]) -> RGB:
    """
    Normalize a color given as hex string or RGB triple.

    Args:
        color: "#rrggbb", "#rgb" (leading '#' optional) or an (r, g, b)
               sequence of ints.

    Returns:
        (r, g, b) tuple of ints in 0-255.

    Raises:
        ValueError: If the color cannot be parsed.
    """
    if isinstance(color, (tuple, list)):
        if len(color) != 3:
            raise ValueError(f"Expected an RGB triple, got {color!r}")
        r, g, b = (int(c) for c in color)
        for c in (r, g, b):
            if not 0 <= c <= 255:
                raise ValueError(f"RGB component out of range: {color!r}")
        return r, g, b

    s = str(color).strip()
    if s.startswith("#"):
        s = s[1:]
    if len(s) == 3:
        s = "".join(c * 2 for c in s)
    if len(s) != 6:
        raise ValueError(f"Invalid hex color: {color!r}")
    try:
        return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)
    except ValueError:
        raise ValueError(f"Invalid hex color: {color!r}") from None


def detect_background_color(image: PixelBuffer) -> RGB:
    """
    Guess the backdrop color from the four corner pixels.

    Args:
        image: Source buffer. Must not be empty.

    Returns:
        Rounded mean RGB of the corners.
    """
    px = image.pixels
    h, w = image.height, image.width
    corners = np.array([
        px[0, 0, :3],
        px[0, w - 1, :3],
        px[h - 1, 0, :3],
        px[h - 1, w - 1, :3],
    ], dtype=np.float64)
    mean = np.floor(corners.mean(axis=0) + 0.5).astype(int)
    return int(mean[0]), int(mean[1]), int(mean[2])


def subtract_reference(
    image: PixelBuffer,
    reference: PixelBuffer,
    threshold: int
) -> PixelBuffer:
    """
    Remove everything that matches a reference backdrop.

    Pixels whose reference alpha is 0 lie outside the backdrop and are left
    untouched. Elsewhere the largest per-channel difference is compared
    against ``threshold * 2.55`` attenuated by the reference opacity: below
    it the pixel is cleared, within the next half-threshold its alpha fades
    linearly, above that it belongs to the icon.

    Args:
        image: Source buffer.
        reference: Backdrop buffer. Only the region overlapping the image
                   (anchored top-left) is used.
        threshold: Sensitivity in 1-100.

    Returns:
        New buffer with updated alpha.
    """
    out = image.copy()
    if image.is_empty() or reference.is_empty():
        return out

    if reference.size != image.size:
        logger.warning(
            "Reference size %dx%d differs from image size %dx%d; "
            "matting only the overlapping region",
            reference.width, reference.height, image.width, image.height,
        )

    h = min(image.height, reference.height)
    w = min(image.width, reference.width)
    img = image.pixels[:h, :w].astype(np.float64)
    ref = reference.pixels[:h, :w].astype(np.float64)

    ref_alpha = ref[:, :, 3]
    max_diff = np.abs(img[:, :, :3] - ref[:, :, :3]).max(axis=2)
    effective = threshold * REFERENCE_THRESHOLD_SCALE * (ref_alpha / 255.0)

    backdrop = ref_alpha > 0
    remove = backdrop & (max_diff < effective)
    fade = backdrop & ~remove & (max_diff < effective * (1.0 + FADE_BAND))

    alpha = img[:, :, 3].copy()
    alpha[remove] = 0
    band = effective[fade] * FADE_BAND
    alpha[fade] = alpha[fade] * (max_diff[fade] - effective[fade]) / band

    out.pixels[:h, :w, 3] = to_alpha(alpha)
    return out


def remove_by_color(
    image: PixelBuffer,
    color: RGB,
    threshold: int
) -> PixelBuffer:
    """
    Color-key a buffer against a single backdrop color.

    The mean absolute channel difference is compared to ``threshold``
    directly (no 2.55 scaling). Pixels below it are cleared, the rest are
    capped at ``diff / threshold * 255`` without ever gaining opacity.

    Args:
        image: Source buffer.
        color: Backdrop RGB.
        threshold: Sensitivity in 1-100.

    Returns:
        New buffer with updated alpha.
    """
    out = image.copy()
    if image.is_empty():
        return out

    rgb = image.pixels[:, :, :3].astype(np.float64)
    target = np.asarray(color, dtype=np.float64)
    diff = np.abs(rgb - target).sum(axis=2) / 3.0

    keyed = np.minimum(255.0, diff / threshold * 255.0)
    alpha = np.minimum(image.pixels[:, :, 3].astype(np.float64), to_alpha(keyed))
    alpha[diff < threshold] = 0

    out.pixels[:, :, 3] = to_alpha(alpha)
    return out


def matte(
    image: PixelBuffer,
    reference: Optional[PixelBuffer] = None,
    color: Optional[RGB] = None,
    threshold: int = 30
) -> PixelBuffer:
    """
    Produce an alpha-carrying buffer with the backdrop removed.

    A reference buffer takes precedence; otherwise the explicit color is
    keyed out; with neither, the backdrop color is detected from the
    corners.

    Args:
        image: Source buffer.
        reference: Optional reference backdrop.
        color: Optional backdrop RGB for color-key mode.
        threshold: Sensitivity in 1-100.

    Returns:
        New buffer; the input is not modified.
    """
    if image.is_empty():
        return image.copy()

    if reference is not None:
        return subtract_reference(image, reference, threshold)

    if color is None:
        color = detect_background_color(image)
        logger.debug("Auto-detected backdrop color %s", color)

    return remove_by_color(image, color, threshold)


class MattingEngine:
    """
    Matting engine bound to one backdrop description.

    The reference and color are read-only for the engine's lifetime, so a
    single engine can be shared across a whole batch.

    Example:
        engine = MattingEngine(reference=backdrop, threshold=30)
        cutout = engine.matte(icon)
    """

    def __init__(
        self,
        reference: Optional[PixelBuffer] = None,
        color: Optional[Union[str, Sequence[int]]] = None,
        threshold: int = 30
    ):
        """
        Initialize the matting engine.

        Args:
            reference: Optional reference backdrop buffer.
            color: Optional backdrop color (hex or RGB), used when no
                   reference is given.
            threshold: Sensitivity in 1-100.
        """
        if not 1 <= int(threshold) <= 100:
            raise ValueError(f"Invalid threshold: {threshold}. Expected 1-100")

        self.reference = reference
        self.color = parse_color(color) if color is not None else None
        self.threshold = int(threshold)

    @property
    def mode(self) -> str:
        """'reference', 'color' or 'auto'."""
        if self.reference is not None:
            return "reference"
        if self.color is not None:
            return "color"
        return "auto"

    def matte(self, image: PixelBuffer) -> PixelBuffer:
        return matte(image, self.reference, self.color, self.threshold)
