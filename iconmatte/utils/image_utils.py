"""Image decoding, encoding and compositing utilities."""

import io
from pathlib import Path
from typing import BinaryIO, Optional, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..engine.buffer import PixelBuffer
from ..errors import DecodeFailure, EncodeFailure


# Supported image formats
SUPPORTED_FORMATS = {".jpg", ".jpeg", ".png", ".tiff", ".tif", ".webp", ".bmp", ".gif"}

ImageSource = Union[bytes, bytearray, str, Path, BinaryIO]


def _to_pil(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(buffer.pixels)


def _from_pil(image: Image.Image) -> PixelBuffer:
    return PixelBuffer.from_array(np.array(image.convert("RGBA")))


def decode_image(source: ImageSource) -> PixelBuffer:
    """
    Decode an image into an RGBA pixel buffer.

    Args:
        source: Encoded bytes, a file path or a binary file object.

    Returns:
        RGBA PixelBuffer with EXIF orientation applied.

    Raises:
        DecodeFailure: If the data is not a readable image.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))

    try:
        with Image.open(source) as img:
            img = ImageOps.exif_transpose(img)
            return _from_pil(img)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e


def encode_png(buffer: PixelBuffer) -> bytes:
    """
    Encode a buffer as a lossless RGBA PNG.

    Raises:
        EncodeFailure: If the buffer cannot be serialized (e.g. zero size).
    """
    if buffer.is_empty():
        raise EncodeFailure(f"Cannot encode an empty image ({buffer.width}x{buffer.height})")

    out = io.BytesIO()
    try:
        _to_pil(buffer).save(out, format="PNG", optimize=True)
    except (OSError, ValueError) as e:
        raise EncodeFailure(f"Could not encode PNG: {e}") from e
    return out.getvalue()


def load_image(path: Union[str, Path]) -> PixelBuffer:
    """
    Load an image from disk.

    Args:
        path: Path to the image file.

    Returns:
        RGBA PixelBuffer.

    Raises:
        FileNotFoundError: If the image file doesn't exist.
        ValueError: If the file format is not supported.
        DecodeFailure: If the file cannot be decoded.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported format: {suffix}. Supported: {sorted(SUPPORTED_FORMATS)}")

    return decode_image(path)


def save_image(buffer: PixelBuffer, path: Union[str, Path]) -> Path:
    """
    Save a buffer to disk as PNG, creating parent directories.

    Returns:
        Path to the saved image.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_png(buffer))
    return path


def composite_on_background(
    icon: PixelBuffer,
    background: PixelBuffer,
    icon_scale: float = 0.8,
    output_size: Optional[int] = None
) -> PixelBuffer:
    """
    Place a cut-out icon centered on a new square background.

    The background is stretched to an ``output_size`` square; the icon is
    scaled so its longer side spans ``icon_scale`` of it, keeping its aspect
    ratio, and alpha-composited on top.

    Args:
        icon: Cut-out icon with transparency.
        background: Background image.
        icon_scale: Icon size relative to the output, in (0, 1].
        output_size: Side of the output square. Defaults to the larger
                     background dimension.

    Returns:
        Composited RGBA buffer.
    """
    if not 0 < icon_scale <= 1:
        raise ValueError(f"Invalid icon scale: {icon_scale}. Expected (0, 1]")
    if icon.is_empty() or background.is_empty():
        raise ValueError("Cannot composite an empty image")

    size = output_size or max(background.width, background.height)
    if size < 1:
        raise ValueError(f"Invalid output size: {size}")

    canvas = _to_pil(background).resize((size, size), Image.LANCZOS)

    target = size * icon_scale
    ratio = icon.width / icon.height
    if ratio > 1:
        icon_w, icon_h = target, target / ratio
    else:
        icon_w, icon_h = target * ratio, target
    icon_w = max(1, int(round(icon_w)))
    icon_h = max(1, int(round(icon_h)))

    scaled = _to_pil(icon).resize((icon_w, icon_h), Image.LANCZOS)
    offset = ((size - icon_w) // 2, (size - icon_h) // 2)
    canvas.alpha_composite(scaled, dest=offset)
    return _from_pil(canvas)
