"""RGBA pixel buffer shared by every stage of the pipeline."""

from typing import Optional, Tuple, Union

import numpy as np


RGB = Tuple[int, int, int]


class PixelBuffer:
    """
    A width x height RGBA raster with 8-bit channels.

    Pixels are stored row-major with a top-left origin, backed by a
    ``(height, width, 4)`` uint8 array. Filters never mutate a buffer they
    receive; they work on ``copy()`` and return the new buffer.

    Example:
        buf = PixelBuffer.blank(10, 10, (255, 0, 0, 255))
        alpha = buf.alpha
        faded = buf.with_alpha(alpha // 2)
    """

    def __init__(
        self,
        width: int,
        height: int,
        data: Optional[Union[bytes, bytearray, np.ndarray]] = None
    ):
        """
        Create a buffer.

        Args:
            width: Width in pixels.
            height: Height in pixels.
            data: Optional RGBA bytes or array holding exactly
                  ``width * height * 4`` values. Zero-filled when omitted.

        Raises:
            ValueError: If the dimensions are negative or the data length
                        does not match them.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Invalid buffer size: {width}x{height}")

        if data is None:
            pixels = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            if isinstance(data, (bytes, bytearray)):
                flat = np.frombuffer(bytes(data), dtype=np.uint8)
            else:
                flat = np.asarray(data)
                if flat.dtype != np.uint8:
                    flat = np.clip(flat, 0, 255).astype(np.uint8)
                flat = flat.reshape(-1)
            expected = width * height * 4
            if flat.size != expected:
                raise ValueError(
                    f"Data length {flat.size} does not match {width}x{height}x4 = {expected}"
                )
            pixels = flat.reshape(height, width, 4).copy()

        self._pixels = pixels

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from an image array.

        Args:
            array: (H, W, 4) RGBA or (H, W, 3) RGB array. RGB input is
                   treated as fully opaque.

        Returns:
            A new buffer owning a copy of the pixels.
        """
        arr = np.asarray(array)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported array shape: {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)

        buf = cls.__new__(cls)
        buf._pixels = np.ascontiguousarray(arr).copy()
        return buf

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, int, int, int] = (0, 0, 0, 0)
    ) -> "PixelBuffer":
        """Create a buffer filled with a single RGBA color."""
        buf = cls(width, height)
        buf._pixels[:, :] = color
        return buf

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) pair."""
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """The (H, W, 4) uint8 backing array."""
        return self._pixels

    @property
    def data(self) -> np.ndarray:
        """Flat row-major RGBA view of length ``width * height * 4``."""
        return self._pixels.reshape(-1)

    @property
    def rgb(self) -> np.ndarray:
        return self._pixels[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        """Copy of the alpha channel as an (H, W) uint8 mask."""
        return self._pixels[:, :, 3].copy()

    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def brightness(self) -> np.ndarray:
        """Unweighted mean of R, G and B per pixel, as float64 (H, W)."""
        return self._pixels[:, :, :3].astype(np.float64).sum(axis=2) / 3.0

    def copy(self) -> "PixelBuffer":
        return PixelBuffer.from_array(self._pixels)

    def with_alpha(self, alpha: np.ndarray) -> "PixelBuffer":
        """
        Return a new buffer with the same RGB and a replaced alpha channel.

        Args:
            alpha: (H, W) array; values are rounded and clamped to 0-255.
        """
        alpha = np.asarray(alpha)
        if alpha.shape != (self.height, self.width):
            raise ValueError(
                f"Alpha shape {alpha.shape} does not match buffer {self.height}x{self.width}"
            )
        out = self.copy()
        out._pixels[:, :, 3] = to_alpha(alpha)
        return out

    def to_bytes(self) -> bytes:
        return self._pixels.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and bool(
            np.array_equal(self._pixels, other._pixels)
        )

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"


def to_alpha(values: np.ndarray) -> np.ndarray:
    """Round half-up and clamp arbitrary numeric values into uint8 alpha."""
    values = np.asarray(values)
    if values.dtype == np.uint8:
        return values.copy()
    rounded = np.floor(values.astype(np.float64) + 0.5)
    return np.clip(rounded, 0, 255).astype(np.uint8)
