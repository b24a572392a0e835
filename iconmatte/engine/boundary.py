"""
Boundary classification shared by the edge filters.

An *outer edge* pixel is an opaque or semi-opaque pixel with at least one
fully transparent 8-neighbor. Only pixels strictly inside the image frame
are classified; the outermost rows and columns never count as edges.
"""

import numpy as np


NEIGHBOR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


def neighbor_stack(values: np.ndarray, fill) -> np.ndarray:
    """
    Stack the 8 neighbors of every pixel.

    Args:
        values: (H, W) array.
        fill: Value used for neighbors outside the image.

    Returns:
        (8, H, W) array, one slice per offset in NEIGHBOR_OFFSETS.
    """
    h, w = values.shape
    padded = np.pad(values, 1, mode="constant", constant_values=fill)
    return np.stack([
        padded[1 + dy:1 + dy + h, 1 + dx:1 + dx + w]
        for dy, dx in NEIGHBOR_OFFSETS
    ])


def frame_interior(shape) -> np.ndarray:
    """Boolean mask that is False on the outermost row/column ring."""
    h, w = shape
    inner = np.zeros((h, w), dtype=bool)
    if h > 2 and w > 2:
        inner[1:-1, 1:-1] = True
    return inner


def transparent_neighbor_mask(alpha: np.ndarray) -> np.ndarray:
    """Frame-interior pixels that have at least one alpha == 0 8-neighbor."""
    if alpha.size == 0:
        return np.zeros(alpha.shape, dtype=bool)
    # Out-of-frame neighbors are never consulted for interior pixels.
    has_transparent = (neighbor_stack(alpha, fill=255) == 0).any(axis=0)
    return has_transparent & frame_interior(alpha.shape)


def outer_edge_mask(alpha: np.ndarray) -> np.ndarray:
    """
    Classify outer-edge pixels of an alpha mask.

    Args:
        alpha: (H, W) uint8 alpha channel.

    Returns:
        Boolean (H, W) mask, True where alpha > 0 and some 8-neighbor is
        fully transparent.
    """
    return (alpha > 0) & transparent_neighbor_mask(alpha)
