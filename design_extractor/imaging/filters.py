"""
Neighbourhood filters and connected-component labelling on grayscale arrays.

All 3x3 filters are evaluated on interior pixels only; the one-pixel border
of every output map is zero.
"""

from typing import List, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy import ndimage

# 4-connectivity: up, down, left, right
FOUR_CONNECTED = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)


def _has_interior(gray: np.ndarray) -> bool:
    return gray.shape[0] >= 3 and gray.shape[1] >= 3


def sobel_gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """3x3 Sobel derivatives (gx, gy) as float64 maps with a zero border."""
    g = gray.astype(np.float64)
    gx = np.zeros_like(g)
    gy = np.zeros_like(g)
    if not _has_interior(g):
        return gx, gy
    gx[1:-1, 1:-1] = (
        (g[:-2, 2:] + 2.0 * g[1:-1, 2:] + g[2:, 2:])
        - (g[:-2, :-2] + 2.0 * g[1:-1, :-2] + g[2:, :-2])
    )
    gy[1:-1, 1:-1] = (
        (g[2:, :-2] + 2.0 * g[2:, 1:-1] + g[2:, 2:])
        - (g[:-2, :-2] + 2.0 * g[:-2, 1:-1] + g[:-2, 2:])
    )
    return gx, gy


def sobel_magnitude(gray: np.ndarray, clip: int = 255) -> np.ndarray:
    """Integer gradient magnitude, truncated and clipped to `clip`."""
    gx, gy = sobel_gradients(gray)
    magnitude = np.floor(np.sqrt(gx * gx + gy * gy))
    return np.minimum(magnitude, clip).astype(np.int32)


def local_variance(gray: np.ndarray) -> np.ndarray:
    """Population variance of each 3x3 neighbourhood."""
    g = gray.astype(np.float64)
    out = np.zeros_like(g)
    if not _has_interior(g):
        return out
    out[1:-1, 1:-1] = sliding_window_view(g, (3, 3)).var(axis=(-2, -1))
    return out


def local_contrast(gray: np.ndarray) -> np.ndarray:
    """Max minus min of each 3x3 neighbourhood."""
    g = gray.astype(np.float64)
    out = np.zeros_like(g)
    if not _has_interior(g):
        return out
    windows = sliding_window_view(g, (3, 3))
    out[1:-1, 1:-1] = windows.max(axis=(-2, -1)) - windows.min(axis=(-2, -1))
    return out


def connected_component_boxes(mask: np.ndarray, min_size: int = 1) -> List[Tuple[int, int, int, int]]:
    """
    Bounding boxes of the 4-connected components of a boolean mask.

    Args:
        mask: 2D boolean array of "on" pixels
        min_size: Both box sides must be at least this many pixels

    Returns:
        List of (x, y, width, height) in label order (raster order of each
        component's first pixel)
    """
    labels, count = ndimage.label(mask, structure=FOUR_CONNECTED)
    if count == 0:
        return []

    boxes = []
    for slc in ndimage.find_objects(labels):
        if slc is None:
            continue
        rows, cols = slc
        width = cols.stop - cols.start
        height = rows.stop - rows.start
        if width < min_size or height < min_size:
            continue
        boxes.append((int(cols.start), int(rows.start), int(width), int(height)))
    return boxes
