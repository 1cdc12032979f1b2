"""
Embedding providers.

FeatureEmbedder concatenates three engineered feature blocks, zero-pads to
the configured dimension and L2-normalizes:

    [0:64)    color    16-bin histograms of R, G, B and intensity
    [64:96)   texture  LBP neighbour counts, gradient magnitude, local
                       variance and local contrast, 8 bins each
    [96:112)  edge     gradient direction and magnitude over edge pixels,
                       8 bins each

SeededEmbeddingProvider is a deterministic stand-in for tests and for
callers that only need stable, unit-length vectors.
"""

import zlib
from abc import ABC, abstractmethod

import numpy as np

from design_extractor.config import get
from design_extractor.imaging import (
    PixelBuffer,
    local_contrast,
    local_variance,
    sobel_gradients,
)

COLOR_DIMS = 64
TEXTURE_DIMS = 32
EDGE_DIMS = 16
FEATURE_DIMS = COLOR_DIMS + TEXTURE_DIMS + EDGE_DIMS

COLOR_BLOCK = slice(0, COLOR_DIMS)
TEXTURE_BLOCK = slice(COLOR_DIMS, COLOR_DIMS + TEXTURE_DIMS)
EDGE_BLOCK = slice(COLOR_DIMS + TEXTURE_DIMS, FEATURE_DIMS)

DEFAULT_DIMENSION = get("pipeline", "embedding_dim")

# Feature binning from design_extractor.toml
HIST_BINS = 16
FEATURE_BINS = get("classifier", "lbp_bins")
TEXTURE_MAGNITUDE_BIN_WIDTH = get("classifier", "texture_magnitude_bin_width")
VARIANCE_BIN_WIDTH = get("classifier", "variance_bin_width")
CONTRAST_BIN_WIDTH = get("classifier", "contrast_bin_width")
EDGE_MAGNITUDE_THRESHOLD = get("classifier", "edge_magnitude_threshold")
EDGE_MAGNITUDE_BIN_WIDTH = get("classifier", "edge_magnitude_bin_width")

# (dy, dx) of the eight neighbours, clockwise from top-left
_NEIGHBOUR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1), (0, 1),
    (1, 1), (1, 0), (1, -1), (0, -1),
)


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


class EmbeddingProvider(ABC):
    """Maps an image to a fixed-length, unit-normalized vector."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        ...

    @abstractmethod
    def embed(self, buffer: PixelBuffer) -> np.ndarray:
        ...


def _binned_fraction(values: np.ndarray, bin_width: float, bins: int, total: int) -> np.ndarray:
    """Histogram of values // bin_width (last bin absorbs overflow), divided by total."""
    if total == 0 or values.size == 0:
        return np.zeros(bins, dtype=np.float64)
    index = np.minimum((values // bin_width).astype(np.int64), bins - 1)
    return np.bincount(index.ravel(), minlength=bins)[:bins] / total


def color_features(buffer: PixelBuffer) -> np.ndarray:
    """Normalized 16-bin histograms of R, G, B and intensity."""
    channels = [buffer.rgb[:, :, i] for i in range(3)] + [buffer.intensity()]
    total = buffer.width * buffer.height
    hists = [
        np.bincount((c.astype(np.int64) >> 4).ravel(), minlength=HIST_BINS) / total
        for c in channels
    ]
    return np.concatenate(hists)


def texture_features(buffer: PixelBuffer) -> np.ndarray:
    """LBP, gradient magnitude, local variance and local contrast over interior pixels."""
    gray = buffer.intensity().astype(np.float64)
    h, w = gray.shape
    if h < 3 or w < 3:
        return np.zeros(TEXTURE_DIMS, dtype=np.float64)
    total = (h - 2) * (w - 2)

    center = gray[1:-1, 1:-1]
    lbp = np.array([
        float((gray[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx] > center).sum()) / total
        for dy, dx in _NEIGHBOUR_OFFSETS
    ])

    gx, gy = sobel_gradients(gray)
    magnitude = np.sqrt(gx * gx + gy * gy)[1:-1, 1:-1]
    variance = local_variance(gray)[1:-1, 1:-1]
    contrast = local_contrast(gray)[1:-1, 1:-1]

    return np.concatenate([
        lbp,
        _binned_fraction(magnitude, TEXTURE_MAGNITUDE_BIN_WIDTH, FEATURE_BINS, total),
        _binned_fraction(variance, VARIANCE_BIN_WIDTH, FEATURE_BINS, total),
        _binned_fraction(contrast, CONTRAST_BIN_WIDTH, FEATURE_BINS, total),
    ])


def edge_features(buffer: PixelBuffer) -> np.ndarray:
    """Direction and magnitude histograms of strong-gradient interior pixels."""
    gray = buffer.intensity().astype(np.float64)
    h, w = gray.shape
    if h < 3 or w < 3:
        return np.zeros(EDGE_DIMS, dtype=np.float64)
    total = (h - 2) * (w - 2)

    gx, gy = sobel_gradients(gray)
    gx, gy = gx[1:-1, 1:-1], gy[1:-1, 1:-1]
    magnitude = np.sqrt(gx * gx + gy * gy)
    edges = magnitude > EDGE_MAGNITUDE_THRESHOLD

    theta = np.arctan2(gy[edges], gx[edges])
    direction = ((theta + np.pi) / (2 * np.pi) * FEATURE_BINS).astype(np.int64) % FEATURE_BINS
    direction_hist = np.bincount(direction, minlength=FEATURE_BINS) / total

    return np.concatenate([
        direction_hist,
        _binned_fraction(magnitude[edges], EDGE_MAGNITUDE_BIN_WIDTH, FEATURE_BINS, total),
    ])


class FeatureEmbedder(EmbeddingProvider):
    """Engineered color / texture / edge features."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION):
        if dimension < FEATURE_DIMS:
            raise ValueError(f"Embedding dimension must be at least {FEATURE_DIMS}, got {dimension}")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, buffer: PixelBuffer) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float64)
        vector[COLOR_BLOCK] = color_features(buffer)
        vector[TEXTURE_BLOCK] = texture_features(buffer)
        vector[EDGE_BLOCK] = edge_features(buffer)
        return l2_normalize(vector)


class SeededEmbeddingProvider(EmbeddingProvider):
    """Deterministic pseudo-random unit vectors keyed on a seed and the pixel content."""

    def __init__(self, seed: int = 42, dimension: int = DEFAULT_DIMENSION):
        self.seed = seed
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, buffer: PixelBuffer) -> np.ndarray:
        digest = zlib.crc32(buffer.array.tobytes())
        rng = np.random.default_rng([self.seed, buffer.width, buffer.height, digest])
        return l2_normalize(rng.standard_normal(self._dimension))
