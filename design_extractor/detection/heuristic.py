"""
Heuristic design-region detection on raw pixels.

Three independent strategies each propose candidate boxes with a fixed
provisional confidence and a label naming the strategy:

1. Edge density: Sobel magnitude, binarized, grouped into 4-connected
   components, kept when the box is dense enough in edge pixels
2. Color contrast: non-background pixels (far from every dominant color)
   grouped into components, kept when the neighbourhood has enough contrast
3. Texture variance: 3x3 local variance, binarized, grouped, kept when the
   box itself has enough luma variance

Given identical pixels and thresholds the output is identical; there is no
randomness anywhere in this module.
"""

from typing import Callable, List, Sequence, Tuple

import numpy as np

from design_extractor.config import get
from design_extractor.imaging import (
    PixelBuffer,
    connected_component_boxes,
    local_variance,
    sobel_magnitude,
)
from design_extractor.logging_config import get_logger
from design_extractor.models import DetectionSource, Region

logger = get_logger(__name__)

# Edge strategy parameters from design_extractor.toml
EDGE_MAGNITUDE_THRESHOLD = get("heuristic", "edge", "magnitude_threshold")
EDGE_MIN_DENSITY = get("heuristic", "edge", "min_edge_density")
EDGE_MIN_SIZE = get("heuristic", "edge", "min_size")
EDGE_CONFIDENCE = get("heuristic", "edge", "confidence")

# Color strategy parameters from design_extractor.toml
COLOR_SAMPLE_STEP = get("heuristic", "color", "sample_step")
COLOR_QUANTIZE_BITS = get("heuristic", "color", "quantize_bits")
COLOR_DOMINANT_COUNT = get("heuristic", "color", "dominant_count")
COLOR_MIN_DOMINANT_SHARE = get("heuristic", "color", "min_dominant_share")
COLOR_DISTANCE_THRESHOLD = get("heuristic", "color", "distance_threshold")
COLOR_MIN_SIZE = get("heuristic", "color", "min_size")
COLOR_CONTRAST_MARGIN = get("heuristic", "color", "contrast_margin")
COLOR_MIN_CONTRAST_RATIO = get("heuristic", "color", "min_contrast_ratio")
COLOR_CONFIDENCE = get("heuristic", "color", "confidence")

# Texture strategy parameters from design_extractor.toml
TEXTURE_VARIANCE_THRESHOLD = get("heuristic", "texture", "variance_threshold")
TEXTURE_MIN_SIZE = get("heuristic", "texture", "min_size")
TEXTURE_MIN_REGION_VARIANCE = get("heuristic", "texture", "min_region_variance")
TEXTURE_CONFIDENCE = get("heuristic", "texture", "confidence")

EDGE_LABEL = "edge_detected"
COLOR_LABEL = "color_detected"
TEXTURE_LABEL = "texture_detected"


def detect_edge_regions(
    buffer: PixelBuffer,
    magnitude_threshold: int = EDGE_MAGNITUDE_THRESHOLD,
    min_edge_density: float = EDGE_MIN_DENSITY,
    min_size: int = EDGE_MIN_SIZE,
    confidence: float = EDGE_CONFIDENCE,
) -> List[Region]:
    """
    Find regions outlined by strong luma gradients.

    Args:
        buffer: Source image
        magnitude_threshold: Sobel magnitude (0-255) above which a pixel is an edge
        min_edge_density: Fraction of edge pixels the box must exceed
        min_size: Minimum box width and height in pixels
        confidence: Provisional confidence assigned to every result

    Returns:
        List of Region objects labelled "edge_detected"
    """
    edges = sobel_magnitude(buffer.luminance()) > magnitude_threshold

    regions = []
    for x, y, w, h in connected_component_boxes(edges, min_size=min_size):
        density = float(edges[y:y + h, x:x + w].mean())
        if density <= min_edge_density:
            logger.debug(f"Edge candidate ({x}, {y}, {w}, {h}) dropped: density {density:.3f}")
            continue
        regions.append(Region(
            x=x, y=y, width=w, height=h,
            confidence=confidence,
            label=EDGE_LABEL,
            source=DetectionSource.HEURISTIC,
        ))

    logger.info(f"Edge-based detection found {len(regions)} regions")
    return regions


def dominant_colors(
    rgb: np.ndarray,
    sample_step: int = COLOR_SAMPLE_STEP,
    quantize_bits: int = COLOR_QUANTIZE_BITS,
    dominant_count: int = COLOR_DOMINANT_COUNT,
    min_share: float = COLOR_MIN_DOMINANT_SHARE,
) -> List[Tuple[int, int, int]]:
    """
    Background color candidates from a down-sampled, quantized histogram.

    Takes the `dominant_count` most frequent bins (ties broken by bin value)
    and keeps those covering at least `min_share` of the samples. Each color
    is returned as the centre of its bin.
    """
    samples = rgb[::sample_step, ::sample_step].reshape(-1, 3).astype(np.int32)
    if samples.size == 0:
        return []

    shift = 8 - quantize_bits
    bins = samples >> shift
    keys = (bins[:, 0] << (2 * quantize_bits)) | (bins[:, 1] << quantize_bits) | bins[:, 2]
    values, counts = np.unique(keys, return_counts=True)

    order = sorted(range(len(values)), key=lambda i: (-int(counts[i]), int(values[i])))
    total = len(keys)
    mask = (1 << quantize_bits) - 1
    half_bin = (1 << shift) // 2

    colors = []
    for i in order[:dominant_count]:
        if counts[i] / total < min_share:
            continue
        key = int(values[i])
        channels = ((key >> (2 * quantize_bits)) & mask, (key >> quantize_bits) & mask, key & mask)
        colors.append(tuple((c << shift) + half_bin for c in channels))
    return colors


def _local_contrast_ratio(intensity: np.ndarray, x: int, y: int, w: int, h: int, margin: int) -> float:
    """(max - min) / max of intensity over the box grown by `margin`, clamped to the image."""
    img_h, img_w = intensity.shape
    x0, y0 = max(0, x - margin), max(0, y - margin)
    x1, y1 = min(img_w, x + w + margin), min(img_h, y + h + margin)
    window = intensity[y0:y1, x0:x1]
    high = float(window.max())
    if high <= 0:
        return 0.0
    return (high - float(window.min())) / high


def detect_color_regions(
    buffer: PixelBuffer,
    distance_threshold: float = COLOR_DISTANCE_THRESHOLD,
    min_size: int = COLOR_MIN_SIZE,
    contrast_margin: int = COLOR_CONTRAST_MARGIN,
    min_contrast_ratio: float = COLOR_MIN_CONTRAST_RATIO,
    confidence: float = COLOR_CONFIDENCE,
) -> List[Region]:
    """
    Find contiguous areas whose color differs from the dominant background colors.

    Args:
        buffer: Source image
        distance_threshold: RGB distance below which a pixel matches a background color
        min_size: Minimum box width and height in pixels
        contrast_margin: Pixels added around the box when measuring contrast
        min_contrast_ratio: Local contrast the box neighbourhood must exceed
        confidence: Provisional confidence assigned to every result

    Returns:
        List of Region objects labelled "color_detected"
    """
    rgb = buffer.rgb
    background = dominant_colors(rgb)
    if not background:
        logger.info("Color-based detection found 0 regions (no dominant background color)")
        return []

    pixels = rgb.astype(np.float64)
    is_background = np.zeros(rgb.shape[:2], dtype=bool)
    for color in background:
        distance = np.sqrt(((pixels - np.array(color, dtype=np.float64)) ** 2).sum(axis=2))
        is_background |= distance < distance_threshold

    intensity = buffer.intensity()
    regions = []
    for x, y, w, h in connected_component_boxes(~is_background, min_size=min_size):
        contrast = _local_contrast_ratio(intensity, x, y, w, h, contrast_margin)
        if contrast <= min_contrast_ratio:
            logger.debug(f"Color candidate ({x}, {y}, {w}, {h}) dropped: contrast {contrast:.3f}")
            continue
        regions.append(Region(
            x=x, y=y, width=w, height=h,
            confidence=confidence,
            label=COLOR_LABEL,
            source=DetectionSource.HEURISTIC,
        ))

    logger.info(f"Color-based detection found {len(regions)} regions")
    return regions


def detect_texture_regions(
    buffer: PixelBuffer,
    variance_threshold: float = TEXTURE_VARIANCE_THRESHOLD,
    min_size: int = TEXTURE_MIN_SIZE,
    min_region_variance: float = TEXTURE_MIN_REGION_VARIANCE,
    confidence: float = TEXTURE_CONFIDENCE,
) -> List[Region]:
    """
    Find textured areas from the 3x3 local-variance map.

    Args:
        buffer: Source image
        variance_threshold: Local variance above which a pixel counts as textured
        min_size: Minimum box width and height in pixels
        min_region_variance: Luma variance the whole box must exceed
        confidence: Provisional confidence assigned to every result

    Returns:
        List of Region objects labelled "texture_detected"
    """
    gray = buffer.luminance()
    textured = local_variance(gray) > variance_threshold

    regions = []
    for x, y, w, h in connected_component_boxes(textured, min_size=min_size):
        variance = float(gray[y:y + h, x:x + w].astype(np.float64).var())
        if variance <= min_region_variance:
            logger.debug(f"Texture candidate ({x}, {y}, {w}, {h}) dropped: variance {variance:.1f}")
            continue
        regions.append(Region(
            x=x, y=y, width=w, height=h,
            confidence=confidence,
            label=TEXTURE_LABEL,
            source=DetectionSource.HEURISTIC,
        ))

    logger.info(f"Texture-based detection found {len(regions)} regions")
    return regions


def detect_regions(buffer: PixelBuffer) -> List[Region]:
    """
    Main entry point: run every strategy and union the candidates.

    A strategy that raises is logged and contributes no candidates; the
    others still run.

    Returns:
        Edge, then color, then texture candidates
    """
    strategies: Sequence[Tuple[str, Callable[[PixelBuffer], List[Region]]]] = (
        ("edge", detect_edge_regions),
        ("color", detect_color_regions),
        ("texture", detect_texture_regions),
    )

    candidates: List[Region] = []
    for name, strategy in strategies:
        try:
            candidates.extend(strategy(buffer))
        except Exception as e:
            logger.error(f"{name.capitalize()}-based detection failed: {e}", exc_info=True)

    logger.info(
        f"Heuristic detection on {buffer.width}x{buffer.height} image: "
        f"{len(candidates)} candidates"
    )
    return candidates
