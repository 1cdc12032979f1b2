"""
Quality validation for cropped design regions.

Five independent sub-scores in [0, 1] (dimension, content, transparency,
edge sharpness, color variety) are combined into a weighted overall score
and a qualitative level. Recommendations are advisory only; nothing is
filtered on quality.
"""

from typing import Dict, Mapping

import numpy as np

from design_extractor.config import get, get_section
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import get_logger
from design_extractor.models import EnhancedRegion, QualityLevel, QualityReport

logger = get_logger(__name__)

MIN_DIMENSION = get("quality", "min_dimension")
MIN_ASPECT_RATIO = get("quality", "min_aspect_ratio")
MAX_ASPECT_RATIO = get("quality", "max_aspect_ratio")
OPAQUE_ALPHA = get("quality", "opaque_alpha")
EDGE_GRADIENT_THRESHOLD = get("quality", "edge_gradient_threshold")
COLOR_SAMPLE_CAP = get("quality", "color_sample_cap")
RECOMMENDATION_THRESHOLD = get("quality", "recommendation_threshold")

WEIGHTS: Dict[str, float] = get_section("quality", "weights")
LEVEL_THRESHOLDS: Dict[str, float] = get_section("quality", "levels")

RECOMMENDATIONS = {
    "dimension": ("dimensions", "Consider resizing the design to improve aspect ratio"),
    "content": ("content", "Design may be too sparse, consider adding more visual elements"),
    "transparency": ("transparency", "Background removal may be needed for better design extraction"),
    "edge": ("edges", "Design may be blurry, consider using higher resolution source"),
    "color": ("colors", "Consider adding more color variety to the design"),
}


def validate_dimensions(crop: PixelBuffer, nominal_width: int, nominal_height: int) -> float:
    """0 if too small, 0.3 for an extreme aspect ratio, 0.7 if the crop differs from the detected size."""
    width, height = crop.size
    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        return 0.0

    aspect_ratio = width / height
    if aspect_ratio > MAX_ASPECT_RATIO or aspect_ratio < MIN_ASPECT_RATIO:
        return 0.3

    if width != nominal_width or height != nominal_height:
        return 0.7
    return 1.0


def validate_content(crop: PixelBuffer) -> float:
    """Bucketed share of pixels that are not near-transparent."""
    ratio = float((crop.alpha > OPAQUE_ALPHA).mean())
    if ratio < 0.01:
        return 0.0
    if ratio < 0.1:
        return 0.3
    if ratio < 0.3:
        return 0.7
    return 1.0


def validate_transparency(crop: PixelBuffer) -> float:
    """Rewards a removed background: some, but not mostly, fully transparent pixels."""
    alpha = crop.alpha
    transparent = float((alpha < OPAQUE_ALPHA).mean())
    semi_transparent = float(((alpha >= OPAQUE_ALPHA) & (alpha < 255)).mean())

    if 0.1 < transparent < 0.8:
        return 1.0
    if semi_transparent > 0.1:
        return 0.8
    if transparent > 0.8:
        return 0.5
    return 0.3


def validate_edge_quality(crop: PixelBuffer) -> float:
    """Share of opaque interior pixels with a central-difference gradient above the threshold."""
    width, height = crop.size
    if width < 3 or height < 3:
        return 0.5

    gray = crop.intensity().astype(np.int32)
    grad_x = np.abs(gray[1:-1, 2:] - gray[1:-1, :-2])
    grad_y = np.abs(gray[2:, 1:-1] - gray[:-2, 1:-1])
    gradient = np.maximum(grad_x, grad_y)
    opaque = crop.alpha[1:-1, 1:-1] >= OPAQUE_ALPHA

    edge_ratio = float(((gradient > EDGE_GRADIENT_THRESHOLD) & opaque).sum()) / ((width - 2) * (height - 2))
    if edge_ratio > 0.1:
        return 1.0
    if edge_ratio > 0.05:
        return 0.7
    return 0.4


def validate_color_distribution(crop: PixelBuffer) -> float:
    """Unique 4-bit-per-channel colors among opaque pixels, relative to min(count, cap)."""
    opaque = crop.alpha >= OPAQUE_ALPHA
    count = int(opaque.sum())
    if count == 0:
        return 0.0

    quantized = (crop.rgb[opaque].astype(np.int32) >> 4)
    keys = (quantized[:, 0] << 8) | (quantized[:, 1] << 4) | quantized[:, 2]
    variety = len(np.unique(keys)) / min(count, COLOR_SAMPLE_CAP)
    if variety > 0.1:
        return 1.0
    if variety > 0.05:
        return 0.7
    return 0.4


def overall_score(sub_scores: Mapping[str, float], weights: Mapping[str, float] = WEIGHTS) -> float:
    return sum(sub_scores[name] * weights[name] for name in RECOMMENDATIONS)


def quality_level(score: float, thresholds: Mapping[str, float] = LEVEL_THRESHOLDS) -> QualityLevel:
    if score >= thresholds["excellent"]:
        return QualityLevel.EXCELLENT
    if score >= thresholds["good"]:
        return QualityLevel.GOOD
    if score >= thresholds["acceptable"]:
        return QualityLevel.ACCEPTABLE
    return QualityLevel.POOR


def recommendations_for(sub_scores: Mapping[str, float]) -> Dict[str, str]:
    """One hint per sub-score below the recommendation threshold."""
    hints = {}
    for name, (key, message) in RECOMMENDATIONS.items():
        if sub_scores[name] < RECOMMENDATION_THRESHOLD:
            hints[key] = message
    return hints


def assess_quality(crop: PixelBuffer, nominal_width: int, nominal_height: int) -> QualityReport:
    """
    Score one cropped region.

    Args:
        crop: The region's pixels as cropped from the source
        nominal_width, nominal_height: Size the detector reported for the region

    Returns:
        QualityReport with all five sub-scores, overall score and level
    """
    sub_scores = {
        "dimension": validate_dimensions(crop, nominal_width, nominal_height),
        "content": validate_content(crop),
        "transparency": validate_transparency(crop),
        "edge": validate_edge_quality(crop),
        "color": validate_color_distribution(crop),
    }
    overall = overall_score(sub_scores)
    return QualityReport(
        **sub_scores,
        overall=overall,
        level=quality_level(overall),
        recommendations=recommendations_for(sub_scores),
    )


def assess_region(source: PixelBuffer, region: EnhancedRegion) -> QualityReport:
    """Crop the region (clamped to the source) and score it against its detected size."""
    crop, _ = source.crop_clamped(*region.box)
    report = assess_quality(crop, region.width, region.height)
    logger.debug(
        f"Quality for region {region.box}: {report.overall:.2f} ({report.level.value})"
    )
    return report
