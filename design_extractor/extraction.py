"""
Validation gate and extraction of accepted regions into standalone images.
"""

import io
from typing import List, Optional, Sequence

from design_extractor.config import get
from design_extractor.exceptions import EncodingError
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import get_logger
from design_extractor.models import EnhancedRegion, ExtractedDesign

logger = get_logger(__name__)

MIN_REGION_SIZE = get("extraction", "min_region_size")
MAX_REGION_FRACTION = get("extraction", "max_region_fraction")
MIN_DETECTION_CONFIDENCE = get("extraction", "min_detection_confidence")
MIN_CATEGORY_CONFIDENCE = get("extraction", "min_category_confidence")
CONTENT_TYPE = get("extraction", "content_type")
ID_PREFIX = get("extraction", "id_prefix")


def rejection_reason(region: EnhancedRegion, image_width: int, image_height: int) -> Optional[str]:
    """Why the gate rejects a region, or None if it passes."""
    if not region.fits_within(image_width, image_height):
        return "outside image bounds"
    if region.width < MIN_REGION_SIZE or region.height < MIN_REGION_SIZE:
        return "too small"
    if region.width > image_width * MAX_REGION_FRACTION or region.height > image_height * MAX_REGION_FRACTION:
        return "covers most of the image"
    if region.confidence < MIN_DETECTION_CONFIDENCE:
        return "low detection confidence"
    if region.category_confidence is not None and region.category_confidence < MIN_CATEGORY_CONFIDENCE:
        return "low category confidence"
    return None


def filter_regions(
    regions: Sequence[EnhancedRegion], image_width: int, image_height: int
) -> List[EnhancedRegion]:
    """
    Apply the validation gate and order survivors by detector confidence.

    Args:
        regions: Classified regions
        image_width, image_height: Source image size

    Returns:
        Accepted regions, most confident first (stable for ties)
    """
    accepted = []
    for region in regions:
        reason = rejection_reason(region, image_width, image_height)
        if reason:
            logger.debug(f"Region {region.box} rejected: {reason}")
            continue
        accepted.append(region)

    accepted.sort(key=lambda r: r.confidence, reverse=True)
    logger.info(f"Validation gate accepted {len(accepted)}/{len(regions)} regions")
    return accepted


def encode_png(crop: PixelBuffer) -> bytes:
    """Encode a crop as PNG. Raises EncodingError on failure."""
    try:
        out = io.BytesIO()
        crop.to_image().save(out, format="PNG")
        return out.getvalue()
    except (OSError, ValueError) as e:
        raise EncodingError(f"PNG encoding failed for {crop}: {e}") from e


def extract_designs(source: PixelBuffer, regions: Sequence[EnhancedRegion]) -> List[ExtractedDesign]:
    """
    Crop and encode each accepted region.

    Coordinates are clamped to the source before cropping, so every design's
    pixel size equals its reported width and height. A region that fails is
    logged and skipped; the rest are still extracted.

    Returns:
        ExtractedDesign list with ids design_1 ... design_K in output order
    """
    designs = []
    for region in regions:
        try:
            crop, (x, y, w, h) = source.crop_clamped(*region.box)
            image_bytes = encode_png(crop)
        except Exception as e:
            logger.error(f"Extraction failed for region {region.box}: {e}")
            continue

        designs.append(ExtractedDesign(
            id=f"{ID_PREFIX}{len(designs) + 1}",
            category=region.category,
            confidence=region.confidence,
            x=x, y=y, width=w, height=h,
            image_bytes=image_bytes,
            content_type=CONTENT_TYPE,
        ))

    logger.info(f"Extracted {len(designs)}/{len(regions)} designs")
    return designs
