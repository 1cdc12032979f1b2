"""
Semantic category assignment for merged regions.

Each category is scored with a fixed formula over one feature block of the
embedding. A block scores min(1, sum of |e_i| / divisor), e.g.
logo = 0.8 * color score with the color divisor 10. Vocabulary entries
without a formula score a flat baseline.
"""

from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from design_extractor.config import get, get_section
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import get_logger
from design_extractor.models import EnhancedRegion, PipelineSettings

from .features import (
    COLOR_BLOCK,
    EDGE_BLOCK,
    TEXTURE_BLOCK,
    EmbeddingProvider,
    FeatureEmbedder,
)

logger = get_logger(__name__)

BASELINE_SCORE = get("classifier", "baseline_score")
BLOCK_DIVISORS: Dict[str, float] = {
    block: float(divisor) for block, divisor in get_section("classifier", "block_divisors").items()
}

# category -> (block name, factor)
CATEGORY_WEIGHTS: Dict[str, Tuple[str, float]] = {
    category: (block, float(factor))
    for category, (block, factor) in get_section("classifier", "category_weights").items()
}

_BLOCKS = {"color": COLOR_BLOCK, "texture": TEXTURE_BLOCK, "edge": EDGE_BLOCK}


def block_scores(
    embedding: np.ndarray,
    divisors: Mapping[str, float] = BLOCK_DIVISORS,
) -> Dict[str, float]:
    """L1 mass of each feature block over its divisor, capped at 1."""
    return {
        name: min(1.0, float(np.abs(embedding[block]).sum()) / divisors[name])
        for name, block in _BLOCKS.items()
    }


def score_categories(
    embedding: np.ndarray,
    vocabulary: Sequence[str],
    weights: Mapping[str, Tuple[str, float]] = CATEGORY_WEIGHTS,
    baseline: float = BASELINE_SCORE,
) -> Dict[str, float]:
    """Score every vocabulary category, preserving vocabulary order."""
    block_values = block_scores(embedding)
    scores = {}
    for category in vocabulary:
        if category in weights:
            block, factor = weights[category]
            scores[category] = factor * block_values[block]
        else:
            scores[category] = baseline
    return scores


def best_category(scores: Mapping[str, float]) -> Tuple[str, float]:
    """Highest-scoring category; the earliest wins a tie."""
    best_name, best_score = None, float("-inf")
    for name, score in scores.items():
        if score > best_score:
            best_name, best_score = name, score
    if best_name is None:
        raise ValueError("Cannot pick a category from an empty score map")
    return best_name, best_score


class DesignClassifier:
    """Embeds each region's crop and assigns its best category."""

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.settings = settings or PipelineSettings.from_config()
        self.embedder = embedder or FeatureEmbedder(self.settings.embedding_dim)

    def classify_region(self, source: PixelBuffer, region: EnhancedRegion) -> EnhancedRegion:
        """
        Classify one region.

        Args:
            source: Full source image
            region: Merged region (its box is re-clamped before cropping)

        Returns:
            A new EnhancedRegion with category, category_confidence, embedding
            and classification metadata filled in
        """
        crop, box = source.crop_clamped(*region.box)
        size = self.settings.classifier_input_size
        embedding = self.embedder.embed(crop.resize(size, size))

        scores = score_categories(embedding, self.settings.category_vocabulary)
        category, confidence = best_category(scores)

        metadata = dict(region.metadata)
        metadata.update({
            "crop_box": list(box),
            "detection_method": region.detection_method,
            "category_scores": scores,
        })
        return replace(
            region,
            category=category,
            category_confidence=confidence,
            embedding=embedding,
            metadata=metadata,
        )

    def classify(self, source: PixelBuffer, regions: Sequence[EnhancedRegion]) -> List[EnhancedRegion]:
        """Classify every region; a region that fails is logged and left out."""
        classified = []
        for region in regions:
            try:
                classified.append(self.classify_region(source, region))
            except Exception as e:
                logger.error(f"Classification failed for region {region.box}: {e}", exc_info=True)

        logger.info(f"Classified {len(classified)}/{len(regions)} regions")
        return classified
