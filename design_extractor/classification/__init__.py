# Embeddings and category classification

from .features import (
    EmbeddingProvider,
    FeatureEmbedder,
    SeededEmbeddingProvider,
    color_features,
    texture_features,
    edge_features,
    l2_normalize,
)
from .classifier import DesignClassifier, block_scores, score_categories, best_category

__all__ = [
    # Embedding providers
    "EmbeddingProvider",
    "FeatureEmbedder",
    "SeededEmbeddingProvider",
    "color_features",
    "texture_features",
    "edge_features",
    "l2_normalize",
    # Classifier
    "DesignClassifier",
    "block_scores",
    "score_categories",
    "best_category",
]
