"""
Similarity search over design embeddings.

The pipeline never calls into an index itself; these helpers let callers
compare embeddings and store them behind the upsert/query contract that an
external vector database would implement.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from design_extractor.classification import EmbeddingProvider, FeatureEmbedder
from design_extractor.config import get
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import get_logger

logger = get_logger(__name__)

MIN_SIMILARITY = get("similarity", "min_similarity")
DEFAULT_TOP_K = get("similarity", "default_top_k")


@dataclass
class SimilarityMatch:
    """One ranked search hit."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"id": self.id, "score": self.score, "metadata": self.metadata}


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two vectors; 0 for mismatched lengths or zero vectors."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        return 0.0
    norm = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.dot(a, b)) / norm


def find_similar(
    query: np.ndarray,
    candidates: Iterable[Tuple[str, np.ndarray, Dict[str, Any]]],
    top_k: int = DEFAULT_TOP_K,
    min_similarity: float = MIN_SIMILARITY,
) -> List[SimilarityMatch]:
    """
    Rank candidates by cosine similarity to the query.

    Args:
        query: Query embedding
        candidates: (id, embedding, metadata) triples
        top_k: Maximum number of matches to return
        min_similarity: Only matches scoring strictly above this are kept

    Returns:
        SimilarityMatch list, best first (input order among equal scores)
    """
    if top_k <= 0:
        return []
    matches = []
    for candidate_id, vector, metadata in candidates:
        score = cosine_similarity(query, vector)
        if score <= min_similarity:
            continue
        matches.append(SimilarityMatch(id=candidate_id, score=score, metadata=dict(metadata or {})))
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:top_k]


def compare_designs(
    first: PixelBuffer,
    second: PixelBuffer,
    embedder: Optional[EmbeddingProvider] = None,
) -> float:
    """Cosine similarity of two images under the given embedder."""
    embedder = embedder or FeatureEmbedder()
    score = cosine_similarity(embedder.embed(first), embedder.embed(second))
    logger.debug(f"Design similarity score: {score:.4f}")
    return score


class VectorIndex(ABC):
    """Contract of the external vector index used for long-term similarity search."""

    @abstractmethod
    def upsert(self, id: str, vector: np.ndarray, metadata: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def query(self, vector: np.ndarray, top_k: int) -> List[SimilarityMatch]:
        ...


class InMemoryVectorIndex(VectorIndex):
    """Thread-safe in-process index with exact cosine ranking."""

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._entries: Dict[str, Tuple[np.ndarray, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def upsert(self, id: str, vector: np.ndarray, metadata: Dict[str, Any]) -> None:
        vector = np.asarray(vector, dtype=np.float64).ravel()
        with self._lock:
            if self.dimension is None:
                self.dimension = vector.shape[0]
            if vector.shape[0] != self.dimension:
                raise ValueError(
                    f"Vector for '{id}' has dimension {vector.shape[0]}, index expects {self.dimension}"
                )
            self._entries[id] = (vector.copy(), dict(metadata or {}))

    def query(
        self, vector: np.ndarray, top_k: int, min_similarity: float = float("-inf")
    ) -> List[SimilarityMatch]:
        with self._lock:
            snapshot = [(key, vec, meta) for key, (vec, meta) in self._entries.items()]
        return find_similar(vector, snapshot, top_k=top_k, min_similarity=min_similarity)

    def delete(self, id: str) -> bool:
        with self._lock:
            return self._entries.pop(id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
