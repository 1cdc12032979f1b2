"""
Enum definitions shared by the pipeline stages.
"""

from enum import Enum


class DetectionSource(str, Enum):
    """Which detector family proposed a region."""
    HEURISTIC = "heuristic"  # Edge / color / texture pixel analysis
    LEARNED = "learned"  # Decoded from the external detector's output tensor


class QualityLevel(str, Enum):
    """Qualitative band derived from the overall quality score."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"


class SessionState(str, Enum):
    """Lifecycle of the shared inference session."""
    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"
    FAILED = "FAILED"  # Stays failed until reset() re-arms it
