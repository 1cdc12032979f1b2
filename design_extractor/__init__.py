"""
Design region extraction core.

Locates graphical design regions in a composite mockup image, reconciles
overlapping detections, classifies and quality-scores each region, and crops
the accepted ones into standalone PNG images.

Structure:
    imaging/         PixelBuffer, clamping, Sobel / variance filters, components
    detection/       Heuristic detector, learned-detector adapter, region merger
    classification/  Embedding providers and category classifier
    quality.py       Quality validator
    extraction.py    Validation gate and extractor
    similarity.py    Cosine search helpers and vector-index contract
    pipeline.py      End-to-end composition
"""

from .exceptions import (
    DesignExtractionError,
    InvalidImageError,
    InferenceUnavailableError,
    InvalidGeometryError,
    EncodingError,
    PipelineError,
)
from .imaging import PixelBuffer
from .models import (
    DetectionSource,
    QualityLevel,
    SessionState,
    Region,
    EnhancedRegion,
    QualityReport,
    ExtractedDesign,
    PipelineSettings,
)
from .pipeline import DesignPipeline, PipelineResult

__version__ = "0.1.0"

__all__ = [
    # Exceptions
    "DesignExtractionError",
    "InvalidImageError",
    "InferenceUnavailableError",
    "InvalidGeometryError",
    "EncodingError",
    "PipelineError",
    # Data model
    "PixelBuffer",
    "DetectionSource",
    "QualityLevel",
    "SessionState",
    "Region",
    "EnhancedRegion",
    "QualityReport",
    "ExtractedDesign",
    "PipelineSettings",
    # Pipeline
    "DesignPipeline",
    "PipelineResult",
]
