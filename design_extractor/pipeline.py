"""
End-to-end design extraction for one image.

    detect (heuristic + learned) -> merge -> classify -> score -> gate -> extract

Every invocation works on its own data; the only shared state is the
inference session, which is safe to share across concurrent runs.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from design_extractor.classification import DesignClassifier, EmbeddingProvider
from design_extractor.detection import (
    InferenceSession,
    LearnedDetector,
    detect_regions,
    merge_regions,
)
from design_extractor.exceptions import (
    DesignExtractionError,
    InvalidImageError,
    PipelineError,
)
from design_extractor.extraction import extract_designs, filter_regions
from design_extractor.imaging import PixelBuffer
from design_extractor.logging_config import correlation_scope, get_logger
from design_extractor.models import (
    EnhancedRegion,
    ExtractedDesign,
    PipelineSettings,
    QualityReport,
    Region,
)
from design_extractor.quality import assess_region

logger = get_logger(__name__)

_sessions: Dict[Optional[str], InferenceSession] = {}
_sessions_lock = threading.Lock()


def get_shared_session(model_path: Optional[str]) -> InferenceSession:
    """Lazy-initialize and return the process-wide session for a model path."""
    with _sessions_lock:
        session = _sessions.get(model_path)
        if session is None:
            session = InferenceSession.from_model_path(model_path)
            _sessions[model_path] = session
        return session


@dataclass
class PipelineResult:
    """Output of one pipeline run."""
    designs: List[ExtractedDesign] = field(default_factory=list)
    regions: List[EnhancedRegion] = field(default_factory=list)  # Classified and quality-scored, before the gate
    reports: List[QualityReport] = field(default_factory=list)  # Parallel to regions
    candidates: List[Region] = field(default_factory=list)  # Raw detector output
    correlation_id: str = ""

    def to_dict(self) -> dict:
        return {
            "correlation_id": self.correlation_id,
            "designs": [d.to_dict() for d in self.designs],
            "regions": [r.to_dict() for r in self.regions],
            "reports": [r.to_dict() for r in self.reports],
            "candidate_count": len(self.candidates),
        }


class DesignPipeline:
    """
    Composes the detection, merge, classification, quality and extraction stages.

    Args:
        settings: Pipeline settings; defaults to the [pipeline] config table
        session: Inference session for the learned detector; defaults to the
            shared session for settings.model_path
        embedder: Embedding provider for the classifier; defaults to the
            engineered-feature embedder
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        session: Optional[InferenceSession] = None,
        embedder: Optional[EmbeddingProvider] = None,
    ):
        self.settings = settings or PipelineSettings.from_config()
        self.session = session if session is not None else get_shared_session(self.settings.model_path)
        self.learned_detector = LearnedDetector(self.session, self.settings)
        self.classifier = DesignClassifier(embedder, self.settings)

    def detect(self, buffer: PixelBuffer) -> List[Region]:
        """Union of heuristic and learned candidates."""
        return detect_regions(buffer) + self.learned_detector.detect(buffer)

    def score(self, buffer: PixelBuffer, regions: List[EnhancedRegion]) -> List[QualityReport]:
        """
        Attach a quality report to every region in place.

        A region whose scoring fails is logged and removed from `regions`.
        """
        scored, reports = [], []
        for region in regions:
            try:
                report = assess_region(buffer, region)
            except Exception as e:
                logger.error(f"Quality scoring failed for region {region.box}: {e}", exc_info=True)
                continue
            region.quality_score = report.overall
            region.metadata["quality"] = report.to_dict()
            scored.append(region)
            reports.append(report)
        regions[:] = scored
        return reports

    def run(self, buffer: PixelBuffer) -> PipelineResult:
        """
        Extract designs from one image.

        Raises:
            InvalidImageError: If buffer is not a PixelBuffer
            PipelineError: If an unexpected error escapes a stage (original
                exception chained as __cause__)
        """
        if not isinstance(buffer, PixelBuffer):
            raise InvalidImageError(f"Expected a PixelBuffer, got {type(buffer).__name__}")

        with correlation_scope() as cid:
            logger.info(f"Design extraction started for {buffer.width}x{buffer.height} image")
            try:
                result = self._run(buffer)
            except DesignExtractionError:
                raise
            except Exception as e:
                logger.error(f"Design extraction failed: {e}", exc_info=True)
                raise PipelineError(f"Design extraction failed: {e}") from e

            result.correlation_id = cid
            logger.info(
                f"Design extraction finished: {len(result.candidates)} candidates, "
                f"{len(result.regions)} regions, {len(result.designs)} designs"
            )
            return result

    def _run(self, buffer: PixelBuffer) -> PipelineResult:
        candidates = self.detect(buffer)
        merged = merge_regions(
            candidates,
            dedup_iou_threshold=self.settings.dedup_iou_threshold,
            nms_threshold=self.settings.merge_nms_threshold,
        )
        regions = self.classifier.classify(buffer, merged)
        reports = self.score(buffer, regions)
        accepted = filter_regions(regions, buffer.width, buffer.height)
        designs = extract_designs(buffer, accepted)
        return PipelineResult(
            designs=designs,
            regions=regions,
            reports=reports,
            candidates=candidates,
        )

    def run_image_bytes(self, data: bytes) -> PipelineResult:
        """Decode an encoded image (any format Pillow reads) and run the pipeline."""
        return self.run(PixelBuffer.from_bytes(data))

    def describe(self) -> dict:
        """Model and settings information."""
        return {
            "learned_detector": self.learned_detector.describe(),
            "embedding_dim": self.classifier.embedder.dimension,
            "category_vocabulary": list(self.settings.category_vocabulary),
        }
