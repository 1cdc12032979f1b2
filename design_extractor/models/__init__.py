# Shared data model

from .enums import DetectionSource, QualityLevel, SessionState
from .region import Region, EnhancedRegion
from .quality import QualityReport
from .extraction import ExtractedDesign
from .settings import PipelineSettings

__all__ = [
    # Enums
    "DetectionSource",
    "QualityLevel",
    "SessionState",
    # Regions
    "Region",
    "EnhancedRegion",
    # Results
    "QualityReport",
    "ExtractedDesign",
    # Settings
    "PipelineSettings",
]
