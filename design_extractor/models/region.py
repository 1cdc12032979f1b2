"""
Region types shared by every pipeline stage.

Detectors emit Region; the merger converts survivors into EnhancedRegion
shells which the classifier and quality validator then fill in.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .enums import DetectionSource


@dataclass
class Region:
    """An axis-aligned candidate box in source-image pixel coordinates."""
    x: int  # Left coordinate
    y: int  # Top coordinate
    width: int
    height: int
    confidence: float = 1.0
    label: str = ""  # Strategy tag, e.g. "edge_detected", or the learned class name
    source: DetectionSource = DetectionSource.HEURISTIC

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        """Returns (left, top, right, bottom) for PIL crop."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Returns (x, y, width, height)."""
        return (self.x, self.y, self.width, self.height)

    def fits_within(self, image_width: int, image_height: int) -> bool:
        """True if the box is non-empty and lies entirely inside the image."""
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= image_width
            and self.y + self.height <= image_height
        )

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "confidence": self.confidence,
            "label": self.label,
            "source": self.source.value,
        }


@dataclass
class EnhancedRegion(Region):
    """A merged region plus classification, embedding and quality results."""
    detection_method: str = ""
    category: Optional[str] = None
    category_confidence: Optional[float] = None
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    quality_score: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_region(cls, region: Region) -> "EnhancedRegion":
        """Build an unclassified shell carrying only the core box fields and provenance."""
        return cls(
            x=region.x,
            y=region.y,
            width=region.width,
            height=region.height,
            confidence=region.confidence,
            label=region.label,
            source=region.source,
            detection_method=region.source.value,
        )

    def to_region(self) -> Region:
        return Region(
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            confidence=self.confidence,
            label=self.label,
            source=self.source,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "detection_method": self.detection_method,
            "category": self.category,
            "category_confidence": self.category_confidence,
            "quality_score": self.quality_score,
            "metadata": self.metadata,
        })
        return data
