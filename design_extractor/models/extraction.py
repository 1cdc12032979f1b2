"""
Terminal artifact produced by the extractor.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ExtractedDesign:
    """A cropped, encoded design ready to hand to storage or indexing."""
    id: str
    category: Optional[str]
    confidence: float
    x: int
    y: int
    width: int
    height: int
    image_bytes: bytes = field(repr=False)
    content_type: str = "image/png"

    def to_dict(self) -> dict:
        """Metadata view; image bytes are reported by size only."""
        return {
            "id": self.id,
            "category": self.category,
            "confidence": self.confidence,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "content_type": self.content_type,
            "size_bytes": len(self.image_bytes),
        }
