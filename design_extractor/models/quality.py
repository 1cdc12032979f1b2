"""
Quality report model.
"""

from dataclasses import dataclass, field
from typing import Dict

from .enums import QualityLevel


@dataclass(frozen=True)
class QualityReport:
    """Five sub-scores in [0, 1], their weighted overall score and advisory hints."""
    dimension: float
    content: float
    transparency: float
    edge: float
    color: float
    overall: float
    level: QualityLevel
    recommendations: Dict[str, str] = field(default_factory=dict)

    @property
    def sub_scores(self) -> Dict[str, float]:
        return {
            "dimension": self.dimension,
            "content": self.content,
            "transparency": self.transparency,
            "edge": self.edge,
            "color": self.color,
        }

    def to_dict(self) -> dict:
        return {
            **self.sub_scores,
            "overall": self.overall,
            "level": self.level.value,
            "recommendations": dict(self.recommendations),
        }
