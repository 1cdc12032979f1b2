"""
Pipeline configuration record.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from design_extractor.config import get, get_env

# Learned-detector model file; the learned stage is skipped when unset
MODEL_PATH_ENV = "DESIGN_EXTRACTOR_MODEL_PATH"

# Engineered feature blocks occupy the first 64 + 32 + 16 dimensions
MIN_EMBEDDING_DIM = 112


class PipelineSettings(BaseModel):
    """Validated settings consumed by the detectors, merger and classifier."""
    confidence_threshold: float = Field(0.5, ge=0.0, le=1.0, description="Learned-detector score cutoff")
    nms_threshold: float = Field(0.4, ge=0.0, le=1.0, description="Learned-detector NMS IoU")
    input_size: int = Field(640, gt=0, description="Square input size fed to the learned detector")
    classifier_input_size: int = Field(224, gt=0, description="Square size crops are resized to before embedding")
    category_vocabulary: List[str] = Field(
        default_factory=lambda: [
            "logo", "text", "graphic design", "illustration", "pattern",
            "symbol", "icon", "artwork", "brand", "decoration",
        ],
        description="Categories the classifier scores",
    )
    embedding_dim: int = Field(512, ge=MIN_EMBEDDING_DIM, description="Embedding length after zero padding")
    dedup_iou_threshold: float = Field(0.5, ge=0.0, le=1.0, description="IoU above which candidates are duplicates")
    merge_nms_threshold: float = Field(0.3, ge=0.0, le=1.0, description="IoU used by the merge-stage NMS")
    class_names: List[str] = Field(default_factory=list, description="Learned-detector class labels")
    default_label: str = Field("design", description="Label for learned boxes without a class name")
    model_path: Optional[str] = Field(None, description="Path to the learned-detector model")

    @field_validator("category_vocabulary")
    @classmethod
    def validate_vocabulary(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("category_vocabulary must contain at least one category")
        if len(set(v)) != len(v):
            raise ValueError("category_vocabulary contains duplicate categories")
        return v

    @classmethod
    def from_config(cls, **overrides) -> "PipelineSettings":
        """Build settings from the [pipeline] table, applying keyword overrides on top."""
        values = {
            "confidence_threshold": get("pipeline", "confidence_threshold"),
            "nms_threshold": get("pipeline", "nms_threshold"),
            "input_size": get("pipeline", "input_size"),
            "classifier_input_size": get("pipeline", "classifier_input_size"),
            "category_vocabulary": list(get("pipeline", "category_vocabulary")),
            "embedding_dim": get("pipeline", "embedding_dim"),
            "dedup_iou_threshold": get("pipeline", "dedup_iou_threshold"),
            "merge_nms_threshold": get("pipeline", "merge_nms_threshold"),
            "class_names": list(get("pipeline", "class_names")),
            "default_label": get("pipeline", "default_label"),
            "model_path": get_env(MODEL_PATH_ENV),
        }
        values.update(overrides)
        return cls(**values)
