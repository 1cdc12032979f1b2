# Candidate detection and merging

from .heuristic import (
    detect_regions,
    detect_edge_regions,
    detect_color_regions,
    detect_texture_regions,
    dominant_colors,
)
from .learned import (
    InferenceSession,
    LearnedDetector,
    decode_output,
    onnx_loader,
    preprocess,
)
from .merge import deduplicate, iou, merge_regions, non_maximum_suppression

__all__ = [
    # Heuristic
    "detect_regions",
    "detect_edge_regions",
    "detect_color_regions",
    "detect_texture_regions",
    "dominant_colors",
    # Learned
    "InferenceSession",
    "LearnedDetector",
    "decode_output",
    "onnx_loader",
    "preprocess",
    # Merge
    "deduplicate",
    "iou",
    "merge_regions",
    "non_maximum_suppression",
]
