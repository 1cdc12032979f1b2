"""
Reconcile heuristic and learned candidates into one region set.

Two passes with different IoU thresholds: a pairwise duplicate
filter (0.5 by default) followed by greedy non-maximum suppression (0.3).
"""

from typing import List, Sequence

from design_extractor.config import get
from design_extractor.logging_config import get_logger
from design_extractor.models import DetectionSource, EnhancedRegion, Region

logger = get_logger(__name__)

DEDUP_IOU_THRESHOLD = get("pipeline", "dedup_iou_threshold")
MERGE_NMS_THRESHOLD = get("pipeline", "merge_nms_threshold")


def iou(box_a: Sequence[float], box_b: Sequence[float]) -> float:
    """Intersection-over-union of two (x, y, width, height) boxes; 0 if either is empty."""
    ax, ay, aw, ah = box_a
    bx, by, bw, bh = box_b
    if aw <= 0 or ah <= 0 or bw <= 0 or bh <= 0:
        return 0.0
    inter_w = max(0, min(ax + aw, bx + bw) - max(ax, bx))
    inter_h = max(0, min(ay + ah, by + bh) - max(ay, by))
    inter = inter_w * inter_h
    union = aw * ah + bw * bh - inter
    if union <= 0:
        return 0.0
    return inter / union


def deduplicate(candidates: Sequence[Region], iou_threshold: float = DEDUP_IOU_THRESHOLD) -> List[Region]:
    """
    Drop candidates that duplicate one already accepted.

    Learned candidates are considered before heuristic ones (each group in
    input order); the first accepted box of a duplicate pair wins.
    """
    ordered = [c for c in candidates if c.source == DetectionSource.LEARNED]
    ordered += [c for c in candidates if c.source != DetectionSource.LEARNED]

    accepted: List[Region] = []
    for candidate in ordered:
        if any(iou(candidate.box, kept.box) > iou_threshold for kept in accepted):
            logger.debug(f"Duplicate {candidate.label} candidate {candidate.box} dropped")
            continue
        accepted.append(candidate)
    return accepted


def non_maximum_suppression(regions: Sequence[Region], iou_threshold: float) -> List[Region]:
    """
    Greedy NMS: keep the most confident box of every overlapping cluster.

    The sort is stable, so equally confident boxes keep their input order.
    """
    order = sorted(regions, key=lambda r: r.confidence, reverse=True)
    keep: List[Region] = []
    while order:
        current = order.pop(0)
        keep.append(current)
        order = [r for r in order if iou(current.box, r.box) <= iou_threshold]
    return keep


def merge_regions(
    candidates: Sequence[Region],
    dedup_iou_threshold: float = DEDUP_IOU_THRESHOLD,
    nms_threshold: float = MERGE_NMS_THRESHOLD,
) -> List[EnhancedRegion]:
    """
    Deduplicate, suppress, and wrap survivors as unclassified EnhancedRegion shells.

    Idempotent: merging the output again returns an equal list, because no
    surviving pair overlaps above either threshold.

    Args:
        candidates: Union of heuristic and learned candidates
        dedup_iou_threshold: IoU above which two candidates are duplicates
        nms_threshold: IoU above which NMS suppresses the less confident box

    Returns:
        EnhancedRegion list ordered by descending confidence
    """
    unique = deduplicate(candidates, dedup_iou_threshold)
    survivors = non_maximum_suppression(unique, nms_threshold)
    merged = [EnhancedRegion.from_region(r) for r in survivors]
    logger.info(
        f"Merged {len(candidates)} candidates into {len(merged)} regions "
        f"({len(candidates) - len(unique)} duplicates, {len(unique) - len(merged)} suppressed)"
    )
    return merged
