from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    # None keeps every survivor.
    max_detections: Optional[int] = 300


def iou(a: Detection, b: Detection) -> float:
    """
    Intersection-over-union of two xyxy boxes; 0.0 when the union is empty.
    """
    xa = max(a.x0, b.x0)
    ya = max(a.y0, b.y0)
    xb = min(a.x1, b.x1)
    yb = min(a.y1, b.y1)

    inter = max(0.0, xb - xa) * max(0.0, yb - ya)
    union = a.area + b.area - inter
    if union <= 0:
        return 0.0
    return inter / union


def nms_indices(boxes: np.ndarray, scores: np.ndarray, iou_threshold: float) -> np.ndarray:
    """
    Greedy NumPy NMS over one class. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first; ties keep input order.
    """
    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(i)

        xx1 = np.maximum(x1[i], x1[order[1:]])
        yy1 = np.maximum(y1[i], y1[order[1:]])
        xx2 = np.minimum(x2[i], x2[order[1:]])
        yy2 = np.minimum(y2[i], y2[order[1:]])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        overlap = np.divide(inter, union, out=np.zeros_like(inter, dtype=np.float64), where=union > 0)

        # Survivors of this round are those not overlapping the kept box beyond the threshold.
        inds = np.where(overlap <= iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def nms(detections: Sequence[Detection], cfg: NMSConfig = NMSConfig()) -> List[Detection]:
    """
    Per-class greedy NMS. Boxes of different classes never suppress each other.

    Survivors are returned by confidence descending (stable across classes), capped
    at `cfg.max_detections`.
    """
    if not detections:
        return []

    groups: Dict[int, List[int]] = {}
    for idx, det in enumerate(detections):
        groups.setdefault(det.class_id, []).append(idx)

    kept: List[int] = []
    for idx_list in groups.values():
        idx = np.array(idx_list, dtype=np.int64)
        boxes = np.array([detections[i].as_xyxy() for i in idx_list], dtype=np.float64)
        scores = np.array([detections[i].confidence for i in idx_list], dtype=np.float64)
        keep_local = nms_indices(boxes, scores, cfg.iou_threshold)
        kept.extend(idx[keep_local].tolist())

    kept.sort(key=lambda i: (-detections[i].confidence, i))
    if cfg.max_detections is not None:
        kept = kept[: cfg.max_detections]
    return [detections[i] for i in kept]
