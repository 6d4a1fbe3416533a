from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, MalformedCandidateError, UnsupportedOutputShapeError


logger = logging.getLogger(__name__)

# Candidate axis must exceed this for a layout to be recognized.
MIN_CANDIDATES = 1000


class OutputLayout(str, Enum):
    # [1, K, N]: one row per value, one column per candidate (YOLOv8/v11 exports)
    TRANSPOSED = "transposed"
    # [1, N, K]: one row per candidate (YOLOv5/v7 exports)
    ROW_MAJOR = "row_major"


class DecodeMode(str, Enum):
    # [cx, cy, w, h, class0..classC-1], used as-is
    DIRECT = "direct"
    # [cx, cy, w, h, obj, class0..classC-1], every value through a sigmoid
    SIGMOID = "sigmoid"

    def required_width(self, num_classes: int) -> int:
        return (4 if self is DecodeMode.DIRECT else 5) + num_classes


@dataclass(frozen=True)
class Candidates:
    """
    Uniform per-candidate view of a raw output, independent of layout and mode.

    boxes: (N, 4) xyxy in model-input space
    class_scores: (N, C) per-class scores (sigmoid-transformed in SIGMOID mode)
    objectness: (N,) in SIGMOID mode, None otherwise
    """

    boxes: np.ndarray
    class_scores: np.ndarray
    objectness: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return int(self.boxes.shape[0])

    @classmethod
    def empty(cls, num_classes: int) -> "Candidates":
        return cls(
            boxes=np.zeros((0, 4), dtype=np.float32),
            class_scores=np.zeros((0, num_classes), dtype=np.float32),
        )


@dataclass(frozen=True)
class ScoredBoxes:
    boxes: np.ndarray
    scores: np.ndarray
    class_ids: np.ndarray

    def __len__(self) -> int:
        return int(self.scores.shape[0])


def classify_output_layout(shape: Sequence[int]) -> OutputLayout:
    """
    Decide the axis order of a raw `[1, dim1, dim2]` output.

    dim1 >= 4 and dim2 > 1000 -> TRANSPOSED; dim2 >= 4 and dim1 > 1000 -> ROW_MAJOR.
    """
    shape = tuple(int(d) for d in shape)
    if len(shape) != 3 or shape[0] != 1:
        raise UnsupportedOutputShapeError(shape)

    _, dim1, dim2 = shape
    if dim1 >= 4 and dim2 > MIN_CANDIDATES:
        return OutputLayout.TRANSPOSED
    if dim2 >= 4 and dim1 > MIN_CANDIDATES:
        return OutputLayout.ROW_MAJOR
    raise UnsupportedOutputShapeError(shape)


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form does not overflow for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def _require_width(width: int, required: int) -> None:
    if width < required:
        raise MalformedCandidateError(width, required)
    if width > required:
        # extra columns mean the class list is shorter than the model head
        raise ConfigurationError(
            f"Output carries {width} values per candidate but the class list and decode mode expect {required}"
        )


def decode_output(
    raw: np.ndarray,
    num_classes: int,
    mode: DecodeMode = DecodeMode.DIRECT,
    input_size: Tuple[int, int] = (640, 640),
) -> Candidates:
    """
    Turn a raw model output into `Candidates`.

    The layout tag is computed once from the shape; the per-candidate semantics come
    from `mode`, which must be chosen to match the model family. Rows too short for the
    selected mode are dropped with a warning rather than failing the request; rows wider
    than the mode and class list allow raise `ConfigurationError`.

    Args:
        raw: first output tensor of the model, shape [1, K, N] or [1, N, K]
        num_classes: length of the loaded class list
        mode: DIRECT or SIGMOID semantics
        input_size: (width, height) of the model input; scales SIGMOID boxes
    """
    p = np.asarray(raw)
    layout = classify_output_layout(p.shape)

    rows = p[0].T if layout is OutputLayout.TRANSPOSED else p[0]
    rows = rows.astype(np.float32, copy=False)
    logger.debug("Decoding output %s as %s (%d candidates)", list(p.shape), layout.value, rows.shape[0])

    try:
        _require_width(rows.shape[1], mode.required_width(num_classes))
    except MalformedCandidateError as exc:
        logger.warning("Skipping %d malformed candidates: %s", rows.shape[0], exc)
        return Candidates.empty(num_classes)

    objectness = None
    if mode is DecodeMode.DIRECT:
        cx, cy, w, h = rows[:, 0], rows[:, 1], rows[:, 2], rows[:, 3]
        class_scores = rows[:, 4 : 4 + num_classes]
    else:
        in_w, in_h = input_size
        act = _sigmoid(rows[:, : 5 + num_classes])
        cx, cy = act[:, 0] * in_w, act[:, 1] * in_h
        w, h = act[:, 2] * in_w, act[:, 3] * in_h
        objectness = act[:, 4]
        class_scores = act[:, 5 : 5 + num_classes]

    # Convert cxcywh -> xyxy
    boxes = np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)
    return Candidates(boxes=boxes, class_scores=class_scores, objectness=objectness)


def select_confident(candidates: Candidates, conf_threshold: float) -> ScoredBoxes:
    """
    Pick the best class per candidate and drop candidates under `conf_threshold`.

    Confidence is the best class score, multiplied by objectness when present.
    Candidates whose best class score is not above zero are dropped too.
    """
    if len(candidates) == 0 or candidates.class_scores.shape[1] == 0:
        return ScoredBoxes(
            boxes=np.zeros((0, 4), dtype=np.float32),
            scores=np.zeros((0,), dtype=np.float32),
            class_ids=np.zeros((0,), dtype=np.int64),
        )

    class_scores = candidates.class_scores
    class_ids = np.argmax(class_scores, axis=1)
    best = class_scores[np.arange(class_scores.shape[0]), class_ids]

    scores = best if candidates.objectness is None else candidates.objectness * best

    keep = (best > 0) & (scores >= conf_threshold)
    return ScoredBoxes(
        boxes=candidates.boxes[keep],
        scores=scores[keep],
        class_ids=class_ids[keep].astype(np.int64),
    )
