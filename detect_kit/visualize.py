from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Tuple

import numpy as np

from .errors import ImageEncodeError
from .types import BoundingBox, Detection

Color = Tuple[int, int, int]

PALETTE_HEX = (
    "#FF0000", "#00FF00", "#0000FF", "#FFFF00", "#00FFFF", "#FF00FF",
    "#FFA500", "#FFC0CB", "#800080", "#008000", "#808000", "#008080",
    "#800000", "#000080", "#C0C0C0", "#808080", "#FFD700", "#FF6347",
    "#4682B4", "#90EE90", "#FF7F50", "#DDA0DD", "#98FB98", "#F08080",
    "#20B2AA", "#FFB6C1", "#87CEFA", "#9370DB", "#3CB371", "#7B68EE",
)

# Labels whose baseline would land above this row are drawn below the box corner.
LABEL_MIN_Y = 10
LABEL_GAP = 5


def _hex_to_bgr(value: str) -> Color:
    value = value.lstrip("#")
    r, g, b = int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    return b, g, r


_PALETTE_BGR = tuple(_hex_to_bgr(h) for h in PALETTE_HEX)


def palette_color(class_id: int) -> Color:
    """Cycle through a fixed table of distinct colors (BGR)."""
    return _PALETTE_BGR[int(class_id) % len(_PALETTE_BGR)]


def hashed_color(class_id: int) -> Color:
    """Derive a stable BGR color from the class id."""
    n = int(class_id) + 1
    r = (n * 37) % 255
    g = (n * 57) % 255
    b = (n * 79) % 255
    return b, g, r


COLOR_STRATEGIES: Dict[str, Callable[[int], Color]] = {
    "palette": palette_color,
    "hash": hashed_color,
}


def color_strategy(name: str) -> Callable[[int], Color]:
    try:
        return COLOR_STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown color strategy {name!r}; expected one of {sorted(COLOR_STRATEGIES)}") from None


def line_thickness(width: int, height: int, ratio: int) -> int:
    return max(1, min(width, height) // max(1, int(ratio)))


def format_label(det) -> str:
    return f"{det.class_name} {det.confidence:.2f}"


def to_bounding_boxes(
    detections: Iterable[Detection],
    color_fn: Callable[[int], Color] = palette_color,
) -> List[BoundingBox]:
    return [
        BoundingBox(
            x0=int(det.x0),
            y0=int(det.y0),
            x1=int(det.x1),
            y1=int(det.y1),
            confidence=float(det.confidence),
            class_id=int(det.class_id),
            class_name=det.class_name,
            color=color_fn(det.class_id),
        )
        for det in detections
    ]


def label_origin(x0: int, y0: int, text_h: int) -> Tuple[int, int]:
    """
    Bottom-left text origin: above the box corner, or just below it when that
    would put the label off-canvas.
    """
    y_text = y0 - LABEL_GAP
    if y_text < LABEL_MIN_Y:
        y_text = y0 + text_h + LABEL_GAP
    return x0, y_text


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    line_thickness_ratio: int = 200,
    color_fn: Callable[[int], Color] = palette_color,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Line thickness scales with the shorter image side; labels read
    "{class_name} {confidence:.2f}".
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python-headless`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]
    thickness = line_thickness(w, h, line_thickness_ratio)

    for box in to_bounding_boxes(detections, color_fn):
        cv2.rectangle(out, (box.x0, box.y0), (box.x1, box.y1), box.color, thickness=thickness)

        label = format_label(box)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness)
        x_text, y_text = label_origin(box.x0, box.y0, th)

        cv2.rectangle(
            out,
            (x_text, y_text - th - baseline),
            (min(x_text + tw, w - 1), min(y_text + baseline, h - 1)),
            box.color,
            thickness=-1,
        )
        cv2.putText(
            out,
            label,
            (x_text, y_text),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=thickness,
            lineType=cv2.LINE_AA,
        )

    return out


def encode_jpeg(image_bgr: np.ndarray, quality: int = 95) -> bytes:
    import cv2  # type: ignore

    ok, buf = cv2.imencode(".jpg", image_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ImageEncodeError("Failed to encode annotated image as JPEG")
    return buf.tobytes()
