from typing import Tuple

import numpy as np

from .errors import ImageError
from .types import LetterboxResult


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
) -> LetterboxResult:
    """
    Resize with preserved aspect ratio and pad to exactly `new_shape` (width, height).

    The resized content is centered; when the padding total is odd the extra
    pixel goes to the right/bottom side, so `pad_x`/`pad_y` are the left/top offsets.

    Raises:
        ImageError: if the source image has zero width or height.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python-headless`.") from e

    if image is None or not hasattr(image, "shape") or image.ndim < 2:
        raise ImageError("letterbox() expects an (H, W) or (H, W, C) array")

    h, w = image.shape[:2]
    if w == 0 or h == 0:
        raise ImageError(f"Cannot letterbox an image of size {w}x{h}")

    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    new_w, new_h = int(new_shape[0]), int(new_shape[1])

    # Scale ratio (new / old)
    r = min(new_w / w, new_h / h)

    # halves round up, not to even
    resized_w = max(1, min(new_w, int(np.floor(w * r + 0.5))))
    resized_h = max(1, min(new_h, int(np.floor(h * r + 0.5))))
    dw, dh = new_w - resized_w, new_h - resized_h

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    left, top = dw // 2, dh // 2
    right, bottom = dw - left, dh - top
    fill = color if image.ndim == 3 else color[0]
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=fill)

    return LetterboxResult(
        image=padded,
        ratio=r,
        pad_x=left,
        pad_y=top,
        target_width=new_w,
        target_height=new_h,
        source_width=w,
        source_height=h,
    )


def unmap_boxes(boxes: np.ndarray, lb: LetterboxResult) -> np.ndarray:
    """
    Map (N, 4) xyxy boxes from letterboxed model space back to the source image.

    Exact inverse of `letterbox`: subtract the left/top padding, divide by the
    ratio, then clamp to [0, dim - 1]. Coordinates are re-ordered so x0 <= x1, y0 <= y1.
    """
    out = np.asarray(boxes, dtype=np.float64).reshape(-1, 4).copy()
    if out.size == 0:
        return out

    out[:, [0, 2]] = (out[:, [0, 2]] - lb.pad_x) / lb.ratio
    out[:, [1, 3]] = (out[:, [1, 3]] - lb.pad_y) / lb.ratio

    out[:, [0, 2]] = np.clip(out[:, [0, 2]], 0, lb.source_width - 1)
    out[:, [1, 3]] = np.clip(out[:, [1, 3]], 0, lb.source_height - 1)

    x0 = np.minimum(out[:, 0], out[:, 2])
    x1 = np.maximum(out[:, 0], out[:, 2])
    y0 = np.minimum(out[:, 1], out[:, 3])
    y1 = np.maximum(out[:, 1], out[:, 3])
    return np.stack([x0, y0, x1, y1], axis=1)


def unmap_point(x: float, y: float, lb: LetterboxResult) -> Tuple[float, float]:
    ux, uy, _, _ = unmap_boxes(np.array([[x, y, x, y]]), lb)[0]
    return float(ux), float(uy)


def map_point(x: float, y: float, lb: LetterboxResult) -> Tuple[float, float]:
    """Forward mapping of a source-image point into letterboxed model space."""
    return x * lb.ratio + lb.pad_x, y * lb.ratio + lb.pad_y
