from __future__ import annotations

import numpy as np

from .errors import ImageDecodeError


CHANNEL_ORDERS = ("rgb", "bgr")


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode JPEG/PNG bytes into a BGR (H, W, 3) uint8 array.

    Raises:
        ImageDecodeError: if the bytes are not a decodable image or decode to an empty one.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for decode_image(). Install with `pip install opencv-python-headless`.") from e

    if not data:
        raise ImageDecodeError("Image is empty")

    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None or img.size == 0 or img.shape[0] == 0 or img.shape[1] == 0:
        raise ImageDecodeError("Invalid or unsupported image format")
    return img


def build_tensor(image_bgr: np.ndarray, channel_order: str = "rgb") -> np.ndarray:
    """
    Convert an interleaved (H, W, C) uint8 image into a planar float32 (1, C, H, W) blob in [0, 1].

    `channel_order` must match what the loaded model was trained on. A mismatch does
    not fail, it only degrades accuracy.
    """
    if channel_order not in CHANNEL_ORDERS:
        raise ValueError(f"channel_order must be one of {CHANNEL_ORDERS}, got {channel_order!r}")

    img = np.asarray(image_bgr)
    if img.ndim == 2:
        img = img[:, :, None]
    if img.ndim != 3:
        raise ValueError(f"Expected image shape (H, W, C), got {img.shape}")

    if channel_order == "rgb" and img.shape[2] == 3:
        img = img[:, :, ::-1]

    # HWC -> CHW, normalize, add batch
    blob = img.astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]
    return np.ascontiguousarray(blob)
