"""
Image object detection around a loaded ONNX model.

Letterbox preprocessing, output decoding for both YOLO output layouts,
confidence filtering, per-class NMS and box annotation. Only NumPy and
OpenCV are needed for the core; ONNX Runtime is loaded by the backend.
"""

from .types import BoundingBox, Detection, LetterboxResult
from .errors import (
    ConfigurationError,
    DetectionError,
    ImageDecodeError,
    ImageEncodeError,
    ImageError,
    InferenceError,
    MalformedCandidateError,
    UnsupportedOutputShapeError,
)
from .letterbox import letterbox, unmap_boxes
from .tensor import build_tensor, decode_image
from .decode import DecodeMode, OutputLayout, classify_output_layout, decode_output, select_confident
from .nms import NMSConfig, iou, nms
from .visualize import draw_detections, encode_jpeg, hashed_color, palette_color, to_bounding_boxes
from .metadata import load_class_names
from .config import DetectorConfig, StoreConfig, load_config
from .runtime import DetectionPipeline, DetectionResult, InferenceHandle, ModelState, find_project_root, resolve_path
from .model_store import ModelStore

__all__ = [
    "BoundingBox",
    "Detection",
    "LetterboxResult",
    "ConfigurationError",
    "DetectionError",
    "ImageDecodeError",
    "ImageEncodeError",
    "ImageError",
    "InferenceError",
    "MalformedCandidateError",
    "UnsupportedOutputShapeError",
    "letterbox",
    "unmap_boxes",
    "build_tensor",
    "decode_image",
    "DecodeMode",
    "OutputLayout",
    "classify_output_layout",
    "decode_output",
    "select_confident",
    "NMSConfig",
    "iou",
    "nms",
    "draw_detections",
    "encode_jpeg",
    "hashed_color",
    "palette_color",
    "to_bounding_boxes",
    "load_class_names",
    "DetectorConfig",
    "StoreConfig",
    "load_config",
    "DetectionPipeline",
    "DetectionResult",
    "InferenceHandle",
    "ModelState",
    "find_project_root",
    "resolve_path",
    "ModelStore",
]
