from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .decode import DecodeMode
from .errors import ConfigurationError
from .tensor import CHANNEL_ORDERS
from .visualize import COLOR_STRATEGIES


@dataclass(frozen=True)
class DetectorConfig:
    """
    Immutable hyperparameter snapshot threaded through one pipeline run.
    """

    confidence_threshold: float = 0.25
    nms_threshold: float = 0.45
    input_width: int = 640
    input_height: int = 640
    line_thickness_ratio: int = 200
    channel_order: str = "rgb"
    decode_mode: DecodeMode = DecodeMode.DIRECT
    color_strategy: str = "palette"
    pad_color: Tuple[int, int, int] = (114, 114, 114)
    max_detections: Optional[int] = 300
    jpeg_quality: int = 95
    font_scale: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ConfigurationError("nms_threshold must be in [0, 1]")
        if self.input_width < 32 or self.input_height < 32:
            raise ConfigurationError("input_width/input_height must be >= 32")
        if self.line_thickness_ratio < 1:
            raise ConfigurationError("line_thickness_ratio must be >= 1")
        if self.channel_order not in CHANNEL_ORDERS:
            raise ConfigurationError(f"channel_order must be one of {list(CHANNEL_ORDERS)}")
        if self.color_strategy not in COLOR_STRATEGIES:
            raise ConfigurationError(f"color_strategy must be one of {sorted(COLOR_STRATEGIES)}")
        if len(self.pad_color) != 3 or any(not 0 <= c <= 255 for c in self.pad_color):
            raise ConfigurationError("pad_color must be three values in [0, 255]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ConfigurationError("max_detections must be >= 1 or null")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigurationError("jpeg_quality must be in [1, 100]")
        if self.font_scale <= 0:
            raise ConfigurationError("font_scale must be > 0")
        try:
            object.__setattr__(self, "decode_mode", DecodeMode(self.decode_mode))
        except ValueError:
            raise ConfigurationError(
                f"decode_mode must be one of {[m.value for m in DecodeMode]}"
            ) from None
        object.__setattr__(self, "pad_color", tuple(int(c) for c in self.pad_color))

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.input_width, self.input_height

    def replace(self, **overrides: Any) -> "DetectorConfig":
        """Return a new snapshot; None values are ignored so CLI defaults don't clobber the file."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class StoreConfig:
    """
    Locations of the active and default model/class files.
    """

    models_dir: str = "models"
    model_path: str = "models/active/model.onnx"
    classes_path: str = "models/active/classes.names"
    default_model_path: str = "models/yolov11n.onnx"
    default_classes_path: str = "models/coco.names"


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{key} must be a non-empty string")
    return value.strip()


_FLOAT_KEYS = {"confidence_threshold", "nms_threshold", "font_scale"}
_INT_KEYS = {"input_width", "input_height", "line_thickness_ratio", "jpeg_quality"}
_STR_KEYS = {"channel_order", "decode_mode", "color_strategy"}


def _detector_from_payload(payload: Dict[str, Any]) -> DetectorConfig:
    allowed = {f.name for f in dataclasses.fields(DetectorConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ConfigurationError(f"Unknown detector config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in payload:
        if key in _FLOAT_KEYS:
            kwargs[key] = _require_number(payload, key)
        elif key in _INT_KEYS:
            kwargs[key] = _require_int(payload, key)
        elif key in _STR_KEYS:
            kwargs[key] = _require_str(payload, key).lower()
        elif key == "max_detections":
            kwargs[key] = None if payload[key] is None else _require_int(payload, key)
        elif key == "pad_color":
            value = payload[key]
            if not isinstance(value, list) or len(value) != 3 or any(
                isinstance(c, bool) or not isinstance(c, int) for c in value
            ):
                raise ConfigurationError("pad_color must be a list of three integers")
            kwargs[key] = tuple(value)
    return DetectorConfig(**kwargs)


def _store_from_payload(payload: Dict[str, Any]) -> StoreConfig:
    if not isinstance(payload, dict):
        raise ConfigurationError("'store' must be a JSON object")
    allowed = {f.name for f in dataclasses.fields(StoreConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ConfigurationError(f"Unknown store config keys: {unknown}")
    return StoreConfig(**{key: _require_str(payload, key) for key in payload})


def load_config(path: Path) -> Tuple[DetectorConfig, StoreConfig]:
    """
    Load a JSON config file with detector keys at the top level and an optional
    `store` object. Missing keys keep their defaults.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Config must be a JSON object")

    payload = dict(payload)
    store_payload = payload.pop("store", {})
    return _detector_from_payload(payload), _store_from_payload(store_payload)
