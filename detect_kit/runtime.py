from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectorConfig
from .decode import MIN_CANDIDATES, DecodeMode, OutputLayout, classify_output_layout, decode_output, select_confident
from .errors import ConfigurationError, DetectionError, InferenceError
from .letterbox import letterbox, unmap_boxes
from .metadata import load_class_names
from .nms import NMSConfig, nms
from .tensor import build_tensor, decode_image
from .types import Detection
from .visualize import color_strategy, draw_detections, encode_jpeg


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
BackendFactory = Callable[[Path], object]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, else the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def onnxruntime_factory(providers: Optional[Sequence[str]] = None) -> BackendFactory:
    def _make(model_path: Path) -> object:
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(providers=providers))

    return _make


def _declared_width(shape: Sequence[object]) -> Optional[int]:
    """
    Per-candidate value count declared by the model's output metadata, if static.
    """
    if len(shape) != 3:
        return None
    dim1, dim2 = shape[1], shape[2]
    static1, static2 = isinstance(dim1, int), isinstance(dim2, int)
    if static1 and static2:
        try:
            layout = classify_output_layout((1, dim1, dim2))
        except DetectionError:
            return None
        return dim1 if layout is OutputLayout.TRANSPOSED else dim2
    if static1 and dim1 <= MIN_CANDIDATES:
        return dim1
    if static2 and dim2 <= MIN_CANDIDATES:
        return dim2
    return None


@dataclass(frozen=True)
class ModelState:
    """
    A consistent (backend, class list) pair. Never mutated; reload swaps the whole object.
    """

    backend: object
    class_names: Tuple[str, ...]
    model_path: Path
    classes_path: Path
    generation: int
    decode_mode: DecodeMode = DecodeMode.DIRECT

    @property
    def num_classes(self) -> int:
        return len(self.class_names)

    def class_name(self, class_id: int) -> str:
        if 0 <= class_id < len(self.class_names):
            return self.class_names[class_id]
        return "unknown"


class InferenceHandle:
    """
    Owned model session + class list with an explicit lifecycle.

    Readers call `snapshot()` without locking. `reload()` builds the new state
    outside the lock and only swaps the reference inside it, so in-flight
    requests keep using the pair they started with.
    """

    def __init__(self, state: ModelState, backend_factory: BackendFactory):
        self._state: Optional[ModelState] = state
        self._backend_factory = backend_factory
        self._lock = threading.Lock()

    @classmethod
    def create(
        cls,
        model_path: PathLike,
        classes_path: PathLike,
        *,
        backend_factory: Optional[BackendFactory] = None,
        decode_mode: Union[DecodeMode, str] = DecodeMode.DIRECT,
    ) -> "InferenceHandle":
        factory = backend_factory or onnxruntime_factory()
        state = cls._load(Path(model_path), Path(classes_path), factory, DecodeMode(decode_mode), generation=1)
        return cls(state, factory)

    @staticmethod
    def _load(
        model_path: Path,
        classes_path: Path,
        factory: BackendFactory,
        decode_mode: DecodeMode,
        generation: int,
    ) -> ModelState:
        class_names = tuple(load_class_names(classes_path))
        backend = factory(model_path)

        width = _declared_width(getattr(backend, "output_shape", ()))
        required = decode_mode.required_width(len(class_names))
        if width is not None and width != required:
            raise ConfigurationError(
                f"{classes_path.name} lists {len(class_names)} classes but {model_path.name} "
                f"declares {width} values per candidate ({required} expected in {decode_mode.value} mode)"
            )

        logger.info("Model %s ready with %d classes; first classes: %s", model_path.name, len(class_names), list(class_names[:10]))
        return ModelState(
            backend=backend,
            class_names=class_names,
            model_path=model_path,
            classes_path=classes_path,
            generation=generation,
            decode_mode=decode_mode,
        )

    def snapshot(self) -> ModelState:
        state = self._state
        if state is None:
            raise InferenceError("Inference handle has been shut down")
        return state

    def reload(
        self,
        model_path: PathLike,
        classes_path: PathLike,
        decode_mode: Optional[Union[DecodeMode, str]] = None,
    ) -> ModelState:
        """
        Load a new model/class pair and swap it in. On failure the current pair stays active.

        `decode_mode` defaults to the mode of the current pair.
        """
        current = self.snapshot()
        mode = current.decode_mode if decode_mode is None else DecodeMode(decode_mode)
        logger.info("Reloading model %s with classes %s", model_path, classes_path)
        state = self._load(Path(model_path), Path(classes_path), self._backend_factory, mode, generation=0)
        with self._lock:
            if self._state is None:
                raise InferenceError("Inference handle has been shut down")
            state = dataclasses.replace(state, generation=self._state.generation + 1)
            self._state = state
        logger.info("Swapped in model generation %d", state.generation)
        return state

    def shutdown(self) -> None:
        with self._lock:
            if self._state is not None:
                logger.info("Shutting down inference handle (model %s)", self._state.model_path.name)
            self._state = None

    @property
    def closed(self) -> bool:
        return self._state is None


@dataclass(frozen=True)
class DetectionResult:
    detections: List[Detection]
    image_bytes: bytes
    width: int
    height: int
    generation: int


class DetectionPipeline:
    """
    Pipeline: decode -> letterbox -> tensor -> inference -> decode output -> filter
    -> unmap -> NMS -> annotate -> JPEG.

    The handle snapshot and the config are captured once per call, so a concurrent
    reload never mixes a new model with an old class list inside one request.
    """

    def __init__(self, handle: InferenceHandle, config: DetectorConfig = DetectorConfig()):
        self.handle = handle
        self.config = config

    def detect(self, image_bytes: bytes) -> bytes:
        """Encoded image in, annotated JPEG out."""
        return self.run(image_bytes).image_bytes

    def run(self, image_bytes: bytes) -> DetectionResult:
        cfg = self.config
        image = decode_image(image_bytes)
        state = self.handle.snapshot()
        detections = self._run(image, state, cfg)
        annotated = self.annotate(image, detections, cfg)
        return DetectionResult(
            detections=detections,
            image_bytes=encode_jpeg(annotated, quality=cfg.jpeg_quality),
            width=int(image.shape[1]),
            height=int(image.shape[0]),
            generation=state.generation,
        )

    def detect_image(self, image_bgr: np.ndarray) -> List[Detection]:
        return self._run(image_bgr, self.handle.snapshot(), self.config)

    def annotate(self, image_bgr: np.ndarray, detections: List[Detection], cfg: Optional[DetectorConfig] = None) -> np.ndarray:
        cfg = cfg or self.config
        return draw_detections(
            image_bgr,
            detections,
            line_thickness_ratio=cfg.line_thickness_ratio,
            color_fn=color_strategy(cfg.color_strategy),
            font_scale=cfg.font_scale,
        )

    def _run(self, image_bgr: np.ndarray, state: ModelState, cfg: DetectorConfig) -> List[Detection]:
        h, w = image_bgr.shape[:2]
        logger.debug("Input image size: %dx%d", w, h)

        lb = letterbox(image_bgr, new_shape=cfg.input_size, color=cfg.pad_color)
        logger.debug("Letterbox ratio=%.4f pad=(%d, %d)", lb.ratio, lb.pad_x, lb.pad_y)

        blob = build_tensor(lb.image, channel_order=cfg.channel_order)
        try:
            raw = state.backend.run(blob)
        except InferenceError:
            raise
        except Exception as exc:
            raise InferenceError(f"Inference failed: {exc}") from exc

        candidates = decode_output(raw, state.num_classes, mode=cfg.decode_mode, input_size=cfg.input_size)
        scored = select_confident(candidates, cfg.confidence_threshold)
        boxes = unmap_boxes(scored.boxes, lb)

        detections = [
            Detection(
                x0=float(x0),
                y0=float(y0),
                x1=float(x1),
                y1=float(y1),
                confidence=float(score),
                class_id=int(cls_id),
                class_name=state.class_name(int(cls_id)),
            )
            for (x0, y0, x1, y1), score, cls_id in zip(boxes, scored.scores, scored.class_ids)
        ]
        survivors = nms(detections, NMSConfig(iou_threshold=cfg.nms_threshold, max_detections=cfg.max_detections))
        logger.info(
            "Candidates: %d decoded, %d above %.2f, %d after NMS",
            len(candidates),
            len(detections),
            cfg.confidence_threshold,
            len(survivors),
        )
        return survivors
