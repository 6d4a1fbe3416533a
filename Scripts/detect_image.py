import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from detect_kit import (
    DetectionError,
    DetectionPipeline,
    DetectorConfig,
    InferenceHandle,
    ModelStore,
    StoreConfig,
    load_config,
)
from detect_kit.runtime import onnxruntime_factory


logger = logging.getLogger("detect_image")


def setup_logging(level: str = "INFO") -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Detect objects in an image and write an annotated JPEG.")
    parser.add_argument("--image", required=True, help="Path to an input image (JPEG/PNG).")
    parser.add_argument("--out", default=None, help="Output JPEG path (default: <image>_detection.jpg).")
    parser.add_argument("--config", default=None, help="JSON config with detector keys and an optional 'store' object.")
    parser.add_argument("--model", default=None, help="ONNX model path (overrides the store's active model).")
    parser.add_argument("--classes", default=None, help="Class names file (overrides the store's active classes).")
    parser.add_argument("--imgsz", type=int, default=None, help="Letterbox input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--decode-mode", choices=("direct", "sigmoid"), default=None, help="Output decoding convention.")
    parser.add_argument("--channel-order", choices=("rgb", "bgr"), default=None, help="Channel order the model expects.")
    parser.add_argument("--color-strategy", choices=("palette", "hash"), default=None, help="Per-class color scheme.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    args = parser.parse_args(argv)

    if args.imgsz is not None and args.imgsz < 32:
        parser.error("--imgsz must be >= 32")

    setup_logging(args.log_level)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    image_path = Path(args.image)
    out_path = Path(args.out) if args.out else image_path.with_name(f"{image_path.stem}_detection.jpg")

    handle = None
    try:
        if args.config:
            cfg, store_cfg = load_config(Path(args.config))
        else:
            cfg, store_cfg = DetectorConfig(), StoreConfig()

        cfg = cfg.replace(
            confidence_threshold=args.conf,
            nms_threshold=args.iou,
            input_width=args.imgsz,
            input_height=args.imgsz,
            decode_mode=args.decode_mode,
            channel_order=args.channel_order,
            color_strategy=args.color_strategy,
        )

        model_path, classes_path = ModelStore(store_cfg).resolve_active()
        model_path = Path(args.model) if args.model else model_path
        classes_path = Path(args.classes) if args.classes else classes_path

        handle = InferenceHandle.create(
            model_path,
            classes_path,
            backend_factory=onnxruntime_factory(onnx_providers),
            decode_mode=cfg.decode_mode,
        )
        result = DetectionPipeline(handle, cfg).run(image_path.read_bytes())
    except DetectionError as exc:
        logger.error("Detection failed: %s", exc)
        return 1
    finally:
        if handle is not None:
            handle.shutdown()

    for det in result.detections:
        print(det.class_name, f"{det.confidence:.3f}", det.as_xyxy())

    out_path.write_bytes(result.image_bytes)
    logger.info("Wrote %s (%d detections)", out_path, len(result.detections))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
