"""
File-based store for the active model/class pair.

The store only moves files around. Callers pass the returned paths to
`InferenceHandle.reload` to make a change visible to new requests.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .config import StoreConfig
from .errors import ConfigurationError
from .runtime import resolve_path


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MODEL_SUFFIX = ".onnx"
CLASSES_SUFFIX = ".names"


def _usable(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def _check_suffix(name: str, suffix: str, kind: str) -> None:
    if not name.lower().endswith(suffix):
        raise ConfigurationError(f"{kind} file must end with {suffix}: {name}")


class ModelStore:
    def __init__(self, cfg: StoreConfig = StoreConfig(), root: Optional[PathLike] = "auto"):
        self.models_dir = resolve_path(cfg.models_dir, root)
        self.model_path = resolve_path(cfg.model_path, root)
        self.classes_path = resolve_path(cfg.classes_path, root)
        self.default_model_path = resolve_path(cfg.default_model_path, root)
        self.default_classes_path = resolve_path(cfg.default_classes_path, root)

    def resolve_active(self) -> Tuple[Path, Path]:
        """
        (model, classes) to load: the custom files when present and non-empty, else the defaults.
        """
        model = self.model_path if _usable(self.model_path) else self.default_model_path
        classes = self.classes_path if _usable(self.classes_path) else self.default_classes_path
        logger.info("Active model %s, classes %s", model, classes)
        return model, classes

    def _list(self, suffix: str) -> List[str]:
        if not self.models_dir.is_dir():
            return []
        return sorted(p.name for p in self.models_dir.iterdir() if p.is_file() and p.name.lower().endswith(suffix))

    def available_models(self) -> List[str]:
        return self._list(MODEL_SUFFIX)

    def available_class_files(self) -> List[str]:
        return self._list(CLASSES_SUFFIX)

    def _copy_into_place(self, model_src: Path, classes_src: Path) -> Tuple[Path, Path]:
        for src in (model_src, classes_src):
            if not src.is_file():
                raise FileNotFoundError(f"File not found: {src}")
        self.model_path.parent.mkdir(parents=True, exist_ok=True)
        self.classes_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(model_src, self.model_path)
        shutil.copyfile(classes_src, self.classes_path)
        logger.info("Installed %s and %s as the active model", model_src.name, classes_src.name)
        return self.model_path, self.classes_path

    def install(self, model_src: PathLike, classes_src: PathLike) -> Tuple[Path, Path]:
        """Copy an uploaded model and class file into the active locations."""
        model_src, classes_src = Path(model_src), Path(classes_src)
        _check_suffix(model_src.name, MODEL_SUFFIX, "Model")
        _check_suffix(classes_src.name, CLASSES_SUFFIX, "Classes")
        return self._copy_into_place(model_src, classes_src)

    def switch(self, model_name: str, classes_name: str) -> Tuple[Path, Path]:
        """Activate a model/class pair that already lives in `models_dir`."""
        _check_suffix(model_name, MODEL_SUFFIX, "Model")
        _check_suffix(classes_name, CLASSES_SUFFIX, "Classes")
        return self._copy_into_place(self.models_dir / Path(model_name).name, self.models_dir / Path(classes_name).name)

    def reset(self) -> Tuple[Path, Path]:
        """Restore the default model and class file as the active pair."""
        return self._copy_into_place(self.default_model_path, self.default_classes_path)

    def current_model_info(self) -> Dict[str, object]:
        model, classes = self.resolve_active()
        info: Dict[str, object] = {
            "model": model.name if model.exists() else None,
            "model_size_mb": round(model.stat().st_size / (1024 * 1024), 2) if model.exists() else None,
            "classes": classes.name if classes.exists() else None,
        }
        return info
