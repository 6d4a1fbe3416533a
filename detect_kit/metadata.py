from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

from .errors import ConfigurationError


def _parse_names_mapping(lines: List[str]) -> List[str]:
    """
    Parse the lightweight `names:` mapping used by Ultralytics metadata.yaml exports:

        names:
          0: person
          1: bicycle
    """
    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ConfigurationError(f"Class ids in names mapping must be contiguous from 0, got {sorted(names)}")
    return [names[i] for i in expected]


def load_class_names(path: Union[str, Path]) -> List[str]:
    """
    Load the ordered class-name list for a model.

    Two formats are accepted: a `.names`/`.txt` file with one name per line (line
    index is the class id), or a YAML-style file containing a `names:` mapping.

    Raises:
        ConfigurationError: if the file yields no class names.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Class names file not found: {path}")

    lines = path.read_text(encoding="utf-8").splitlines()
    if any(line.strip() == "names:" for line in lines):
        names = _parse_names_mapping(lines)
    else:
        names = [line.strip() for line in lines if line.strip()]

    if not names:
        raise ConfigurationError(f"No class names found in {path}")
    return names
