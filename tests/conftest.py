from __future__ import annotations

import sys
from pathlib import Path


def _ensure_import_paths() -> None:
    # Without an editable install, `import detect_kit` needs the repo root on sys.path;
    # test helpers (`fakes`) live next to the tests.
    tests_dir = Path(__file__).resolve().parent
    for p in (tests_dir.parent, tests_dir):
        p_str = str(p)
        if p_str not in sys.path:
            sys.path.insert(0, p_str)


_ensure_import_paths()
