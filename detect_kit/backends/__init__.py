"""
Inference backends for detect_kit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight and can be used without installing inference runtimes.

A backend is any object with `run(blob) -> np.ndarray`; `output_shape` is optional
and, when present, lets the handle check the class list against the model.
"""

from __future__ import annotations

__all__ = []
