from dataclasses import dataclass
from typing import Any, Tuple


@dataclass
class Detection:
    """
    One detection in original-image coordinates (x0 <= x1, y0 <= y1).
    """

    x0: float
    y0: float
    x1: float
    y1: float
    confidence: float
    class_id: int
    class_name: str = ""

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x0, self.y0, self.x1, self.y1

    @property
    def area(self) -> float:
        return (self.x1 - self.x0) * (self.y1 - self.y0)


@dataclass(frozen=True)
class BoundingBox:
    """
    Render-ready variant of a surviving Detection (integer pixel coordinates).
    """

    x0: int
    y0: int
    x1: int
    y1: int
    confidence: float
    class_id: int
    class_name: str
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class LetterboxResult:
    image: Any  # np.ndarray (H, W, C)
    ratio: float
    pad_x: int
    pad_y: int
    target_width: int
    target_height: int
    source_width: int
    source_height: int
