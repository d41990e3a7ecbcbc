from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.width}x{self.height}.")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def rows(self) -> slice:
        return slice(self.y, self.bottom)

    @property
    def cols(self) -> slice:
        return slice(self.x, self.right)

    def union(self, other: Rect) -> Rect:
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rect(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)

    def scaled(self, ratio: float) -> Rect:
        """Every field multiplied by ratio and truncated toward zero."""
        return Rect(int(self.x * ratio), int(self.y * ratio),
                    int(self.width * ratio), int(self.height * ratio))

    def crop(self, img):
        """numpy view of img inside this rect (no pixel copy)."""
        return img[self.rows, self.cols]

def enclosing(rects) -> Rect | None:
    """
    Smallest Rect covering every rect in the iterable.
    None when the iterable is empty, so a real 0 coordinate is never mistaken for 'unset'.
    """
    acc = None
    for r in rects:
        acc = r if acc is None else acc.union(r)
    return acc
