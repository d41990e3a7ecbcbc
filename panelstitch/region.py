from __future__ import annotations
import logging
import cv2

from .errors import BackendFailure, RegionNotFound
from .geometry import Rect, enclosing
from .scan import binary_diff

logger = logging.getLogger(__name__)

class RegionDetector:
    """
    Finds the part of the screen that scrolls by diffing two screenshots.
    Chrome (status bar, header, footer) is identical between them, so only
    the scrolled list survives the threshold.
    """
    def __init__(self, diff_threshold: int = 70, min_area: int = 10,
                 top_band_divisor: int = 8, bottom_band_divisor: int = 16):
        self.diff_threshold = diff_threshold
        self.min_area = min_area
        self.top_band_divisor = top_band_divisor
        self.bottom_band_divisor = bottom_band_divisor

    def _ensure_same_size(self, a, b):
        if a.shape[:2] != b.shape[:2]:
            raise BackendFailure(
                f"Frame size mismatch: {a.shape[:2]} vs {b.shape[:2]}.", stage="region detection")

    def band(self, height: int) -> tuple[int, int]:
        """Allowed range of a candidate's top y: skips the top 1/8 and bottom 1/16."""
        return height // self.top_band_divisor, height - height // self.bottom_band_divisor

    def diff_mask(self, a_bgr, b_bgr):
        self._ensure_same_size(a_bgr, b_bgr)
        return binary_diff(a_bgr, b_bgr, self.diff_threshold)

    def candidates(self, mask):
        """Bounding rects of all diff contours that pass the area and band filters."""
        contours, _ = cv2.findContours(mask, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE)
        top, bottom = self.band(mask.shape[0])
        for contour in contours:
            rect = Rect(*cv2.boundingRect(contour))
            if rect.area < self.min_area:
                continue
            if not top <= rect.y <= bottom:
                continue
            yield rect

    def detect_images(self, a_bgr, b_bgr) -> Rect:
        try:
            mask = self.diff_mask(a_bgr, b_bgr)
            region = enclosing(self.candidates(mask))
        except cv2.error as e:
            raise BackendFailure(str(e), stage="region detection") from e
        if region is None:
            raise RegionNotFound(stage="region detection")
        logger.debug("Scrollable region: %s", region)
        return region

    def detect(self, first, second) -> Rect:
        """Region shared by two Frames (frames 1 and 2 of a set)."""
        try:
            return self.detect_images(first.image, second.image)
        except RegionNotFound as e:
            e.stage = f"region detection (frames {first.index}-{second.index})"
            raise
