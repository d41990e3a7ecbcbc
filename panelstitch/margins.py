from __future__ import annotations
import logging
import cv2

from .config import MarginConfig
from .errors import BackendFailure, MarginNotFound
from .scan import (black_after_white, column_transitions, half_mean, hsv_mask,
                   row_transitions, white_after_black)

logger = logging.getLogger(__name__)

# HSV ranges (OpenCV units: H 0-180, S/V 0-255)
SIDE_CHROME_HSV = ((0, 0, 0), (250, 140, 240))         # light chrome, not bright/saturated UI
TITLE_ACCENT_HSV = ((25, 210, 160), (60, 255, 255))    # title bar accent colour
BACKGROUND_HSV = ((0, 0, 249), (5, 20, 255))           # near-white panel background

class MarginDetector:
    """
    Measures decorative chrome around the scrollable region of a reference frame.
    All three edges need the frame's region to be detected first.
    """
    def __init__(self, cfg: MarginConfig | None = None):
        self.cfg = cfg or MarginConfig()

    def left_right(self, frame) -> int:
        """Width of the side border: first dark-after-bright column, per row left of the region."""
        region = frame.region
        points = self._scan("left/right", lambda: row_transitions(
            hsv_mask(frame.image, *SIDE_CHROME_HSV)[region.rows, :region.x],
            black_after_white))
        if self.cfg.left_right_reduce == "max":
            margin = max(points)
        else:
            margin = sum(points) // len(points)
        logger.debug("Left/right margin %d from %d rows", margin, len(points))
        return margin

    def top(self, frame, include_title_bar: bool) -> int:
        """
        Rows to cut above the panel, measured on the title bar accent in the top half.
        With include_title_bar the cut ends below the bar, otherwise where it starts.
        """
        region = frame.region
        finder = black_after_white if include_title_bar else white_after_black
        points = self._scan("top", lambda: column_transitions(
            hsv_mask(frame.image, *TITLE_ACCENT_HSV)[:frame.height // 2, region.cols],
            finder))
        margin = half_mean(points, self.cfg.top_half)
        logger.debug("Top margin %d (title bar %s) from %d columns",
                     margin, "included" if include_title_bar else "kept", len(points))
        return margin

    def bottom(self, frame) -> int:
        """Rows of chrome under the panel background, scanned upward from the bottom edge."""
        region = frame.region
        points = self._scan("bottom", lambda: column_transitions(
            hsv_mask(frame.image, *BACKGROUND_HSV)[region.bottom:, region.cols],
            white_after_black, reverse=True))
        margin = half_mean(points, self.cfg.bottom_half)
        logger.debug("Bottom margin %d from %d columns", margin, len(points))
        return margin

    def _scan(self, edge: str, collect):
        try:
            points = collect()
        except cv2.error as e:
            raise BackendFailure(str(e), stage=f"margin detection ({edge})") from e
        if not points:
            raise MarginNotFound(f"image not matched: no {edge} margin edge found",
                                 stage="margin detection")
        return points
