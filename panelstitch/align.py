from __future__ import annotations
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
import cv2
import numpy as np

from .errors import AlignmentNotFound, AlignmentTimeout, BackendFailure
from .geometry import Rect

logger = logging.getLogger(__name__)

HEIGHT_PARTITION_NUM = 10
MATCHING_THRESHOLD = 0.95

@dataclass
class ScrollableRegionView:
    """
    Rows of a frame's scrollable region (full frame width) in local coordinates.
    'window' is the narrower sub-rect used for correlation; 'label' is the
    frame index, or "first-last" once views have been merged.
    """
    image: np.ndarray
    window: Rect
    label: str = ""

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def first(self) -> str:
        return self.label.split("-")[0]

    @property
    def last(self) -> str:
        return self.label.split("-")[-1]

    def matching_roi(self):
        return self.window.crop(self.image)

    def with_image(self, image, label: str) -> ScrollableRegionView:
        return ScrollableRegionView(image, replace(self.window, y=0, height=image.shape[0]), label)

@dataclass(frozen=True)
class MatchOffset:
    self_offset: int    # rows of the earlier view kept above the seam
    other_offset: int   # rows of the later view dropped before the seam
    score: float = 1.0
    strip: int = 0

@dataclass
class MatchCandidate:
    strip: int
    other_offset: int
    probe: np.ndarray
    score: float                   # best score of this strip
    self_offset: int | None = None # set when the strip was accepted
    window: np.ndarray | None = None

    @property
    def accepted(self) -> bool:
        return self.self_offset is not None

class FrameAligner:
    """
    Finds where a later view continues an earlier one and stitches them.

    The later window is cut into strip_count horizontal strips. Taking strips
    top-down, each strip is correlated (TM_CCOEFF_NORMED) against every offset of
    the earlier window, and offsets are examined bottom-up: the first score above
    the threshold wins. on_candidate, if given, receives a MatchCandidate for every
    strip tried and for the accepted match.
    """

    def __init__(self, threshold: float = MATCHING_THRESHOLD, strip_count: int = HEIGHT_PARTITION_NUM,
                 timeout: float | None = None, on_candidate=None):
        self.threshold = threshold
        self.strip_count = strip_count
        self.timeout = timeout
        self.on_candidate = on_candidate

    @classmethod
    def from_config(cls, cfg, on_candidate=None) -> FrameAligner:
        return cls(threshold=cfg.match_threshold, strip_count=cfg.strip_count,
                   timeout=cfg.alignment_timeout, on_candidate=on_candidate)

    def _notify(self, candidate: MatchCandidate):
        if self.on_candidate is not None:
            self.on_candidate(candidate)

    def detect_match(self, earlier: ScrollableRegionView, later: ScrollableRegionView) -> MatchOffset:
        stage = f"alignment (frames {earlier.last}-{later.first})"
        self_roi = np.ascontiguousarray(earlier.matching_roi())
        other_roi = later.matching_roi()
        if self_roi.shape[1:] != other_roi.shape[1:]:
            raise BackendFailure(
                f"Matching windows differ: {self_roi.shape} vs {other_roi.shape}.", stage=stage)

        strip_h = other_roi.shape[0] // self.strip_count
        if strip_h == 0 or self_roi.shape[0] < strip_h:
            raise AlignmentNotFound("image not matched: scrollable region too short to align",
                                    stage=stage)

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        for strip in range(self.strip_count):
            if deadline is not None and time.monotonic() > deadline:
                raise AlignmentTimeout(
                    f"alignment exceeded {self.timeout:.3f}s after {strip} strip(s)", stage=stage)

            other_pos = strip * strip_h
            probe = np.ascontiguousarray(other_roi[other_pos:other_pos + strip_h])
            try:
                # one score per offset 0..self_h-strip_h
                scores = cv2.matchTemplate(self_roi, probe, cv2.TM_CCOEFF_NORMED)[:, 0]
            except cv2.error as e:
                raise BackendFailure(str(e), stage=stage) from e

            hits = np.flatnonzero(scores > self.threshold)
            if hits.size == 0:
                best = float(np.nanmax(scores)) if np.isfinite(scores).any() else float("nan")
                self._notify(MatchCandidate(strip, other_pos, probe, best))
                continue

            self_pos = int(hits[-1])
            score = float(scores[self_pos])
            self._notify(MatchCandidate(strip, other_pos, probe, score, self_offset=self_pos,
                                        window=self_roi[self_pos:self_pos + strip_h]))
            logger.debug("%s: strip %d matched at %d (score %.4f)", stage, strip, self_pos, score)
            return MatchOffset(self_pos, other_pos, score, strip)

        raise AlignmentNotFound(stage=stage)

    def merge(self, earlier: ScrollableRegionView, later: ScrollableRegionView,
              offset: MatchOffset | None = None) -> ScrollableRegionView:
        """Earlier rows above the seam followed by later rows from the seam on."""
        if offset is None:
            offset = self.detect_match(earlier, later)
        merged = np.vstack((earlier.image[:offset.self_offset], later.image[offset.other_offset:]))
        return earlier.with_image(merged, f"{earlier.first}-{later.last}")

    def fold(self, views, workers: int = 1) -> ScrollableRegionView:
        """Left fold of merge over the views, in order."""
        views = list(views)
        if not views:
            raise ValueError("fold needs at least one view")
        if workers > 1 and len(views) > 2:
            return self._fold_parallel(views, workers)
        acc = views[0]
        for view in views[1:]:
            acc = self.merge(acc, view)
        return acc

    def _match_or_none(self, earlier, later) -> MatchOffset | None:
        try:
            return self.detect_match(earlier, later)
        except AlignmentNotFound:
            return None

    def _fold_parallel(self, views, workers: int) -> ScrollableRegionView:
        """
        Pair offsets are computed concurrently on the unmerged views, then folded
        in order. A pair offset is reused only when the first strip matched inside
        the part of the earlier view the accumulator still holds; any other pair
        is re-aligned against the accumulator, so the result equals the
        sequential fold.
        """
        pairs = list(zip(views, views[1:]))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            offsets = list(pool.map(lambda pair: self._match_or_none(*pair), pairs))

        acc = views[0]
        kept_from = 0  # first row of the previous view still present at acc's bottom
        for (prev, view), offset in zip(pairs, offsets):
            if offset is not None and offset.strip == 0 and offset.self_offset >= kept_from:
                offset = replace(offset, self_offset=acc.height - prev.height + offset.self_offset)
            else:
                logger.debug("Re-aligning frames %s-%s against the merged column", prev.label, view.label)
                offset = self.detect_match(acc, view)
            acc = self.merge(acc, view, offset)
            kept_from = offset.other_offset
        return acc
