from __future__ import annotations
import logging
import math
from pathlib import Path
import cv2
import numpy as np

from .align import ScrollableRegionView
from .composite import CompositeBuilder
from .config import MarginConfig, RenderConfig
from .errors import NotEnoughSamples, RegionNotComputed
from .geometry import Rect
from .io_image import FrameReader, ImageWriter, load_image
from .margins import MarginDetector
from .region import RegionDetector

logger = logging.getLogger(__name__)

class Frame:
    """One screenshot plus the scrollable region shared by its FrameSet."""

    def __init__(self, image: np.ndarray, index: int = 1, path: Path | None = None,
                 region: Rect | None = None):
        self.image = image
        self.index = index
        self.path = path
        self._region = region
        self._budget: int | None = None

    @classmethod
    def from_path(cls, path, index: int = 1) -> Frame:
        path = Path(path)
        return cls(load_image(path), index=index, path=path)

    def __repr__(self):
        return f"Frame(index={self.index}, size={self.width}x{self.height}, region={self._region})"

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def region(self) -> Rect:
        if self._region is None:
            raise RegionNotComputed(
                "required calculation not completed: run FrameSet.detect_region() first")
        return self._region

    @region.setter
    def region(self, rect: Rect | None):
        self._region = rect

    def status_image(self):
        return self.image[:self.region.y]

    def footer_image(self):
        return self.image[self.region.bottom:]

    def scrollable_view(self, width_ratio: float = 0.98) -> ScrollableRegionView:
        """
        Full-width rows of the region, with a matching window narrowed to
        width_ratio of the region and moved to local y = 0.
        """
        region = self.region
        rows = self.image[region.rows]
        window = Rect(region.x, 0, int(region.width * width_ratio), rows.shape[0])
        return ScrollableRegionView(rows, window, label=str(self.index))

    def _ratio_for(self, budget: int) -> float | None:
        if self._budget is not None and budget >= self._budget:
            return None
        if self.pixel_count <= budget:
            return None
        return math.sqrt(budget / self.pixel_count)

    def scaled(self, budget: int) -> Frame:
        """
        Copy shrunk to at most ~budget pixels (INTER_AREA) with the region rescaled.
        Returns self when the frame already fits.
        """
        ratio = self._ratio_for(budget)
        if ratio is None:
            return self
        image = cv2.resize(self.image, None, fx=ratio, fy=ratio, interpolation=cv2.INTER_AREA)
        region = self._region.scaled(ratio) if self._region is not None else None
        copy = Frame(image, index=self.index, path=self.path, region=region)
        copy._budget = budget
        logger.debug("Frame %d scaled %s -> %s (ratio %.4f)",
                     self.index, (self.width, self.height), (copy.width, copy.height), ratio)
        return copy

    def downscale(self, budget: int) -> bool:
        """In-place version of scaled(), used at load time. False when nothing changed."""
        copy = self.scaled(budget)
        if copy is self:
            return False
        self.image, self._region, self._budget = copy.image, copy._region, copy._budget
        return True

class FrameSet:
    """
    Ordered screenshots of one scrolling panel (>= 2) sharing one scrollable region.
    The reference frame (first) supplies the status bar, footer and margins.
    """

    def __init__(self, frames):
        frames = list(frames)
        if len(frames) < 2:
            raise NotEnoughSamples(
                f"not enough samples: at least 2 screenshots are required, got {len(frames)}",
                stage="load")
        self.frames = frames

    @classmethod
    def load(cls, base_dir, limit: int = 10, config: RenderConfig | None = None) -> FrameSet:
        reader = FrameReader(base_dir)
        frames = [Frame(img, index=i, path=reader.path_for(i)) for i, img in reader.read_sequence(limit)]
        logger.info("Loaded %d screenshot(s) from %s", len(frames), base_dir)
        fs = cls(frames)
        if config is not None and config.downscale_budget_pixels:
            fs.apply_budget(config.downscale_budget_pixels)
        fs.detect_region()
        return fs

    def __len__(self):
        return len(self.frames)

    @property
    def reference(self) -> Frame:
        return self.frames[0]

    @property
    def region(self) -> Rect:
        return self.reference.region

    def detect_region(self, detector: RegionDetector | None = None) -> Rect:
        detector = detector or RegionDetector()
        rect = detector.detect(self.frames[0], self.frames[1])
        for frame in self.frames:
            frame.region = rect
        return rect

    def scaled(self, budget: int) -> FrameSet:
        """FrameSet of frames shrunk to the pixel budget; self is left untouched."""
        frames = [frame.scaled(budget) for frame in self.frames]
        if all(a is b for a, b in zip(frames, self.frames)):
            return self
        return FrameSet(frames)

    def apply_budget(self, budget: int) -> bool:
        changed = [frame.downscale(budget) for frame in self.frames]
        return any(changed)

    # ---------- Margins (measured on the reference frame) ----------

    def left_right_margin(self, cfg: MarginConfig | None = None) -> int:
        return MarginDetector(cfg).left_right(self.reference)

    def top_margin(self, include_title_bar: bool, cfg: MarginConfig | None = None) -> int:
        return MarginDetector(cfg).top(self.reference, include_title_bar)

    def bottom_margin(self, cfg: MarginConfig | None = None) -> int:
        return MarginDetector(cfg).bottom(self.reference)

    # ---------- Pieces of the composite ----------

    def status_image(self):
        return self.reference.status_image()

    def footer_image(self):
        return self.reference.footer_image()

    def views(self, width_ratio: float = 0.98):
        return [frame.scrollable_view(width_ratio) for frame in self.frames]

    # ---------- Rendering ----------

    def render(self, config: RenderConfig | None = None, on_candidate=None):
        config = config or RenderConfig()
        source = self.scaled(config.downscale_budget_pixels) if config.downscale_budget_pixels else self
        return CompositeBuilder(config, on_candidate=on_candidate).build(source)

    def write(self, config: RenderConfig | None, out_dir, name: str = "result.png",
              on_candidate=None) -> Path:
        img = self.render(config, on_candidate=on_candidate)
        return ImageWriter(out_dir).write(img, name)
