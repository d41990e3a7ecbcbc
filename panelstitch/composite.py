from __future__ import annotations
import logging
import cv2
import numpy as np

from .align import FrameAligner
from .config import RenderConfig
from .errors import BackendFailure, StitchError
from .geometry import Rect

logger = logging.getLogger(__name__)

class CompositeBuilder:
    """
    status bar + merged scrollable column (+ footer), then optional chrome trim.
    Works on a FrameSet whose region is already detected; returns a new image
    or raises, never a partial result.
    """
    def __init__(self, cfg: RenderConfig, on_candidate=None):
        self.cfg = cfg
        self.aligner = FrameAligner.from_config(cfg, on_candidate=on_candidate)

    def merged_column(self, frame_set):
        views = frame_set.views(self.cfg.window_width_ratio)
        return self.aligner.fold(views, workers=self.cfg.workers).image

    def trim_rect(self, frame_set, width: int, height: int) -> Rect:
        margins = self.cfg.margins
        margin_lr = frame_set.left_right_margin(margins)
        margin_top = frame_set.top_margin(self.cfg.trims_title_bar, margins)
        if self.cfg.merge_footer:
            crop_h = height - margin_top - frame_set.bottom_margin(margins)
        else:
            # bottom edge is the raw cut of the list, not chrome
            crop_h = height - margin_top
        crop_w = width - 2 * margin_lr
        if crop_w <= 0 or crop_h <= 0:
            raise BackendFailure(
                f"Trim leaves nothing: {crop_w}x{crop_h} from {width}x{height}.", stage="chrome trim")
        return Rect(margin_lr, margin_top, crop_w, crop_h)

    def build(self, frame_set):
        stage = "composite"
        try:
            stage = "alignment"
            column = self.merged_column(frame_set)
            stage = "composite"
            parts = [frame_set.status_image(), column]
            if self.cfg.merge_footer:
                parts.append(frame_set.footer_image())
            merged = np.vstack(parts)

            if self.cfg.chrome_trim_mode is not None:
                stage = "margin detection"
                rect = self.trim_rect(frame_set, merged.shape[1], merged.shape[0])
                logger.debug("Chrome trim %s -> %s", self.cfg.chrome_trim_mode.value, rect)
                merged = rect.crop(merged)
        except StitchError as e:
            raise e.at_stage(stage)
        except cv2.error as e:
            raise BackendFailure(str(e), stage=stage) from e

        logger.info("Composite built from %d frame(s): %dx%d",
                    len(frame_set.frames), merged.shape[1], merged.shape[0])
        return np.ascontiguousarray(merged)
