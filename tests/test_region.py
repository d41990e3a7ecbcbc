import numpy as np
import pytest

from panelstitch.errors import BackendFailure, RegionNotFound
from panelstitch.frame import Frame, FrameSet
from panelstitch.geometry import Rect
from panelstitch.region import RegionDetector

from .synthetic_fixtures import (HEIGHT, SCROLL_BOTTOM, SCROLL_LEFT, SCROLL_RIGHT, SCROLL_TOP,
                                 make_canvas, make_scroll_frames)


def _frame_set(count: int = 3) -> FrameSet:
    frames = make_scroll_frames(make_canvas(), count=count)
    return FrameSet([Frame(img, index=i) for i, img in enumerate(frames, start=1)])


def test_region_covers_scrolled_list() -> None:
    fs = _frame_set()
    region = fs.detect_region()

    assert region == Rect(SCROLL_LEFT, SCROLL_TOP, SCROLL_RIGHT - SCROLL_LEFT, SCROLL_BOTTOM - SCROLL_TOP)
    assert all(frame.region == region for frame in fs.frames)


def test_region_lies_in_scanning_band() -> None:
    fs = _frame_set()
    region = fs.detect_region()
    top, bottom = RegionDetector().band(HEIGHT)

    assert region.width > 0 and region.height > 0
    assert top <= region.y and region.bottom <= bottom


def test_changes_outside_band_are_ignored() -> None:
    frames = make_scroll_frames(make_canvas(), count=2)
    # a clock ticking in the status bar
    frames[1][5:15, 150:190] = 255
    region = RegionDetector().detect_images(frames[0], frames[1])
    assert region.y == SCROLL_TOP


def test_small_specks_are_ignored() -> None:
    frames = make_scroll_frames(make_canvas(), count=2)
    frames[1][350:353, 5:8] = 0   # 3x3 speck inside the band, outside the list
    region = RegionDetector().detect_images(frames[0], frames[1])
    assert region.x == SCROLL_LEFT
    assert region.bottom == SCROLL_BOTTOM


def test_identical_frames_have_no_region() -> None:
    img = make_scroll_frames(make_canvas(), count=1)[0]
    fs = FrameSet([Frame(img, index=1), Frame(img.copy(), index=2)])
    with pytest.raises(RegionNotFound) as info:
        fs.detect_region()
    assert "region detection" in str(info.value)


def test_size_mismatch_is_backend_failure() -> None:
    a = np.zeros((100, 50, 3), dtype=np.uint8)
    b = np.zeros((90, 50, 3), dtype=np.uint8)
    with pytest.raises(BackendFailure):
        RegionDetector().detect_images(a, b)
