import itertools

import numpy as np
import pytest

from panelstitch import align
from panelstitch.align import FrameAligner, MatchOffset, ScrollableRegionView
from panelstitch.errors import AlignmentNotFound, AlignmentTimeout
from panelstitch.frame import Frame
from panelstitch.geometry import Rect

from .synthetic_fixtures import (SCROLL_H, SCROLL_LEFT, SCROLL_RIGHT, SCROLL_TOP, SCROLL_W,
                                 make_block_noise, make_canvas, make_scroll_frames)

REGION = Rect(SCROLL_LEFT, SCROLL_TOP, SCROLL_W, SCROLL_H)
STEP = 60


def _views(count: int = 3, step: int = STEP):
    frames = make_scroll_frames(make_canvas(), step=step, count=count)
    return [Frame(img, index=i, region=REGION).scrollable_view() for i, img in enumerate(frames, start=1)]


def _plain_view(img, label: str) -> ScrollableRegionView:
    return ScrollableRegionView(img, Rect(0, 0, img.shape[1], img.shape[0]), label)


def test_scrolled_by_fifty_rows() -> None:
    first = make_block_noise(150, 100, seed=3)
    second = np.vstack((first[50:150], make_block_noise(50, 100, seed=4)))
    a, b = _plain_view(first, "1"), _plain_view(second, "2")

    aligner = FrameAligner()
    offset = aligner.detect_match(a, b)
    merged = aligner.merge(a, b, offset)

    assert (offset.self_offset, offset.other_offset) == (50, 0)
    assert merged.height == 200
    assert merged.label == "1-2"


def test_matching_window_is_narrowed() -> None:
    view = _views(count=1)[0]
    assert view.window == Rect(SCROLL_LEFT, 0, int(SCROLL_W * 0.98), SCROLL_H)
    assert view.image.shape[1] == 200


def test_alignment_is_idempotent() -> None:
    a, b = _views(count=2)
    aligner = FrameAligner()
    first = aligner.detect_match(a, b)
    second = aligner.detect_match(a, b)
    assert first == second
    assert (first.self_offset, first.other_offset) == (STEP, 0)


def test_merge_keeps_later_tail_byte_for_byte() -> None:
    a, b = _views(count=2)
    aligner = FrameAligner()
    offset = aligner.detect_match(a, b)
    merged = aligner.merge(a, b, offset)

    assert np.array_equal(merged.image[offset.self_offset:], b.image[offset.other_offset:])
    assert np.array_equal(merged.image[:offset.self_offset], a.image[:offset.self_offset])


def test_fold_is_left_fold_and_rebuilds_canvas() -> None:
    a, b, c = _views(count=3)
    aligner = FrameAligner()

    folded = aligner.fold([a, b, c])
    stepwise = aligner.merge(aligner.merge(a, b), c)

    assert np.array_equal(folded.image, stepwise.image)
    assert folded.height == SCROLL_H + 2 * STEP
    assert folded.window.height == folded.height
    expected = make_canvas()[:SCROLL_H + 2 * STEP]
    assert np.array_equal(folded.image[:, SCROLL_LEFT:SCROLL_RIGHT], expected)


def test_fold_is_order_sensitive() -> None:
    a, b, c = _views(count=3)
    aligner = FrameAligner()

    forward = aligner.fold([a, b, c])
    try:
        backward = aligner.fold([c, b, a])
    except AlignmentNotFound:
        return
    assert backward.image.shape != forward.image.shape or not np.array_equal(backward.image, forward.image)


def test_identical_views_merge_to_later_view() -> None:
    a = _views(count=1)[0]
    aligner = FrameAligner()
    offset = aligner.detect_match(a, a)
    merged = aligner.merge(a, a, offset)

    assert (offset.self_offset, offset.other_offset) == (0, 0)
    assert np.array_equal(merged.image, a.image)


def test_unrelated_views_do_not_match() -> None:
    a = _plain_view(make_block_noise(120, 80, seed=1), "4")
    b = _plain_view(make_block_noise(120, 80, seed=2), "5")
    with pytest.raises(AlignmentNotFound) as info:
        FrameAligner().detect_match(a, b)
    assert "frames 4-5" in str(info.value)


def test_too_short_view_does_not_match() -> None:
    a = _plain_view(make_block_noise(5, 80, seed=1), "1")
    with pytest.raises(AlignmentNotFound):
        FrameAligner().detect_match(a, a)


def test_candidate_hook_sees_accepted_match() -> None:
    a, b = _views(count=2)
    seen = []
    FrameAligner(on_candidate=seen.append).detect_match(a, b)

    assert len(seen) == 1
    candidate = seen[0]
    assert candidate.accepted
    assert (candidate.strip, candidate.self_offset, candidate.other_offset) == (0, STEP, 0)
    assert candidate.score > 0.95
    assert np.array_equal(candidate.window, candidate.probe)


def test_candidate_hook_sees_rejected_strips() -> None:
    a, b, c = _views(count=3)
    seen = []
    offset = FrameAligner(on_candidate=seen.append).detect_match(c, b)

    strip_h = SCROLL_H // 10
    assert [cand.accepted for cand in seen] == [False, False, False, True]
    assert (offset.self_offset, offset.other_offset, offset.strip) == (3 * strip_h - STEP, 3 * strip_h, 3)


def test_timeout_is_reported(monkeypatch) -> None:
    a, b = _views(count=2)
    ticks = itertools.count(0.0, 10.0)
    monkeypatch.setattr(align.time, "monotonic", lambda: next(ticks))

    with pytest.raises(AlignmentTimeout) as info:
        FrameAligner(timeout=1.0).detect_match(a, b)
    assert "frames 1-2" in str(info.value)


def test_parallel_fold_matches_sequential() -> None:
    views = _views(count=5, step=52)
    aligner = FrameAligner()

    sequential = aligner.fold(views)
    parallel = aligner.fold(views, workers=3)

    assert np.array_equal(sequential.image, parallel.image)
    assert parallel.label == "1-5"


def test_parallel_fold_realigns_pairs_matched_on_later_strips() -> None:
    views = _views(count=3)[::-1]
    aligner = FrameAligner()

    sequential = aligner.fold(views)
    parallel = aligner.fold(views, workers=2)

    assert np.array_equal(sequential.image, parallel.image)


def test_parallel_fold_realigns_unmatched_pairs() -> None:
    content = make_block_noise(300, 60, block=1, seed=5)
    a = _plain_view(content[0:100], "1")
    b = _plain_view(content[80:95], "2")     # too short to hold a strip of c
    c = _plain_view(content[50:250], "3")    # continues a, not b
    aligner = FrameAligner()

    sequential = aligner.fold([a, b, c])
    parallel = aligner.fold([a, b, c], workers=2)

    assert np.array_equal(sequential.image, content[0:250])
    assert np.array_equal(parallel.image, sequential.image)
