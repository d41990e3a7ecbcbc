from __future__ import annotations
import cv2
import numpy as np

BINARY_BRIGHTNESS_THRESHOLD = 127

def to_gray(img):
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

def to_hsv(img):
    return cv2.cvtColor(img, cv2.COLOR_BGR2HSV)

def hsv_mask(bgr, lower, upper):
    """Binary mask (0/255) of pixels whose HSV value lies inside [lower, upper]."""
    return cv2.inRange(to_hsv(bgr), np.array(lower, dtype=np.uint8), np.array(upper, dtype=np.uint8))

def binary_diff(a_bgr, b_bgr, threshold=70):
    """Gray absdiff of two frames, 255 where the difference exceeds threshold."""
    diff = cv2.absdiff(a_bgr, b_bgr)
    _, mask = cv2.threshold(to_gray(diff), threshold, 255, cv2.THRESH_BINARY)
    return mask

# ---------- Transitions along one row/column of a binary mask ----------

def black_after_white(pixels) -> int | None:
    """Index of the first dark pixel that follows a bright one."""
    pixels = np.asarray(pixels)
    white = pixels > BINARY_BRIGHTNESS_THRESHOLD
    if not white.any():
        return None
    start = int(np.argmax(white))
    dark = pixels[start:] <= BINARY_BRIGHTNESS_THRESHOLD
    if not dark.any():
        return None
    return start + int(np.argmax(dark))

def white_after_black(pixels) -> int | None:
    """Index of the first bright pixel that follows a dark one."""
    pixels = np.asarray(pixels)
    dark = pixels < BINARY_BRIGHTNESS_THRESHOLD
    if not dark.any():
        return None
    start = int(np.argmax(dark))
    white = pixels[start:] >= BINARY_BRIGHTNESS_THRESHOLD
    if not white.any():
        return None
    return start + int(np.argmax(white))

def row_transitions(mask, finder):
    return [p for p in (finder(row) for row in mask) if p is not None]

def column_transitions(mask, finder, reverse=False):
    points = []
    for x in range(mask.shape[1]):
        col = mask[:, x]
        p = finder(col[::-1] if reverse else col)
        if p is not None:
            points.append(p)
    return points

def half_mean(points, half: str) -> int:
    """
    Integer mean of one half of the sorted points.
    'upper' keeps the larger values, 'lower' the smaller ones.
    A single point is its own half.
    """
    ordered = sorted(points)
    split = len(ordered) // 2
    kept = ordered[split:] if half == "upper" else ordered[:split]
    if not kept:
        kept = ordered
    return sum(kept) // len(kept)
