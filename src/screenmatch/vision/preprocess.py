"""
Pure image preprocessing utilities.

This module contains only stateless, side-effect-free functions used by the
matchers. Frames and reference images are 8-bit BGR arrays as returned by
cv2.imread.

Logging: Functions here avoid heavy logging for performance; callers can
wrap them and log as needed at DEBUG level.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union
import logging

import cv2
import numpy as np

from ..config.vision import HIST_BINS, HIST_RANGES
from .geometry import Rect

logger = logging.getLogger(__name__)


def load_image(path: Union[str, Path]) -> Optional[np.ndarray]:
    """Decode an image file to BGR; None when missing or undecodable."""
    p = Path(path)
    if not p.is_file():
        return None
    # imdecode handles non-ASCII paths that imread chokes on under Windows
    data = np.fromfile(str(p), dtype=np.uint8)
    if data.size == 0:
        return None
    img = cv2.imdecode(data, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        return None
    return img


def to_hsv(bgr: np.ndarray) -> np.ndarray:
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)


def to_gray(img: np.ndarray) -> np.ndarray:
    """Intensity-only representation (passes single-channel input through)."""
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def crop(img: np.ndarray, rect: Rect) -> np.ndarray:
    """Sub-image at rect, clipped to the image bounds (may be empty)."""
    h, w = img.shape[:2]
    r = rect.clip_to(w, h)
    return img[r.y:r.bottom, r.x:r.right]


def hs_histogram(bgr: np.ndarray, bins: Sequence[int] = HIST_BINS) -> np.ndarray:
    """2D hue/saturation histogram, min-max normalized to [0, 1]."""
    hsv = to_hsv(bgr)
    hist = cv2.calcHist([hsv], [0, 1], None, list(bins), list(HIST_RANGES))
    cv2.normalize(hist, hist, 0, 1, cv2.NORM_MINMAX)
    return hist


def hist_similarity(bgr: np.ndarray, reference_hist: np.ndarray, bins: Sequence[int] = HIST_BINS) -> float:
    """1 - Bhattacharyya distance between bgr's histogram and reference_hist.

    Clamped to [0, 1]; an empty region scores 0.
    """
    if bgr is None or bgr.size == 0:
        return 0.0
    dist = cv2.compareHist(hs_histogram(bgr, bins), reference_hist, cv2.HISTCMP_BHATTACHARYYA)
    return _clamp01(1.0 - float(dist))


def best_correlation(image_bgr: np.ndarray, templ_bgr: np.ndarray) -> Tuple[float, Tuple[int, int]]:
    """Normalized cross-correlation search in HSV space.

    Returns (best score, top-left location). A template larger than the
    image cannot be placed and yields (0.0, (0, 0)).
    """
    ih, iw = image_bgr.shape[:2]
    th, tw = templ_bgr.shape[:2]
    if th > ih or tw > iw or th == 0 or tw == 0:
        return 0.0, (0, 0)
    res = cv2.matchTemplate(to_hsv(image_bgr), to_hsv(templ_bgr), cv2.TM_CCOEFF_NORMED)
    # Flat regions divide by ~0 and can leave inf/nan in the response
    res = np.nan_to_num(res, nan=0.0, posinf=0.0, neginf=0.0)
    _, max_val, _, max_loc = cv2.minMaxLoc(res)
    return _clamp01(float(max_val)), (int(max_loc[0]), int(max_loc[1]))


def _clamp01(v: float) -> float:
    if not np.isfinite(v):
        return 0.0
    return min(1.0, max(0.0, v))
