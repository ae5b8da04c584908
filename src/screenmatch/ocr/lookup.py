"""Filters over OCR output: look up known labels among detected text."""
from __future__ import annotations

from typing import Iterable, List, Optional
import logging

import numpy as np

from ..vision.geometry import Rect, TextArea
from .engine import TextDetector

logger = logging.getLogger(__name__)


def find_text(detector: TextDetector, frame: np.ndarray, label: str) -> Optional[Rect]:
    """Rect of the first detected text equal to label, else None."""
    for area in detector.detect(frame):
        if area.text == label:
            return area.rect
    return None


def find_texts(detector: TextDetector, frame: np.ndarray, labels: Iterable[str]) -> List[TextArea]:
    """Every detected area whose text is one of labels, in detection order.

    Each area is emitted at most once, however often its text repeats in labels.
    """
    wanted = frozenset(labels)
    found: List[TextArea] = []
    for area in detector.detect(frame):
        logger.debug("ocr detect: %s", area.text)
        if area.text in wanted:
            found.append(area)
    return found
