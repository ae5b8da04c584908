"""Tesseract-backed TextDetector (requires a local Tesseract install).

Alternative to DnnOcrEngine when the ONNX model set is not available. Each
recognized word becomes one TextArea, in Tesseract's reading order.
"""
from __future__ import annotations

from typing import List, Optional
import logging

import cv2
import numpy as np
import pytesseract

from ..vision.geometry import Rect, TextArea

logger = logging.getLogger(__name__)


class TesseractTextDetector:
    def __init__(self, tesseract_cmd: Optional[str] = None, lang: str = "eng", psm: int = 11) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.threads = 1

    @property
    def ready(self) -> bool:
        try:
            pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            return False
        return True

    def set_threads(self, count: int) -> None:
        # Tesseract reads OMP_THREAD_LIMIT per process; only recorded here
        self.threads = max(1, int(count))

    def detect(self, frame: np.ndarray) -> List[TextArea]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        data = pytesseract.image_to_data(
            rgb, lang=self.lang, config=f"--psm {self.psm}", output_type=pytesseract.Output.DICT
        )
        areas: List[TextArea] = []
        for i, text in enumerate(data.get("text", [])):
            text = (text or "").strip()
            try:
                conf = float(data["conf"][i])
            except (TypeError, ValueError):
                conf = -1.0
            if not text or conf < 0:
                continue
            rect = Rect(int(data["left"][i]), int(data["top"][i]), int(data["width"][i]), int(data["height"][i]))
            areas.append(TextArea(text, rect))
        logger.debug("tesseract: %d words", len(areas))
        return areas
