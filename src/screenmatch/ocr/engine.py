"""
Text detection + recognition backend.

The recognizer only needs something that turns a BGR frame into a list of
TextArea in detection order (the TextDetector protocol). DnnOcrEngine is the
bundled implementation: a DB text detector, an angle classifier and a CRNN
recognizer loaded from ONNX files through OpenCV's dnn module.

Model directory layout (all four required):
    dbnet.onnx, angle_net.onnx, crnn_lite_lstm.onnx, keys.txt
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union
import logging
import threading

import cv2
import numpy as np

from ..config.vision import (
    OCR_CLS_MODEL,
    OCR_DET_MODEL,
    OCR_KEYS_FILE,
    OCR_MODEL_FILES,
    OCR_REC_MODEL,
    RecognitionConfig,
)
from ..vision.geometry import Rect, TextArea

logger = logging.getLogger(__name__)

# Network input geometry
DET_ALIGN = 32
CLS_SIZE = (192, 32)
REC_HEIGHT = 32
REC_WIDTH = 320
# DB detector input normalisation (ImageNet statistics, RGB order)
DET_MEAN = np.float32([0.485, 0.456, 0.406])
DET_STD = np.float32([0.229, 0.224, 0.225])


class OcrNotInitializedError(RuntimeError):
    """An OCR query was issued before init_ocr_models() succeeded."""


class TextDetector(Protocol):
    def detect(self, frame: np.ndarray) -> List[TextArea]:
        ...


def missing_model_files(directory: Union[str, Path]) -> List[str]:
    base = Path(directory)
    return [name for name in OCR_MODEL_FILES if not (base / name).is_file()]


def quad_to_rect(quad: Sequence[Sequence[float]]) -> Rect:
    """Axis-aligned rect around a detected quadrilateral."""
    pts = np.rint(np.asarray(quad, dtype=np.float64).reshape(-1, 2)).astype(int)
    x0, y0 = pts.min(axis=0)
    x1, y1 = pts.max(axis=0)
    return Rect(int(x0), int(y0), int(x1 - x0), int(y1 - y0))


class DnnOcrEngine:
    """OpenCV-dnn OCR: DB detection -> angle classification -> CTC recognition."""

    def __init__(self, config: Optional[RecognitionConfig] = None) -> None:
        self.config = config or RecognitionConfig()
        self._lock = threading.Lock()
        self._detector = None
        self._classifier = None
        self._recognizer = None
        self.threads = self.config.ocr_threads

    @property
    def ready(self) -> bool:
        return self._detector is not None and self._recognizer is not None

    def set_threads(self, count: int) -> None:
        """Set the inference thread count.

        OpenCV keeps one thread pool per process, so this also bounds
        template matching and SIFT extraction running in the same process.
        """
        self.threads = max(1, int(count))
        cv2.setNumThreads(self.threads)
        logger.info("OCR threads set to %d", self.threads)

    def init_models(self, directory: Union[str, Path]) -> bool:
        missing = missing_model_files(directory)
        if missing:
            logger.warning("OCR models missing in %s: %s", directory, ", ".join(missing))
            return False
        base = Path(directory)
        cfg = self.config
        try:
            keys = (base / OCR_KEYS_FILE).read_text(encoding="utf-8").splitlines()

            detector = cv2.dnn_TextDetectionModel_DB(str(base / OCR_DET_MODEL))
            detector.setBinaryThreshold(cfg.ocr_box_thresh)
            detector.setPolygonThreshold(cfg.ocr_box_score_thresh)
            detector.setUnclipRatio(cfg.ocr_unclip_ratio)
            detector.setMaxCandidates(200)

            classifier = cv2.dnn.readNetFromONNX(str(base / OCR_CLS_MODEL))

            recognizer = cv2.dnn_TextRecognitionModel(str(base / OCR_REC_MODEL))
            recognizer.setDecodeType("CTC-greedy")
            recognizer.setVocabulary(keys)
            recognizer.setInputParams(
                scale=1.0 / 127.5, size=(REC_WIDTH, REC_HEIGHT), mean=(127.5, 127.5, 127.5)
            )
        except (cv2.error, OSError, UnicodeDecodeError) as exc:
            logger.warning("OCR models in %s failed to load: %s", directory, exc)
            return False

        with self._lock:
            self._detector = detector
            self._classifier = classifier
            self._recognizer = recognizer
        cv2.setNumThreads(self.threads)
        logger.info("OCR models loaded from %s (%d keys)", base, len(keys))
        return True

    def detect(self, frame: np.ndarray) -> List[TextArea]:
        if not self.ready:
            raise OcrNotInitializedError("call init_ocr_models() with a complete model directory first")
        cfg = self.config
        pad = max(0, int(cfg.ocr_padding))
        padded = cv2.copyMakeBorder(frame, pad, pad, pad, pad, cv2.BORDER_CONSTANT, value=(255, 255, 255))

        # dnn models keep per-call buffers; serialise inference
        with self._lock:
            self._detector.setInputParams(scale=1.0, size=self._det_size(padded), mean=(0.0, 0.0, 0.0), swapRB=False)
            quads, _ = self._detector.detect(_det_input(padded))
            areas: List[TextArea] = []
            for quad in quads:
                pts = np.asarray(quad, dtype=np.float32).reshape(-1, 2)
                if len(pts) != 4:
                    continue
                part = self._upright_crop(padded, pts)
                if part is None:
                    continue
                text = self._recognizer.recognize(part)
                rect = quad_to_rect(pts - pad)
                areas.append(TextArea(text, rect.clip_to(frame.shape[1], frame.shape[0])))
        return areas

    def _det_size(self, img: np.ndarray):
        h, w = img.shape[:2]
        limit = int(self.config.ocr_max_side_len)
        scale = 1.0
        if limit > 0 and max(h, w) > limit:
            scale = limit / float(max(h, w))
        nw = max(DET_ALIGN, int(round(w * scale / DET_ALIGN)) * DET_ALIGN)
        nh = max(DET_ALIGN, int(round(h * scale / DET_ALIGN)) * DET_ALIGN)
        return nw, nh

    def _upright_crop(self, img: np.ndarray, quad: np.ndarray) -> Optional[np.ndarray]:
        """Perspective-crop a text box and flip it when the classifier says it is upside down."""
        src = _order_quad(quad)
        w = int(round(max(np.linalg.norm(src[0] - src[1]), np.linalg.norm(src[2] - src[3]))))
        h = int(round(max(np.linalg.norm(src[0] - src[3]), np.linalg.norm(src[1] - src[2]))))
        if w < 2 or h < 2:
            return None
        dst = np.float32([[0, 0], [w - 1, 0], [w - 1, h - 1], [0, h - 1]])
        part = cv2.warpPerspective(img, cv2.getPerspectiveTransform(src, dst), (w, h))
        if h > w * 1.5:
            part = cv2.rotate(part, cv2.ROTATE_90_COUNTERCLOCKWISE)
        if self._classifier is not None:
            blob = cv2.dnn.blobFromImage(part, 1.0 / 127.5, CLS_SIZE, (127.5, 127.5, 127.5))
            self._classifier.setInput(blob)
            if int(np.argmax(self._classifier.forward())) == 1:
                part = cv2.rotate(part, cv2.ROTATE_180)
        return part


def _det_input(img: np.ndarray) -> np.ndarray:
    """BGR uint8 -> RGB float32 with per-channel mean and std removed."""
    rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0
    return (rgb - DET_MEAN) / DET_STD


def _order_quad(pts: np.ndarray) -> np.ndarray:
    """Order corners as top-left, top-right, bottom-right, bottom-left."""
    s = pts.sum(axis=1)
    d = np.diff(pts, axis=1).ravel()
    return np.float32([pts[np.argmin(s)], pts[np.argmin(d)], pts[np.argmax(s)], pts[np.argmax(d)]])
