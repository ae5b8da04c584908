"""
Recognition facade.

Composes the template store + matcher, the feature store + matcher, the
position cache and the OCR collaborator behind one object:

    rec = Recognizer()
    rec.register_template("start", "assets/start.png")
    kind, score, rect = rec.locate(frame, "start", 0.9)

Not-found outcomes are values (JUST_RETURN results, None, empty lists).
Registration and OCR initialisation report failure by returning False.
"""
from __future__ import annotations

from pathlib import Path
from typing import AbstractSet, Iterable, List, Optional, Sequence, Union
import logging

import numpy as np

from .config.vision import RecognitionConfig
from .core.position_cache import PositionCache
from .ocr.engine import DnnOcrEngine, OcrNotInitializedError, TextDetector
from .ocr.lookup import find_text, find_texts
from .vision.features import FeatureMatcher
from .vision.geometry import Rect, TextArea
from .vision.matcher import MatchResult, TemplateMatcher
from .vision.stores import FeatureStore, TemplateStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Recognizer:
    def __init__(
        self,
        config: Optional[RecognitionConfig] = None,
        ocr: Optional[TextDetector] = None,
        cache: Optional[PositionCache] = None,
        debug_dir: Optional[PathLike] = None,
    ) -> None:
        self.config = config or RecognitionConfig()
        self.templates = TemplateStore()
        self.features = FeatureStore(self.config.feature_contrast_threshold)
        self.cache = cache if cache is not None else PositionCache()
        self.template_matcher = TemplateMatcher(
            self.templates, self.cache, self.config.zoom_factor, self.config.hist_bins
        )
        self.feature_matcher = FeatureMatcher(
            self.features, self.config, Path(debug_dir) if debug_dir else None
        )
        # An injected detector is assumed ready; the bundled engine needs init_ocr_models()
        self._ocr: TextDetector = ocr if ocr is not None else DnnOcrEngine(self.config)

    # ----------------------------- ingestion -----------------------------
    def register_template(self, label: str, path: PathLike) -> bool:
        return self.templates.register(label, path)

    def register_feature(self, label: str, path: PathLike) -> bool:
        return self.features.register(label, path)

    @property
    def template_labels(self) -> List[str]:
        return self.templates.labels()

    @property
    def feature_labels(self) -> List[str]:
        return self.features.labels()

    # ----------------------------- queries -----------------------------
    def locate(self, frame: np.ndarray, label: str, threshold: float) -> MatchResult:
        return self.template_matcher.locate(frame, label, threshold)

    def locate_by_feature(self, frame: np.ndarray, label: str) -> Optional[TextArea]:
        return self.feature_matcher.locate_by_feature(frame, label)

    def locate_all_by_feature(self, frame: np.ndarray) -> List[TextArea]:
        return self.feature_matcher.locate_all_by_feature(frame)

    def find_text(
        self,
        frame: np.ndarray,
        labels: Union[str, AbstractSet[str], Sequence[str], Iterable[str]],
    ):
        """OCR lookup.

        A single label returns the Rect of its first occurrence (or None); a
        set or sequence of labels returns every matching TextArea in
        detection order.
        """
        if isinstance(labels, str):
            return self.find_text_rect(frame, labels)
        return find_texts(self._ocr, frame, labels)

    def find_text_rect(self, frame: np.ndarray, label: str) -> Optional[Rect]:
        return find_text(self._ocr, frame, label)

    # ----------------------------- cache control -----------------------------
    @property
    def cache_enabled(self) -> bool:
        return self.cache.enabled

    def set_cache_enabled(self, enabled: bool) -> None:
        self.cache.enable(enabled)

    def clear_cache(self) -> None:
        self.cache.clear()

    # ----------------------------- OCR lifecycle -----------------------------
    def init_ocr_models(self, directory: PathLike) -> bool:
        init = getattr(self._ocr, "init_models", None)
        if init is None:
            logger.info("OCR detector %s needs no model directory", type(self._ocr).__name__)
            return True
        return bool(init(directory))

    def set_ocr_threads(self, count: int) -> None:
        set_threads = getattr(self._ocr, "set_threads", None)
        if set_threads is not None:
            set_threads(count)

    @property
    def ocr_ready(self) -> bool:
        return bool(getattr(self._ocr, "ready", True))


__all__ = ["Recognizer", "OcrNotInitializedError"]
