"""
Template matching with a position-cache fast path.

locate() answers "where is <label> in this frame":
- unregistered label -> JUST_RETURN, score 0, empty rect
- cached label (cache enabled) -> COMPARE_HIST: histogram re-verification of
  the cached rect, no geometric search. A low score means the element moved
  or changed, not that it is absent.
- otherwise -> MATCH_TEMPLATE: HSV normalized cross-correlation search;
  confident hits (score >= threshold) are cached when caching is enabled.

Returned rects are the match box shrunk about its center (zoom_factor).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

import numpy as np

from ..config.vision import HIST_BINS, ZOOM_FACTOR
from ..core.position_cache import PositionCache
from .geometry import Rect
from .preprocess import best_correlation, crop, hist_similarity, hs_histogram
from .stores import TemplateStore

logger = logging.getLogger(__name__)


class AlgorithmType(Enum):
    JUST_RETURN = "JustReturn"
    COMPARE_HIST = "CompareHist"
    MATCH_TEMPLATE = "MatchTemplate"


@dataclass(frozen=True)
class MatchResult:
    algorithm: AlgorithmType
    score: float = 0.0
    rect: Rect = field(default_factory=Rect)

    def __iter__(self):
        # Allows `kind, score, rect = matcher.locate(...)`
        return iter((self.algorithm, self.score, self.rect))


NOT_REGISTERED = MatchResult(AlgorithmType.JUST_RETURN, 0.0, Rect())


class TemplateMatcher:
    def __init__(
        self,
        templates: TemplateStore,
        cache: PositionCache,
        zoom_factor: float = ZOOM_FACTOR,
        hist_bins=HIST_BINS,
    ) -> None:
        self.templates = templates
        self.cache = cache
        self.zoom_factor = zoom_factor
        self.hist_bins = tuple(hist_bins)

    def locate(self, frame: np.ndarray, label: str, confirm_threshold: float) -> MatchResult:
        templ = self.templates.lookup(label)
        if templ is None:
            logger.debug("locate %r: not registered", label)
            return NOT_REGISTERED

        if self.cache.enabled:
            entry = self.cache.get(label)
            if entry is not None:
                score = hist_similarity(crop(frame, entry.rect), entry.histogram, self.hist_bins)
                logger.debug("locate %r: hist %.3f at %s", label, score, entry.rect.as_tuple())
                return MatchResult(AlgorithmType.COMPARE_HIST, score, entry.rect.center_zoom(self.zoom_factor))

        th, tw = templ.shape[:2]
        fh, fw = frame.shape[:2]
        if th > fh or tw > fw:
            logger.warning("locate %r: template %dx%d larger than frame %dx%d", label, tw, th, fw, fh)
            return MatchResult(AlgorithmType.MATCH_TEMPLATE, 0.0, Rect())

        score, (x, y) = best_correlation(frame, templ)
        raw = Rect(x, y, tw, th)
        if score >= confirm_threshold and self.cache.enabled:
            if self.cache.put(label, raw, hs_histogram(crop(frame, raw), self.hist_bins)):
                logger.debug("locate %r: cached %s", label, raw.as_tuple())
        logger.debug("locate %r: template %.3f at %s", label, score, raw.as_tuple())
        return MatchResult(AlgorithmType.MATCH_TEMPLATE, score, raw.center_zoom(self.zoom_factor))

    def cached_rect(self, label: str) -> Optional[Rect]:
        entry = self.cache.get(label)
        return entry.rect if entry is not None else None
