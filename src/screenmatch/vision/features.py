"""
Keypoint-descriptor matching of registered labels inside a frame.

Pipeline per label (one implementation, parameterised by FeatureFilterParams):
  1. nearest-neighbour descriptor matching, label descriptors against scene
  2. ratio pruning: keep matches with distance < ratio * max distance
  3. RANSAC fundamental-matrix consensus, keep inliers
  4. centroid pruning: drop inliers whose |dx| or |dy| from the inlier mean
     reaches the centroid distance
  5. accept when survivors >= acceptance_ratio * label keypoint count and
     return the survivors' bounding box

locate_by_feature() confirms one label with a 200 px centroid tolerance;
locate_all_by_feature() scans every label with a looser 300 px tolerance,
reusing one scene extraction.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import logging

import cv2
import numpy as np

from ..config.vision import (
    ACCEPTANCE_RATIO,
    RANSAC_CONFIDENCE,
    RANSAC_THRESHOLD,
    RATIO_THRESHOLD,
    SINGLE_CENTROID_DISTANCE,
    RecognitionConfig,
)
from .geometry import Rect, TextArea
from .stores import FeatureDescriptorSet, FeatureStore, extract_features

logger = logging.getLogger(__name__)

# findFundamentalMat with FM_RANSAC needs at least this many pairs
MIN_RANSAC_POINTS = 8


@dataclass(frozen=True)
class FeatureFilterParams:
    ratio_threshold: float = RATIO_THRESHOLD
    centroid_distance: float = SINGLE_CENTROID_DISTANCE
    acceptance_ratio: float = ACCEPTANCE_RATIO
    ransac_threshold: float = RANSAC_THRESHOLD
    ransac_confidence: float = RANSAC_CONFIDENCE

    @classmethod
    def single_label(cls, config: RecognitionConfig) -> "FeatureFilterParams":
        """Parameters for confirming one label (tight centroid tolerance)."""
        return cls._from_config(config, config.single_centroid_distance)

    @classmethod
    def all_labels(cls, config: RecognitionConfig) -> "FeatureFilterParams":
        """Parameters for scanning every registered label."""
        return cls._from_config(config, config.all_centroid_distance)

    @classmethod
    def _from_config(cls, config: RecognitionConfig, centroid_distance: float) -> "FeatureFilterParams":
        return cls(
            ratio_threshold=config.ratio_threshold,
            centroid_distance=centroid_distance,
            acceptance_ratio=config.acceptance_ratio,
            ransac_threshold=config.ransac_threshold,
            ransac_confidence=config.ransac_confidence,
        )


# ----------------------------- pipeline steps -----------------------------

def match_descriptors(query: FeatureDescriptorSet, scene: FeatureDescriptorSet) -> List[cv2.DMatch]:
    """Best scene match for every query descriptor (FLANN KD-tree).

    A matcher is built per call so concurrent callers never share one.
    """
    if query.descriptors is None or scene.descriptors is None:
        return []
    if len(query.descriptors) == 0 or len(scene.descriptors) == 0:
        return []
    matcher = cv2.FlannBasedMatcher(dict(algorithm=1, trees=5), dict(checks=50))
    return list(matcher.match(query.descriptors, scene.descriptors))


def ratio_prune(matches: Sequence[cv2.DMatch], ratio: float, query_size: int, scene_size: int) -> List[cv2.DMatch]:
    """Keep matches strictly closer than ratio * the largest observed distance."""
    if not matches:
        return []
    max_dist = max(m.distance for m in matches)
    limit = max_dist * ratio
    return [
        m for m in matches
        if m.distance < limit and 0 <= m.queryIdx < query_size and 0 <= m.trainIdx < scene_size
    ]


def ransac_inliers(
    query_pts: np.ndarray,
    scene_pts: np.ndarray,
    threshold: float = RANSAC_THRESHOLD,
    confidence: float = RANSAC_CONFIDENCE,
) -> np.ndarray:
    """Boolean inlier mask from a RANSAC fundamental-matrix fit.

    Too few pairs, or an estimator failure, yields an all-False mask.
    """
    n = len(query_pts)
    if n < MIN_RANSAC_POINTS:
        return np.zeros(n, dtype=bool)
    try:
        _, mask = cv2.findFundamentalMat(
            np.float32(query_pts).reshape(-1, 2),
            np.float32(scene_pts).reshape(-1, 2),
            cv2.FM_RANSAC,
            float(threshold),
            float(confidence),
        )
    except cv2.error as exc:
        logger.debug("findFundamentalMat failed: %s", exc)
        return np.zeros(n, dtype=bool)
    if mask is None or len(mask) != n:
        return np.zeros(n, dtype=bool)
    return mask.ravel().astype(bool)


def centroid_mask(points: np.ndarray, max_distance: float) -> np.ndarray:
    """True for points whose horizontal and vertical offsets from the mean stay below max_distance."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        return np.zeros(0, dtype=bool)
    off = np.abs(pts - pts.mean(axis=0))
    return (off[:, 0] < max_distance) & (off[:, 1] < max_distance)


def centroid_filter(points: np.ndarray, max_distance: float) -> np.ndarray:
    """Drop points whose horizontal or vertical offset from the mean reaches max_distance."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return pts[centroid_mask(pts, max_distance)]


def accepts(good_count: int, query_count: int, acceptance_ratio: float) -> bool:
    return good_count > 0 and good_count >= query_count * acceptance_ratio


def evaluate_inliers(
    label: str,
    scene_points: np.ndarray,
    query_count: int,
    params: FeatureFilterParams,
) -> Optional[TextArea]:
    """Centroid pruning, acceptance test and bounding box over RANSAC inliers."""
    if len(scene_points) == 0:
        return None
    good = centroid_filter(scene_points, params.centroid_distance)
    logger.debug("%s %d / %d", label, len(good), query_count)
    if not accepts(len(good), query_count, params.acceptance_ratio):
        return None
    ints = np.rint(good).astype(int)
    return TextArea(label, Rect.from_points((int(x), int(y)) for x, y in ints))


def run_pipeline(
    label: str,
    query: FeatureDescriptorSet,
    scene: FeatureDescriptorSet,
    params: FeatureFilterParams,
    debug_frame: Optional[np.ndarray] = None,
    debug_dir: Optional[Path] = None,
) -> Optional[TextArea]:
    matches = ratio_prune(
        match_descriptors(query, scene), params.ratio_threshold, len(query.keypoints), len(scene.keypoints)
    )
    if not matches:
        logger.debug("%s: no correspondences survive ratio pruning", label)
        return None

    query_pts = np.float32([query.keypoints[m.queryIdx].pt for m in matches])
    scene_pts = np.float32([scene.keypoints[m.trainIdx].pt for m in matches])
    mask = ransac_inliers(query_pts, scene_pts, params.ransac_threshold, params.ransac_confidence)
    if not mask.any():
        logger.debug("%s: no RANSAC inliers out of %d", label, len(matches))
        return None

    result = evaluate_inliers(label, scene_pts[mask], len(query.keypoints), params)
    if debug_dir is not None and debug_frame is not None:
        inlier_matches = [m for m, keep in zip(matches, mask) if keep]
        good = centroid_mask(scene_pts[mask], params.centroid_distance)
        good_matches = [m for m, keep in zip(inlier_matches, good) if keep]
        _save_debug(debug_dir, label, query, scene, debug_frame, inlier_matches, good_matches)
    return result


def _save_debug(
    debug_dir: Path,
    label: str,
    query: FeatureDescriptorSet,
    scene: FeatureDescriptorSet,
    frame: np.ndarray,
    ransac_matches: Sequence[cv2.DMatch],
    good_matches: Sequence[cv2.DMatch],
) -> None:
    """Write reference-vs-frame match drawings: RANSAC inliers and the matches kept after centroid pruning."""
    if query.image is None:
        logger.debug("feature %r: no reference image kept, skipping debug drawings", label)
        return
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in label)
    out_dir = Path(debug_dir)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        for suffix, drawn in (("ransac", ransac_matches), ("good", good_matches)):
            canvas = cv2.drawMatches(query.image, query.keypoints, frame, scene.keypoints, list(drawn), None)
            cv2.imwrite(str(out_dir / f"feature-{safe}-{suffix}.png"), canvas)
    except (OSError, cv2.error):
        logger.debug("feature debug artifact for %r not written", label, exc_info=True)


# ----------------------------- matcher -----------------------------

class FeatureMatcher:
    """Single-label and all-labels entry points over one shared pipeline."""

    def __init__(
        self,
        store: FeatureStore,
        config: Optional[RecognitionConfig] = None,
        debug_dir: Optional[Path] = None,
    ) -> None:
        cfg = config or RecognitionConfig()
        self.store = store
        self.contrast_threshold = cfg.feature_contrast_threshold
        self.workers = max(1, int(cfg.match_all_workers))
        self.debug_dir = Path(debug_dir) if debug_dir else None
        self.single_params = FeatureFilterParams.single_label(cfg)
        self.all_params = FeatureFilterParams.all_labels(cfg)

    def _scene(self, frame: np.ndarray) -> FeatureDescriptorSet:
        return extract_features(frame, self.contrast_threshold)

    def locate_by_feature(self, frame: np.ndarray, label: str) -> Optional[TextArea]:
        query = self.store.lookup(label)
        if query is None:
            logger.debug("feature %r: not registered", label)
            return None
        scene = self._scene(frame)
        return run_pipeline(label, query, scene, self.single_params, frame, self.debug_dir)

    def locate_all_by_feature(self, frame: np.ndarray) -> List[TextArea]:
        scene = self._scene(frame)
        entries: List[Tuple[str, FeatureDescriptorSet]] = list(self.store.items())

        def _one(entry: Tuple[str, FeatureDescriptorSet]) -> Optional[TextArea]:
            label, query = entry
            return run_pipeline(label, query, scene, self.all_params, frame, self.debug_dir)

        if self.workers > 1 and len(entries) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                results = list(executor.map(_one, entries))
        else:
            results = [_one(e) for e in entries]
        found = [r for r in results if r is not None]
        logger.debug("feature scan: %d/%d labels found", len(found), len(entries))
        return found
