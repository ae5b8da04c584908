"""
Named registries of reference images.

- TemplateStore: label -> decoded BGR reference image (template matching)
- FeatureStore: label -> keypoints + descriptor matrix (feature matching)

Registration decodes the file once; a missing or corrupt file makes
register() return False and leaves the store unchanged. Re-registering a
label replaces its entry. Iteration follows registration order.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging
import threading

import cv2
import numpy as np

from ..config.vision import FEATURE_CONTRAST_THRESHOLD
from .preprocess import load_image, to_gray

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FeatureDescriptorSet:
    """Keypoints of one image and their descriptors (one float32 row each)."""

    keypoints: Tuple[cv2.KeyPoint, ...]
    descriptors: Optional[np.ndarray]
    # Source image, kept for debug drawings of registered labels
    image: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.keypoints)

    def points(self) -> np.ndarray:
        """Keypoint coordinates as an (N, 2) float32 array."""
        if not self.keypoints:
            return np.empty((0, 2), np.float32)
        return np.float32([kp.pt for kp in self.keypoints])


def extract_features(img: np.ndarray, contrast_threshold: float = FEATURE_CONTRAST_THRESHOLD) -> FeatureDescriptorSet:
    """Detect SIFT keypoints on the intensity image and compute descriptors.

    A detector is created per call; SIFT instances are not shared between
    threads.
    """
    detector = cv2.SIFT_create(contrastThreshold=float(contrast_threshold))
    keypoints, descriptors = detector.detectAndCompute(to_gray(img), None)
    if descriptors is not None and descriptors.dtype != np.float32:
        descriptors = descriptors.astype(np.float32)
    return FeatureDescriptorSet(tuple(keypoints or ()), descriptors)


class _Registry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, object] = {}

    def _store(self, label: str, value) -> None:
        with self._lock:
            # Re-insert so a replaced label moves to the end like a new one
            self._items.pop(label, None)
            self._items[label] = value

    def _lookup(self, label: str):
        with self._lock:
            return self._items.get(label)

    def labels(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __contains__(self, label: object) -> bool:
        with self._lock:
            return label in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class TemplateStore(_Registry):
    """Label -> reference image used by the template matcher."""

    def register(self, label: str, path: PathLike) -> bool:
        img = load_image(path)
        if img is None:
            logger.warning("template %r: cannot decode %s", label, path)
            return False
        self.add(label, img)
        logger.info("template %r registered (%dx%d)", label, img.shape[1], img.shape[0])
        return True

    def add(self, label: str, image: np.ndarray) -> None:
        """Store an already decoded BGR image. The store keeps a private copy."""
        img = np.array(image, copy=True)
        img.setflags(write=False)
        self._store(label, img)

    def lookup(self, label: str) -> Optional[np.ndarray]:
        return self._lookup(label)


class FeatureStore(_Registry):
    """Label -> FeatureDescriptorSet used by the feature matcher."""

    def __init__(self, contrast_threshold: float = FEATURE_CONTRAST_THRESHOLD) -> None:
        super().__init__()
        self.contrast_threshold = contrast_threshold

    def register(self, label: str, path: PathLike) -> bool:
        img = load_image(path)
        if img is None:
            logger.warning("feature %r: cannot decode %s", label, path)
            return False
        features = self.add(label, img)
        logger.info("feature %r registered (%d keypoints)", label, len(features))
        return True

    def add(self, label: str, image: np.ndarray) -> FeatureDescriptorSet:
        img = np.array(image, copy=True)
        img.setflags(write=False)
        features = replace(extract_features(img, self.contrast_threshold), image=img)
        self._store(label, features)
        return features

    def lookup(self, label: str) -> Optional[FeatureDescriptorSet]:
        return self._lookup(label)

    def items(self) -> Iterator[Tuple[str, FeatureDescriptorSet]]:
        """Snapshot of (label, features) pairs in registration order."""
        with self._lock:
            snapshot: Sequence[Tuple[str, FeatureDescriptorSet]] = list(self._items.items())  # type: ignore[arg-type]
        return iter(snapshot)
