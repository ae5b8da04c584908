"""Pytest configuration.

Ensures src/ is on sys.path so tests can import `screenmatch.*` without an
install, and provides synthetic frame helpers.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

BACKGROUND = (40, 40, 40)


def make_patch(rng: np.random.Generator, width: int, height: int) -> np.ndarray:
    """Colourful textured BGR patch: smooth noise plus random shapes."""
    coarse = rng.integers(0, 256, size=(max(2, height // 6), max(2, width // 6), 3), dtype=np.uint8)
    patch = cv2.resize(coarse, (width, height), interpolation=cv2.INTER_LINEAR)
    for _ in range(12):
        color = tuple(int(c) for c in rng.integers(0, 256, size=3))
        if rng.random() < 0.5:
            center = (int(rng.integers(0, width)), int(rng.integers(0, height)))
            cv2.circle(patch, center, int(rng.integers(3, max(4, min(width, height) // 4))), color, -1)
        else:
            x0, y0 = int(rng.integers(0, width)), int(rng.integers(0, height))
            x1, y1 = int(rng.integers(0, width)), int(rng.integers(0, height))
            cv2.rectangle(patch, (x0, y0), (x1, y1), color, -1)
    return patch


def make_frame(width: int = 320, height: int = 240) -> np.ndarray:
    frame = np.empty((height, width, 3), np.uint8)
    frame[:] = BACKGROUND
    return frame


def paste(frame: np.ndarray, patch: np.ndarray, x: int, y: int) -> np.ndarray:
    out = frame.copy()
    h, w = patch.shape[:2]
    out[y:y + h, x:x + w] = patch
    return out


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def write_image(tmp_path):
    """Write a BGR image as PNG under tmp_path and return its path."""

    def _write(name: str, img: np.ndarray) -> Path:
        path = tmp_path / f"{name}.png"
        assert cv2.imwrite(str(path), img)
        return path

    return _write
