"""Config subpackage.

- vision: central knobs for recognition thresholds and the RecognitionConfig struct
"""
from .vision import (
    ZOOM_FACTOR,
    HIST_BINS,
    HIST_RANGES,
    RATIO_THRESHOLD,
    SINGLE_CENTROID_DISTANCE,
    ALL_CENTROID_DISTANCE,
    ACCEPTANCE_RATIO,
    OCR_MODEL_FILES,
    RecognitionConfig,
)

__all__ = [
    "ZOOM_FACTOR",
    "HIST_BINS",
    "HIST_RANGES",
    "RATIO_THRESHOLD",
    "SINGLE_CENTROID_DISTANCE",
    "ALL_CENTROID_DISTANCE",
    "ACCEPTANCE_RATIO",
    "OCR_MODEL_FILES",
    "RecognitionConfig",
]
