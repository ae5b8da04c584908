"""
Recognition configuration knobs centralization.

All thresholds and toggles live here. The matchers and the facade read them
from a single RecognitionConfig instead of hardcoding values.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Tuple
import logging

logger = logging.getLogger(__name__)

# Rect handed back by locate() is the match box shrunk by this factor
ZOOM_FACTOR: float = 0.8

# Hue/saturation histogram: bins and value ranges (OpenCV 8-bit HSV)
HIST_BINS: Tuple[int, int] = (50, 60)
HIST_RANGES: Tuple[float, float, float, float] = (0.0, 180.0, 0.0, 256.0)

# Feature pipeline
RATIO_THRESHOLD: float = 0.4
# TODO: scale both centroid distances with the frame resolution
SINGLE_CENTROID_DISTANCE: int = 200
ALL_CENTROID_DISTANCE: int = 300
ACCEPTANCE_RATIO: float = 0.075
FEATURE_CONTRAST_THRESHOLD: float = 0.04
RANSAC_THRESHOLD: float = 3.0
RANSAC_CONFIDENCE: float = 0.99
MATCH_ALL_WORKERS: int = 1

# OCR model files expected inside the model directory
OCR_DET_MODEL = "dbnet.onnx"
OCR_CLS_MODEL = "angle_net.onnx"
OCR_REC_MODEL = "crnn_lite_lstm.onnx"
OCR_KEYS_FILE = "keys.txt"
OCR_MODEL_FILES: Tuple[str, ...] = (OCR_DET_MODEL, OCR_CLS_MODEL, OCR_REC_MODEL, OCR_KEYS_FILE)


@dataclass(frozen=True)
class RecognitionConfig:
    """Every recognized option of the engine, with its default."""

    zoom_factor: float = ZOOM_FACTOR
    hist_bins: Tuple[int, int] = HIST_BINS
    ratio_threshold: float = RATIO_THRESHOLD
    single_centroid_distance: int = SINGLE_CENTROID_DISTANCE
    all_centroid_distance: int = ALL_CENTROID_DISTANCE
    acceptance_ratio: float = ACCEPTANCE_RATIO
    feature_contrast_threshold: float = FEATURE_CONTRAST_THRESHOLD
    ransac_threshold: float = RANSAC_THRESHOLD
    ransac_confidence: float = RANSAC_CONFIDENCE
    match_all_workers: int = MATCH_ALL_WORKERS
    ocr_padding: int = 50
    ocr_max_side_len: int = 0
    ocr_box_score_thresh: float = 0.6
    ocr_box_thresh: float = 0.3
    ocr_unclip_ratio: float = 2.0
    ocr_threads: int = 4

    @classmethod
    def option_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def with_options(self, **options: Any) -> "RecognitionConfig":
        """Return a copy with some options replaced; unknown names raise KeyError."""
        unknown = sorted(set(options) - set(self.option_names()))
        if unknown:
            raise KeyError(f"unknown recognition option(s): {', '.join(unknown)}")
        return replace(self, **options)

    @classmethod
    def from_config(cls, config_manager) -> "RecognitionConfig":
        """Build from a ConfigManager, coercing strings to each option's type.

        Blank values fall back to the default; values that fail to parse are
        logged and ignored.
        """
        base = cls()
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = config_manager.get(f.name)
            if raw is None or str(raw).strip() == "":
                continue
            default = getattr(base, f.name)
            try:
                values[f.name] = _coerce(str(raw), default)
            except ValueError:
                logger.warning("config: ignoring invalid %s=%r", f.name, raw)
        return base.with_options(**values)


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, tuple):
        parts = [p.strip() for p in raw.replace("x", ",").split(",") if p.strip()]
        if len(parts) != len(default):
            raise ValueError(raw)
        return tuple(type(d)(p) for d, p in zip(default, parts))
    if isinstance(default, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        return int(raw)
    return float(raw)


__all__ = [
    "ZOOM_FACTOR",
    "HIST_BINS",
    "HIST_RANGES",
    "RATIO_THRESHOLD",
    "SINGLE_CENTROID_DISTANCE",
    "ALL_CENTROID_DISTANCE",
    "ACCEPTANCE_RATIO",
    "FEATURE_CONTRAST_THRESHOLD",
    "RANSAC_THRESHOLD",
    "RANSAC_CONFIDENCE",
    "MATCH_ALL_WORKERS",
    "OCR_MODEL_FILES",
    "RecognitionConfig",
]
