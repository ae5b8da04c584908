"""ScreenMatch: locate icons, buttons and labels in screenshots.

Template matching with a position cache, histogram re-verification,
keypoint-descriptor matching and OCR label lookup behind one Recognizer.
"""
from .config.vision import RecognitionConfig
from .ocr.engine import OcrNotInitializedError
from .recognizer import Recognizer
from .vision.geometry import Rect, TextArea
from .vision.matcher import AlgorithmType, MatchResult

__version__ = "0.1.0"

__all__ = [
    "Recognizer",
    "RecognitionConfig",
    "OcrNotInitializedError",
    "Rect",
    "TextArea",
    "AlgorithmType",
    "MatchResult",
]
