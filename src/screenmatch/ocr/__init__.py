"""OCR collaborator: text detection backend and label lookups."""
from .engine import DnnOcrEngine, OcrNotInitializedError, TextDetector, missing_model_files
from .lookup import find_text, find_texts

__all__ = [
    "DnnOcrEngine",
    "OcrNotInitializedError",
    "TextDetector",
    "missing_model_files",
    "find_text",
    "find_texts",
]
