"""Vision package: pure image ops, stores and matching strategies.

Submodules:
- geometry: Rect / TextArea value types
- preprocess: stateless image preprocessing utilities
- stores: template and feature registries
- matcher: template matching with position-cache fast path
- features: keypoint-descriptor matching pipeline
"""
from .geometry import Rect, TextArea
from .preprocess import load_image, hs_histogram, hist_similarity, best_correlation
from .stores import TemplateStore, FeatureStore, FeatureDescriptorSet, extract_features
from .matcher import AlgorithmType, MatchResult, TemplateMatcher
from .features import FeatureFilterParams, FeatureMatcher

__all__ = [
    "Rect",
    "TextArea",
    "load_image",
    "hs_histogram",
    "hist_similarity",
    "best_correlation",
    "TemplateStore",
    "FeatureStore",
    "FeatureDescriptorSet",
    "extract_features",
    "AlgorithmType",
    "MatchResult",
    "TemplateMatcher",
    "FeatureFilterParams",
    "FeatureMatcher",
]
