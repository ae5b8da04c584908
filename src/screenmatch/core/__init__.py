"""Core subpackage.

- config: INI-backed ConfigManager
- logging_setup: session-based logging
- position_cache: thread-safe cache of confirmed template positions
"""
from .config import ConfigManager
from .logging_setup import setup_logging, get_artifacts_dir
from .position_cache import CacheEntry, PositionCache

__all__ = [
    "ConfigManager",
    "setup_logging",
    "get_artifacts_dir",
    "CacheEntry",
    "PositionCache",
]
