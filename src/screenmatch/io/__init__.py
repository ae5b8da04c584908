"""IO subpackage.

- capture: screen capture into BGR frames
"""
from .capture import ScreenCapture

__all__ = ["ScreenCapture"]
