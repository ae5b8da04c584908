"""Screen capture (IO) producing BGR frames for the recognizer.

Thin wrapper over mss, kept out of the pure vision package. One mss handle
is kept per thread since mss instances are not thread-safe.
"""
from __future__ import annotations

from typing import Dict, Optional
import logging
import threading
import time

import cv2
import mss
import numpy as np

logger = logging.getLogger(__name__)


class ScreenCapture:
    def __init__(self) -> None:
        self._tls = threading.local()

    def _get_sct(self, force_new: bool = False):
        sct = getattr(self._tls, "sct", None)
        if force_new or sct is None:
            if sct is not None:
                sct.close()
            sct = mss.mss()
            self._tls.sct = sct
        return sct

    def _safe_grab(self, region):
        sct = self._get_sct()
        try:
            return sct.grab(region)
        except AttributeError:
            # Stale handle after a display change; rebuild once
            sct = self._get_sct(force_new=True)
            return sct.grab(region)

    def monitor(self, index: int = 1) -> Dict[str, int]:
        """Region dict of a monitor (0 is the virtual screen spanning all monitors)."""
        monitors = self._get_sct().monitors
        if not 0 <= index < len(monitors):
            raise IndexError(f"monitor {index} not available ({len(monitors) - 1} attached)")
        return dict(monitors[index])

    def grab_bgr(self, region: Optional[Dict[str, int]] = None) -> np.ndarray:
        """Capture a BGR frame for {left, top, width, height} (primary monitor by default)."""
        region = region or self.monitor(1)
        t0 = time.perf_counter()
        frame = np.array(self._safe_grab(region))  # BGRA
        logger.debug("capture: grab %.1fms region=%s", (time.perf_counter() - t0) * 1000.0, region)
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)

    def close(self) -> None:
        sct = getattr(self._tls, "sct", None)
        if sct is not None:
            sct.close()
            self._tls.sct = None
