"""Image-processing backend used by the auto-detector.

The detector never touches OpenCV directly; it receives a backend and waits
for ``ready()`` before running. Tests and hosts can pass their own backend
(for example one whose ``ready()`` stays False while a worker warms up).
"""

import logging
import time
from typing import List

import cv2
import numpy as np

from scancrop.errors import BackendUnavailable

logger = logging.getLogger(__name__)

_REQUIRED = (
    "cvtColor", "GaussianBlur", "Canny", "dilate", "findContours",
    "contourArea", "arcLength", "approxPolyDP", "minAreaRect", "boxPoints",
)


class OpenCVBackend:
    """OpenCV operations for the edge/contour detection pipeline."""

    def __init__(self) -> None:
        self._ready = False

    def ready(self) -> bool:
        """True once every OpenCV entry point the pipeline needs is usable."""
        if not self._ready:
            missing = [name for name in _REQUIRED if not hasattr(cv2, name)]
            if missing:
                logger.debug(f"OpenCV backend missing: {', '.join(missing)}")
                return False
            self._ready = True
            logger.debug(f"OpenCV backend ready (cv2 {cv2.__version__})")
        return True

    def wait_ready(self, timeout: float = 10.0, interval: float = 0.1) -> None:
        """Block until ``ready()`` or raise BackendUnavailable after ``timeout`` seconds."""
        deadline = time.monotonic() + timeout
        while not self.ready():
            if time.monotonic() >= deadline:
                raise BackendUnavailable(f"Image backend not ready after {timeout:.1f}s")
            time.sleep(interval)

    # -------------------------------------------------------------------------
    # Pipeline stages
    # -------------------------------------------------------------------------
    def to_gray(self, image: np.ndarray) -> np.ndarray:
        """float32 RGB [0, 1] -> uint8 grayscale."""
        img_uint8 = (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)
        if img_uint8.ndim == 2:
            return img_uint8
        return cv2.cvtColor(img_uint8, cv2.COLOR_RGB2GRAY)

    def blur(self, gray: np.ndarray, kernel: int) -> np.ndarray:
        return cv2.GaussianBlur(gray, (kernel, kernel), 0)

    def canny(self, gray: np.ndarray, low: int, high: int) -> np.ndarray:
        return cv2.Canny(gray, low, high)

    def dilate(self, edges: np.ndarray, kernel: int) -> np.ndarray:
        element = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel, kernel))
        return cv2.dilate(edges, element, iterations=1)

    def external_contours(self, binary: np.ndarray) -> List[np.ndarray]:
        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return list(contours)

    def contour_area(self, contour: np.ndarray) -> float:
        return float(cv2.contourArea(contour))

    def approximate_polygon(self, contour: np.ndarray, epsilon_ratio: float) -> np.ndarray:
        """Polygon approximation with tolerance ``epsilon_ratio`` of the closed perimeter."""
        perimeter = cv2.arcLength(contour, True)
        return cv2.approxPolyDP(contour, epsilon_ratio * perimeter, True)

    def min_area_rect(self, contour: np.ndarray) -> np.ndarray:
        """Corners of the contour's minimum-area rotated rectangle, shape (4, 2)."""
        return cv2.boxPoints(cv2.minAreaRect(contour)).astype(np.float64)


def default_backend() -> OpenCVBackend:
    return OpenCVBackend()
