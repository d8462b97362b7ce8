"""Automatic document-corner detection."""

from scancrop.detection.backend import OpenCVBackend, default_backend
from scancrop.detection.detector import detect_corners, draw_corner_overlay, select_quadrilateral

__all__ = [
    "OpenCVBackend",
    "default_backend",
    "detect_corners",
    "draw_corner_overlay",
    "select_quadrilateral",
]
