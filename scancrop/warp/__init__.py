"""Perspective warp engine."""

from scancrop.warp.perspective import (
    WARP_METHODS,
    check_geometry,
    compute_homography,
    compute_output_dimensions,
    warp,
)

__all__ = [
    "WARP_METHODS",
    "check_geometry",
    "compute_homography",
    "compute_output_dimensions",
    "warp",
]
