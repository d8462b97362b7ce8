"""Perspective warp: rasterize the quadrilateral under a corner set into a rectangle.

Two mappings are available:

- "homography": a true 4-point projective transform (default).
- "triangles": piecewise affine. The quad is split along the TR-BL diagonal
  into TL-TR-BL and TR-BR-BL, each mapped with its own 3-point affine
  transform and clipped to its destination triangle. It agrees with the
  homography on straight-sided rectangles and parallelograms and drifts
  slightly for strongly foreshortened quads.

Degenerate input is rejected before any solve rather than detected from
NaN or infinite output.
"""

import logging
from typing import Tuple, Union

import cv2
import numpy as np

from scancrop.color.adjust import apply_brightness_contrast
from scancrop.editing.corners import CornerSet
from scancrop.errors import DegenerateGeometry

logger = logging.getLogger(__name__)

WARP_METHODS = ("homography", "triangles")

# Sine of the turn angle below which three consecutive corners count as collinear
_COLLINEAR_EPSILON = 1e-6

# Minimum distance between neighbouring corners, in pixels
_DUPLICATE_EPSILON = 1e-6

_DET_EPSILON = 1e-12

Corners = Union[CornerSet, np.ndarray]


def _as_array(corners: Corners) -> np.ndarray:
    if isinstance(corners, CornerSet):
        return corners.as_array()
    pts = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] != 4:
        raise ValueError(f"Expected 4 corners, got {pts.shape[0]}")
    return pts


def compute_output_dimensions(corners: Corners) -> Tuple[int, int]:
    """Compute output rectangle dimensions from corner points.

    Takes the longer of each pair of opposite sides, so the output is never
    smaller than the largest relevant dimension.

    Args:
        corners: Ordered corner points (4, 2) as [TL, TR, BR, BL].

    Returns:
        (width, height) in pixels.
    """
    tl, tr, br, bl = _as_array(corners)

    width = max(np.linalg.norm(tr - tl), np.linalg.norm(br - bl))
    height = max(np.linalg.norm(bl - tl), np.linalg.norm(br - tr))

    return int(round(width)), int(round(height))


def check_geometry(corners: Corners) -> None:
    """Reject corner sets that cannot be mapped to a rectangle.

    A usable quad turns the same way (clockwise in image coordinates) at
    every corner. Collinear or duplicate corners, concave or self-intersecting
    shapes and mirrored orderings all fail this.

    Raises:
        DegenerateGeometry: If the quad is unusable.
    """
    pts = _as_array(corners)

    for i in range(4):
        if np.linalg.norm(pts[(i + 1) % 4] - pts[i]) < _DUPLICATE_EPSILON:
            raise DegenerateGeometry(f"Corners {i} and {(i + 1) % 4} coincide")

    for i in range(4):
        a, b, c = pts[i], pts[(i + 1) % 4], pts[(i + 2) % 4]
        e1 = b - a
        e2 = c - b
        cross = e1[0] * e2[1] - e1[1] * e2[0]
        sine = cross / (np.linalg.norm(e1) * np.linalg.norm(e2))
        if abs(sine) < _COLLINEAR_EPSILON:
            raise DegenerateGeometry(f"Corners {i}, {(i + 1) % 4}, {(i + 2) % 4} are collinear")
        if sine < 0:
            raise DegenerateGeometry(
                f"Quad is concave, self-intersecting or mirrored at corner {(i + 1) % 4}"
            )


def _destination(width: int, height: int) -> np.ndarray:
    return np.array([
        [0, 0],
        [width, 0],
        [width, height],
        [0, height],
    ], dtype=np.float32)


def compute_homography(corners: Corners, width: int, height: int) -> np.ndarray:
    """Solve the 3x3 projective transform taking the quad to a width x height rectangle.

    Raises:
        DegenerateGeometry: If the solved matrix is singular.
    """
    src = _as_array(corners).astype(np.float32)
    matrix = cv2.getPerspectiveTransform(src, _destination(width, height))

    det = np.linalg.det(matrix)
    if not np.isfinite(det) or abs(det) < _DET_EPSILON:
        raise DegenerateGeometry(f"Homography is singular (det={det:.3e})")

    return matrix


def _solve_affine(src_tri: np.ndarray, dst_tri: np.ndarray) -> np.ndarray:
    a, b, c = src_tri
    cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
    scale = np.linalg.norm(b - a) * np.linalg.norm(c - a)
    if scale == 0 or abs(cross) / scale < _COLLINEAR_EPSILON:
        raise DegenerateGeometry("Triangle vertices are collinear")

    return cv2.getAffineTransform(src_tri.astype(np.float32), dst_tri.astype(np.float32))


def _warp_triangles(
    image: np.ndarray,
    src: np.ndarray,
    width: int,
    height: int,
) -> np.ndarray:
    dst = _destination(width, height)
    out = np.zeros((height, width) + image.shape[2:], dtype=image.dtype)

    for idx in ((0, 1, 3), (1, 2, 3)):
        tri = list(idx)
        matrix = _solve_affine(src[tri], dst[tri])

        part = cv2.warpAffine(
            image,
            matrix,
            (width, height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
        )
        if part.ndim < image.ndim:
            part = part[..., np.newaxis]

        mask = np.zeros((height, width), dtype=np.uint8)
        cv2.fillConvexPoly(mask, np.round(dst[tri]).astype(np.int32), 1)
        region = mask.astype(bool)
        out[region] = part[region]

    return out


def warp(
    image: np.ndarray,
    corners: Corners,
    method: str = "homography",
    brightness: float = 100.0,
    contrast: float = 100.0,
) -> np.ndarray:
    """Warp the region under ``corners`` to a fronto-parallel rectangle.

    Args:
        image: Source image as float32 RGB [0, 1], shape (H, W, 3). Not modified.
        corners: Ordered corners [TL, TR, BR, BL] in natural image pixels.
        method: "homography" or "triangles".
        brightness: Brightness percentage applied to the source before sampling.
        contrast: Contrast percentage applied to the source before sampling.

    Returns:
        Warped image as float32, shape (height, width, C).

    Raises:
        DegenerateGeometry: If the corners do not describe a usable quad.
    """
    if method not in WARP_METHODS:
        raise ValueError(
            f"Unknown warp method: {method!r}. Use 'homography' or 'triangles'."
        )

    pts = _as_array(corners)
    check_geometry(pts)

    width, height = compute_output_dimensions(pts)
    if width < 1 or height < 1:
        raise DegenerateGeometry(f"Output size {width}x{height} has no area")

    source = apply_brightness_contrast(image, brightness, contrast).astype(np.float32)

    if method == "homography":
        matrix = compute_homography(pts, width, height)
        warped = cv2.warpPerspective(
            source,
            matrix,
            (width, height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
        )
        if warped.ndim < source.ndim:
            warped = warped[..., np.newaxis]
    else:
        warped = _warp_triangles(source, pts, width, height)

    logger.info(
        f"Perspective corrected ({method}): {image.shape[1]}x{image.shape[0]} "
        f"-> {width}x{height}"
    )

    return warped
